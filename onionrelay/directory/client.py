"""
Directory Client

Talks to the registry service over HTTP.
"""

import logging
from typing import List, Optional

import httpx

from .registry import DirectoryEntry


logger = logging.getLogger("onionrelay.directory")


class DirectoryError(Exception):
    """Exception raised when the registry cannot be queried."""
    pass


class DirectoryClient:
    """
    Async client for the registry API.

    Usage:
        client = DirectoryClient("http://localhost:8080")
        await client.register(entry)
        entries = await client.get_nodes()
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize directory client.

        Args:
            base_url: Registry URL, e.g. http://localhost:8080
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests pass one with a mock transport)
        """
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def register(self, entry: DirectoryEntry) -> None:
        """
        Register a relay with the registry.

        Raises:
            DirectoryError: If the registry is unreachable or refuses
        """
        try:
            response = await self._client.post(
                f"{self._base_url}/registerNode",
                json=entry.to_dict(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DirectoryError(f"Failed to register node {entry.node_id}: {e}")

    async def get_nodes(self) -> List[DirectoryEntry]:
        """
        Fetch all registered relays.

        Raises:
            DirectoryError: If the registry is unreachable or the answer is invalid
        """
        try:
            response = await self._client.get(f"{self._base_url}/getNodeRegistry")
            response.raise_for_status()
            nodes = response.json()["nodes"]
            return [DirectoryEntry.from_dict(node) for node in nodes]
        except httpx.HTTPError as e:
            raise DirectoryError(f"Failed to fetch node registry: {e}")
        except (KeyError, TypeError, ValueError) as e:
            raise DirectoryError(f"Invalid node registry response: {e}")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
