"""
HTTP Transport

Moves onion payloads between nodes. Each node listens on
http://<host>:<address>/message and accepts {"message": <text>}.

Delivery is a single attempt; retry policy is left to callers.
"""

import logging
from typing import Optional

import httpx

from ..errors import ForwardingFailure


logger = logging.getLogger("onionrelay.transport")

# Keep per-request client logging out of relay logs
logging.getLogger("httpx").setLevel(logging.WARNING)


class HttpTransport:
    """
    Delivers payloads to the next hop over HTTP.

    Usage:
        transport = HttpTransport(host="localhost")
        await transport.deliver(4002, payload)
        await transport.aclose()
    """

    def __init__(
        self,
        host: str = "localhost",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize transport.

        Args:
            host: Host all node addresses resolve to
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests pass one with a mock transport)
        """
        self._host = host
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def url_for(self, address: int) -> str:
        """Get the message endpoint for an address."""
        return f"http://{self._host}:{address}/message"

    async def deliver(self, address: int, payload: bytes) -> None:
        """
        Deliver a payload to an address.

        Args:
            address: Next hop address (port)
            payload: Onion blob or final plaintext (UTF-8)

        Raises:
            ForwardingFailure: If the payload is not text, the hop is
                unreachable, or it answers with an error status
        """
        try:
            message = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise ForwardingFailure("Payload is not valid UTF-8 text")

        url = self.url_for(address)
        try:
            response = await self._client.post(url, json={"message": message})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Delivery to {address} failed: {e}")
            raise ForwardingFailure(f"Delivery to {address} failed: {e}")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
