"""
Relay Service

An onion router process: peels one layer from each incoming blob and
forwards the remainder to the next hop.

Endpoints:
    GET  /status   -> "live"
    POST /message  {"message": <onion blob>}

Inspection endpoints (only with debug.inspection):
    GET /getLastReceivedEncryptedMessage
    GET /getLastReceivedDecryptedMessage
    GET /getLastMessageDestination
    GET /getPrivateKey  (also needs debug.expose_private_key)
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..config import Config
from ..crypto.keys import KeyPair, generate_key_pair, export_private_key
from ..directory.client import DirectoryClient
from ..directory.registry import DirectoryEntry
from ..errors import OnionRoutingError, ForwardingFailure
from ..onion.observers import MessageLog
from ..onion.relay import RelayProcessor, ProcessedPacket
from ..transport.http import HttpTransport


logger = logging.getLogger("onionrelay.relay")


class MessageBody(BaseModel):
    message: str


class RelayNode:
    """
    One relay process.

    Holds the relay's key pair for its lifetime. Every message is peeled in
    a worker thread, so concurrent messages never wait on each other's
    cryptography or forwarding.
    """

    def __init__(
        self,
        node_id: int,
        config: Optional[Config] = None,
        key_pair: Optional[KeyPair] = None,
        transport: Optional[HttpTransport] = None,
        directory: Optional[DirectoryClient] = None,
    ):
        """
        Initialize relay.

        Args:
            node_id: Relay number; the address is base_relay_port + node_id
            config: Configuration (defaults if omitted)
            key_pair: Key pair (generated if omitted)
            transport: Delivery to the next hop
            directory: Registry client
        """
        self.node_id = node_id
        self.config = config or Config()
        self.address = self.config.relay_address(node_id)
        self.key_pair = key_pair or generate_key_pair()

        self.processor = RelayProcessor(self.key_pair)
        self.message_log: Optional[MessageLog] = None
        if self.config.debug.inspection:
            self.message_log = MessageLog()
            self.processor.add_observer(self.message_log)

        self.transport = transport or HttpTransport(
            host=self.config.network.host,
            timeout=self.config.transport.timeout,
        )
        self.directory = directory or DirectoryClient(
            self.config.registry_url,
            timeout=self.config.transport.timeout,
        )

    @property
    def entry(self) -> DirectoryEntry:
        """Directory entry published for this relay."""
        return DirectoryEntry(
            node_id=self.node_id,
            public_key=self.key_pair.public_key_text,
            address=self.address,
        )

    async def register(self) -> None:
        """Publish this relay's public key to the registry."""
        await self.directory.register(self.entry)
        logger.info(f"Relay {self.node_id} registered at address {self.address}")

    async def handle_message(self, blob: str) -> ProcessedPacket:
        """
        Peel one layer and forward the rest.

        Args:
            blob: Incoming onion blob

        Returns:
            ProcessedPacket in state FORWARDED

        Raises:
            OnionRoutingError: If peeling fails (message dropped)
            ForwardingFailure: If the next hop cannot be reached (not retried)
        """
        packet = await run_in_threadpool(self.processor.process, blob)
        if not packet.accepted:
            raise packet.error

        try:
            await self.transport.deliver(packet.next_hop, packet.payload)
        except ForwardingFailure as e:
            packet.mark_rejected(e)
            raise

        packet.mark_forwarded()
        logger.debug(f"Relay {self.node_id} forwarded {len(packet.payload)} bytes to {packet.next_hop}")
        return packet

    async def aclose(self) -> None:
        await self.transport.aclose()
        await self.directory.aclose()


def create_relay_app(node: RelayNode, register_on_startup: bool = False) -> FastAPI:
    """
    Build the relay app.

    Args:
        node: Relay state
        register_on_startup: Register with the registry when the app starts

    Returns:
        FastAPI application
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if register_on_startup:
            await node.register()
        logger.info(f"Onion router {node.node_id} is listening on port {node.address}")
        yield
        await node.aclose()

    app = FastAPI(title=f"onion-relay router {node.node_id}", lifespan=lifespan)
    app.state.node = node

    @app.get("/status", response_class=PlainTextResponse)
    def status() -> str:
        return "live"

    @app.post("/message", response_class=PlainTextResponse)
    async def receive_message(body: MessageBody) -> str:
        try:
            await node.handle_message(body.message)
        except ForwardingFailure:
            raise HTTPException(status_code=502, detail="Forwarding failed")
        except OnionRoutingError:
            # One answer for every peel failure
            raise HTTPException(status_code=400, detail="Invalid message")
        return "success"

    if node.message_log is not None:
        log = node.message_log

        @app.get("/getLastReceivedEncryptedMessage")
        def last_received_encrypted() -> dict:
            return {"result": log.last_received_encrypted}

        @app.get("/getLastReceivedDecryptedMessage")
        def last_received_decrypted() -> dict:
            return {"result": log.last_received_decrypted}

        @app.get("/getLastMessageDestination")
        def last_destination() -> dict:
            return {"result": log.last_destination}

    if node.config.debug.expose_private_key:

        @app.get("/getPrivateKey")
        def private_key() -> dict:
            return {"result": export_private_key(node.key_pair.private_key)}

    return app
