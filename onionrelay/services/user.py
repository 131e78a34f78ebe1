"""
User Service

A sender/recipient process. Sending picks a fresh circuit from the
directory, builds the onion and hands it to the entry relay. Receiving
accepts the plaintext delivered by the last relay.

Endpoints:
    GET  /status       -> "live"
    POST /message      {"message": <plaintext>}
    POST /sendMessage  {"message": <plaintext>, "destinationUserId": <int>}

Inspection endpoints (only with debug.inspection):
    GET /getLastReceivedMessage
    GET /getLastSentMessage
    GET /getLastCircuit
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ..config import Config
from ..directory.client import DirectoryClient, DirectoryError
from ..errors import (
    OnionRoutingError,
    InsufficientRelays,
    ForwardingFailure,
)
from ..onion.layers import OnionBuilder, OutboundMessage
from ..onion.observers import UserLog
from ..transport.http import HttpTransport


logger = logging.getLogger("onionrelay.user")


class MessageBody(BaseModel):
    message: str


class SendMessageBody(BaseModel):
    message: str
    destination_user_id: int = Field(alias="destinationUserId")


class UserNode:
    """
    One user process.

    Circuits are chosen per message and forgotten once the blob is handed
    to the entry relay; so are the layer keys.
    """

    def __init__(
        self,
        user_id: int,
        config: Optional[Config] = None,
        transport: Optional[HttpTransport] = None,
        directory: Optional[DirectoryClient] = None,
        builder: Optional[OnionBuilder] = None,
    ):
        self.user_id = user_id
        self.config = config or Config()
        self.address = self.config.user_address(user_id)
        self.builder = builder or OnionBuilder(circuit_length=self.config.onion.circuit_length)

        self.user_log: Optional[UserLog] = None
        if self.config.debug.inspection:
            self.user_log = UserLog()

        self.transport = transport or HttpTransport(
            host=self.config.network.host,
            timeout=self.config.transport.timeout,
        )
        self.directory = directory or DirectoryClient(
            self.config.registry_url,
            timeout=self.config.transport.timeout,
        )

    async def send_message(self, message: str, destination_user_id: int) -> OutboundMessage:
        """
        Send a message to another user through a fresh circuit.

        Args:
            message: Plaintext
            destination_user_id: Recipient user number

        Returns:
            OutboundMessage that was sent

        Raises:
            DirectoryError: If the relay list cannot be fetched
            InsufficientRelays: If fewer relays than the circuit length exist
            ForwardingFailure: If the entry relay cannot be reached
        """
        entries = await self.directory.get_nodes()
        destination = self.config.user_address(destination_user_id)

        outbound = await run_in_threadpool(
            self.builder.build_message, message, destination, entries
        )
        if self.user_log is not None:
            self.user_log.on_sent(message, outbound.node_ids)

        await self.transport.deliver(outbound.entry_address, outbound.blob.encode("ascii"))
        logger.info(
            f"User {self.user_id} sent message for user {destination_user_id} "
            f"via entry relay {outbound.circuit[0].node_id}"
        )
        return outbound

    def receive_message(self, message: str) -> None:
        """Accept a message delivered by an exit relay."""
        logger.info(f"User {self.user_id} received a message ({len(message)} chars)")
        if self.user_log is not None:
            self.user_log.on_received(message)

    async def aclose(self) -> None:
        await self.transport.aclose()
        await self.directory.aclose()


def create_user_app(node: UserNode) -> FastAPI:
    """
    Build the user app.

    Args:
        node: User state

    Returns:
        FastAPI application
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"User {node.user_id} is listening on port {node.address}")
        yield
        await node.aclose()

    app = FastAPI(title=f"onion-relay user {node.user_id}", lifespan=lifespan)
    app.state.node = node

    @app.get("/status", response_class=PlainTextResponse)
    def status() -> str:
        return "live"

    @app.post("/message", response_class=PlainTextResponse)
    def receive_message(body: MessageBody) -> str:
        node.receive_message(body.message)
        return "success"

    @app.post("/sendMessage", response_class=PlainTextResponse)
    async def send_message(body: SendMessageBody) -> str:
        try:
            await node.send_message(body.message, body.destination_user_id)
        except InsufficientRelays:
            raise HTTPException(status_code=500, detail="Not enough nodes registered")
        except (DirectoryError, ForwardingFailure) as e:
            logger.warning(f"Send failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        except OnionRoutingError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return "success"

    if node.user_log is not None:
        log = node.user_log

        @app.get("/getLastReceivedMessage")
        def last_received() -> dict:
            return {"result": log.last_received}

        @app.get("/getLastSentMessage")
        def last_sent() -> dict:
            return {"result": log.last_sent}

        @app.get("/getLastCircuit")
        def last_circuit() -> dict:
            return {"result": log.last_circuit}

    return app
