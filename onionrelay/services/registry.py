"""
Registry Service

HTTP front end of the relay directory.

Endpoints:
    GET  /status           -> "live"
    POST /registerNode     {"nodeId", "pubKey", "address"?}
    GET  /getNodeRegistry  -> {"nodes": [...]}
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ..config import Config
from ..crypto.keys import import_public_key
from ..crypto.onion import check_address
from ..directory.registry import DirectoryEntry, NodeRegistry
from ..errors import InvalidKey, AddressOverflow


logger = logging.getLogger("onionrelay.registry")


class RegisterNodeBody(BaseModel):
    node_id: int = Field(alias="nodeId")
    pub_key: str = Field(alias="pubKey")
    address: Optional[int] = None


def create_registry_app(
    registry: Optional[NodeRegistry] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """
    Build the registry app.

    Args:
        registry: Relay table (a fresh one by default)
        config: Used to derive addresses for relays that do not send one

    Returns:
        FastAPI application
    """
    registry = registry if registry is not None else NodeRegistry()
    config = config or Config()

    app = FastAPI(title="onion-relay registry")
    app.state.registry = registry

    @app.get("/status", response_class=PlainTextResponse)
    def status() -> str:
        return "live"

    @app.post("/registerNode", response_class=PlainTextResponse)
    def register_node(body: RegisterNodeBody) -> str:
        address = body.address
        if address is None:
            address = config.relay_address(body.node_id)

        try:
            import_public_key(body.pub_key)
            check_address(address)
        except (InvalidKey, AddressOverflow) as e:
            logger.warning(f"Refused registration of node {body.node_id}: {e}")
            raise HTTPException(status_code=400, detail=str(e))

        registry.register(DirectoryEntry(
            node_id=body.node_id,
            public_key=body.pub_key,
            address=address,
        ))
        return "success"

    @app.get("/getNodeRegistry")
    def get_node_registry() -> dict:
        return {"nodes": [entry.to_dict() for entry in registry.get_nodes()]}

    return app
