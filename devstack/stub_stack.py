"""
devstack.stub_stack
-------------------
Stand-ins for the HTTP surface of the stack, built with FastAPI:

- chain:          JSON-RPC on POST / (eth_blockNumber, eth_chainId, net_version)
- content store:  IPFS-like API; GET / answers 404 like the real daemon
- indexer:        GraphQL port (GET /, POST /subgraphs/name/<name>) and
                  JSON-RPC admin port (subgraph_create, subgraph_deploy)

Intended for dry runs and end-to-end tests of the deployer, not as a real node.

    python -m devstack.stub_stack --role indexer --port 8000 --admin-port 8020
"""

import asyncio
import hashlib
import json
import logging
import socket
from dataclasses import dataclass, field
from typing import Any

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

CHAIN_ID = 31337


@dataclass
class SubgraphRecord:
    name: str
    ipfs_hash: str | None = None
    version_label: str | None = None


@dataclass
class StubState:
    """In-memory state shared by the stub apps of one stack."""

    blocks: int = 0
    content: dict[str, bytes] = field(default_factory=dict)
    subgraphs: dict[str, SubgraphRecord] = field(default_factory=dict)


def _rpc_result(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _rpc_error(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def create_chain_app(state: StubState | None = None) -> FastAPI:
    state = state or StubState()
    app = FastAPI()

    @app.post("/")
    async def rpc(request: Request):
        body = await request.json()
        method = body.get("method")
        request_id = body.get("id")
        if method == "eth_blockNumber":
            return _rpc_result(request_id, hex(state.blocks))
        if method == "eth_chainId":
            return _rpc_result(request_id, hex(CHAIN_ID))
        if method == "net_version":
            return _rpc_result(request_id, str(CHAIN_ID))
        logger.warning("Unsupported JSON-RPC method: %r", method)
        return _rpc_error(request_id, -32601, f"Method not found: {method}")

    return app


def create_content_store_app(state: StubState | None = None) -> FastAPI:
    state = state or StubState()
    app = FastAPI()

    @app.post("/api/v0/add")
    async def add(request: Request):
        data = await request.body()
        digest = "Qm" + hashlib.sha256(data).hexdigest()[:44]
        state.content[digest] = data
        logger.info("Stored %d bytes as %s", len(data), digest)
        return {"Name": digest, "Hash": digest, "Size": str(len(data))}

    @app.post("/api/v0/cat")
    async def cat(arg: str):
        if arg not in state.content:
            raise HTTPException(status_code=404, detail="not found")
        return JSONResponse(content=state.content[arg].decode("utf-8", errors="replace"))

    return app


def create_indexer_apps(state: StubState | None = None) -> tuple[FastAPI, FastAPI]:
    """Return (graphql_app, admin_app) sharing ``state``."""
    state = state or StubState()
    graphql = FastAPI()
    admin = FastAPI()

    @graphql.get("/")
    def index():
        return {"message": "Access deployed subgraphs by name at /subgraphs/name/<NAME>"}

    @graphql.post("/subgraphs/name/{name:path}")
    def query(name: str):
        record = state.subgraphs.get(name)
        if record is None or record.ipfs_hash is None:
            return JSONResponse(status_code=404, content={"errors": [{"message": f"Subgraph not found: {name}"}]})
        return {"data": {"_meta": {"deployment": record.ipfs_hash, "block": {"number": state.blocks}}}}

    @admin.post("/")
    async def rpc(request: Request):
        body = await request.json()
        method = body.get("method")
        params = body.get("params") or {}
        request_id = body.get("id")
        name = params.get("name")
        if method == "subgraph_create":
            if name in state.subgraphs:
                return _rpc_error(request_id, -32600, f"subgraph name already exists: {name}")
            state.subgraphs[name] = SubgraphRecord(name=name)
            logger.info("Created subgraph %r", name)
            return _rpc_result(request_id, None)
        if method == "subgraph_deploy":
            record = state.subgraphs.get(name)
            if record is None:
                return _rpc_error(request_id, -32600, f"subgraph name not found: {name}")
            record.ipfs_hash = params.get("ipfs_hash")
            record.version_label = params.get("version_label")
            logger.info("Deployed subgraph %r at %s", name, record.ipfs_hash)
            return _rpc_result(request_id, {"playground": f"/subgraphs/name/{name}/graphql", "queries": f"/subgraphs/name/{name}"})
        return _rpc_error(request_id, -32601, f"Method not found: {method}")

    return graphql, admin


def free_port() -> int:
    """Bind to port 0 to get a free port, then close it for reuse."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def _server(app: FastAPI, port: int) -> uvicorn.Server:
    config = uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning")
    return uvicorn.Server(config)


app_cli = typer.Typer(add_completion=False)


@app_cli.command()
def run(
    role: str = typer.Option(..., help="chain, content-store or indexer"),
    port: int = typer.Option(0, help="Port to serve on (auto if 0)"),
    admin_port: int = typer.Option(0, help="Admin JSON-RPC port for the indexer role (auto if 0)"),
):
    """Serve one stub service on localhost, reporting the ports used as JSON."""
    state = StubState()
    port = port or free_port()
    if role == "chain":
        servers = [_server(create_chain_app(state), port)]
        ports = {"port": port}
    elif role == "content-store":
        servers = [_server(create_content_store_app(state), port)]
        ports = {"port": port}
    elif role == "indexer":
        admin_port = admin_port or free_port()
        graphql, admin = create_indexer_apps(state)
        servers = [_server(graphql, port), _server(admin, admin_port)]
        ports = {"port": port, "admin_port": admin_port}
    else:
        raise typer.BadParameter(f"Unknown role: {role}", param_hint="--role")
    print(json.dumps({"event": "serving", "role": role, **ports}), flush=True)

    async def serve_all():
        await asyncio.gather(*(server.serve() for server in servers))

    try:
        asyncio.run(serve_all())
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt in main thread")


if __name__ == "__main__":
    app_cli()
