import threading
import time

import pytest
import uvicorn

from devstack.stub_stack import (
    StubState,
    create_chain_app,
    create_content_store_app,
    create_indexer_apps,
    free_port,
)


class ThreadedServer:
    """Runs a uvicorn server in a background thread for the duration of a test."""

    def __init__(self, app, port):
        self.port = port
        self.server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning"))
        self.thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self.thread.start()
        for _ in range(100):
            if self.server.started:
                return self
            time.sleep(0.05)
        raise RuntimeError(f"stub server on port {self.port} did not start")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=5)


@pytest.fixture
def stub_stack():
    """Chain, content store and indexer stubs on free ports, sharing one state."""
    state = StubState()
    graphql, admin = create_indexer_apps(state)
    ports = {
        "ETHEREUM_PORT": free_port(),
        "IPFS_PORT": free_port(),
        "GRAPH_NODE_GRAPHQL_PORT": free_port(),
        "GRAPH_NODE_STATUS_PORT": free_port(),
    }
    servers = [
        ThreadedServer(create_chain_app(state), ports["ETHEREUM_PORT"]),
        ThreadedServer(create_content_store_app(state), ports["IPFS_PORT"]),
        ThreadedServer(graphql, ports["GRAPH_NODE_GRAPHQL_PORT"]),
        ThreadedServer(admin, ports["GRAPH_NODE_STATUS_PORT"]),
    ]
    for server in servers:
        server.start()
    try:
        yield state, ports
    finally:
        for server in servers:
            server.stop()


@pytest.fixture(autouse=True)
def logfile(tmp_path, monkeypatch):
    monkeypatch.setenv("AUTOGRAPHED_LOGFILE", str(tmp_path / "autographed.log"))
