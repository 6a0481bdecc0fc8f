"""The four background services of the local stack.

Each service builds its command line from the DeploymentPlan, launches it
through a ProcessLauncher and knows which readiness check applies to it.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

from .constants import POSTGRES_IMAGE
from .models import DeploymentPlan, Endpoint, ServiceSpec
from .process import ProcessHandle
from .readiness import (
    CHAIN_READINESS,
    CONTENT_STORE_READINESS,
    INDEXER_API_READINESS,
    ProbeOutcome,
    ReadinessCheck,
    ReadinessPoller,
    wait_for_chain,
    wait_for_content_store,
    wait_for_indexer_api,
)

if TYPE_CHECKING:
    from connectors.tool_interface import ProcessLauncher

logger = logging.getLogger(__name__)


class Service:
    """Base class: a launchable process plus an optional readiness check."""

    name: str = "service"
    readiness: ReadinessCheck | None = None

    def __init__(self, plan: DeploymentPlan):
        self.plan = plan

    @property
    def endpoint(self) -> Endpoint:
        raise NotImplementedError

    @property
    def cwd(self) -> Path:
        raise NotImplementedError

    def command(self) -> str:
        raise NotImplementedError

    def env(self) -> dict[str, str]:
        return {}

    def spec(self) -> ServiceSpec:
        return ServiceSpec(
            name=self.name,
            command=self.command(),
            cwd=self.cwd,
            env=self.env(),
            endpoint=self.endpoint,
            readiness=self.readiness,
        )

    async def start(self, launcher: ProcessLauncher) -> ProcessHandle:
        return await launcher.launch(self.spec())

    async def wait_ready(self, poller: ReadinessPoller) -> ProbeOutcome:
        if self.readiness is None:
            raise TypeError(f"{self.name} has no readiness check")
        return await poller.wait(self.endpoint, self.readiness)


class ChainNode(Service):
    """Local hardhat JSON-RPC node, run from the hardhat project."""

    name = "chain-node"
    readiness = CHAIN_READINESS

    async def wait_ready(self, poller: ReadinessPoller) -> ProbeOutcome:
        return await wait_for_chain(self.endpoint, poller)

    @property
    def endpoint(self) -> Endpoint:
        return self.plan.chain_endpoint

    @property
    def cwd(self) -> Path:
        return self.plan.hardhat_project_dir

    def command(self) -> str:
        return f"npx hardhat node --hostname 127.0.0.1 --port {self.plan.ethereum_port}"


class ContentStore(Service):
    """IPFS daemon with its repository kept in the workspace."""

    name = "content-store"
    readiness = CONTENT_STORE_READINESS

    async def wait_ready(self, poller: ReadinessPoller) -> ProbeOutcome:
        return await wait_for_content_store(self.endpoint, poller)

    @property
    def endpoint(self) -> Endpoint:
        return self.plan.content_store_endpoint

    @property
    def cwd(self) -> Path:
        return self.plan.ipfs_repo_dir

    def env(self) -> dict[str, str]:
        return {"IPFS_PATH": str(self.plan.ipfs_repo_dir)}

    def command(self) -> str:
        api = f"/ip4/127.0.0.1/tcp/{self.plan.ipfs_port}"
        return (
            "(ipfs init --profile test > /dev/null 2>&1 || true)"
            f" && ipfs config Addresses.API {api}"
            " && ipfs config Addresses.Gateway /ip4/127.0.0.1/tcp/0"
            " && ipfs daemon --offline"
        )

    async def start(self, launcher: ProcessLauncher) -> ProcessHandle:
        self.plan.ipfs_repo_dir.mkdir(parents=True, exist_ok=True)
        return await super().start(launcher)


class RelationalStore(Service):
    """Postgres in a throwaway docker container.

    Its readiness is never awaited: the indexer node retries its own database
    connection, and the deployer only needs the process to have been started.
    """

    name = "relational-store"
    readiness = None

    @property
    def endpoint(self) -> Endpoint:
        return self.plan.relational_store_endpoint

    @property
    def cwd(self) -> Path:
        return self.plan.graph_node_installation_dir

    def command(self) -> str:
        plan = self.plan
        args = [
            "docker", "run", "--rm",
            "--name", f"autographed-postgres-{plan.workspace}",
            "-p", f"{plan.postgres_port}:5432",
            "-e", f"POSTGRES_USER={plan.postgres_user}",
            "-e", f"POSTGRES_PASSWORD={plan.postgres_password}",
            "-e", f"POSTGRES_DB={plan.postgres_db}",
            "-e", "POSTGRES_INITDB_ARGS=-E UTF8 --locale=C",
            POSTGRES_IMAGE,
        ]
        return shlex.join(args)


class IndexerNode(Service):
    """graph-node built and run from the local checkout."""

    name = "indexer-node"
    readiness = INDEXER_API_READINESS

    async def wait_ready(self, poller: ReadinessPoller) -> ProbeOutcome:
        return await wait_for_indexer_api(self.endpoint, poller)

    @property
    def endpoint(self) -> Endpoint:
        return self.plan.indexer_api_endpoint

    @property
    def cwd(self) -> Path:
        return self.plan.graph_node_dir

    def postgres_url(self) -> str:
        plan = self.plan
        return (
            f"postgresql://{quote(plan.postgres_user, safe='')}:{quote(plan.postgres_password, safe='')}"
            f"@localhost:{plan.postgres_port}/{plan.postgres_db}"
        )

    def command(self) -> str:
        plan = self.plan
        args = [
            "cargo", "run", "-p", "graph-node", "--release", "--",
            "--postgres-url", self.postgres_url(),
            "--ethereum-rpc", f"{plan.ethereum_network}:http://127.0.0.1:{plan.ethereum_port}",
            "--ipfs", f"127.0.0.1:{plan.ipfs_port}",
            "--http-port", str(plan.graph_node_graphql_port),
            "--admin-port", str(plan.graph_node_status_port),
        ]
        return shlex.join(args)


def build_services(plan: DeploymentPlan) -> dict[str, Service]:
    services = [ChainNode(plan), ContentStore(plan), RelationalStore(plan), IndexerNode(plan)]
    return {service.name: service for service in services}


__all__ = [
    "ChainNode",
    "ContentStore",
    "IndexerNode",
    "RelationalStore",
    "Service",
    "build_services",
]
