"""
deployer.py
-----------
Coordinated startup of the local stack and deployment of one subgraph.

    build -> chain node -> (chain ready) -+-> content store launch
                                          +-> relational store launch
                                          +-> content store ready -> indexer node
                                              -> indexer api ready -> create + deploy

deploy() returns once the subgraph is deployed. Every launched service keeps
running; the Deployer owns their handles and never stops them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .models import DeploymentPlan
from .process import BackgroundLauncher, ProcessHandle
from .readiness import ReadinessPoller
from .services import ChainNode, ContentStore, IndexerNode, RelationalStore, Service

if TYPE_CHECKING:
    from connectors.tool_interface import ArtifactBuilder, ManifestPublisher, ProcessLauncher

logger = logging.getLogger(__name__)


class Deployer:
    """Starts the stack in dependency order and deploys the subgraph.

    Args:
        launcher: ProcessLauncher for the services (BackgroundLauncher by default).
        poller: ReadinessPoller used for every readiness wait.
        publisher: ManifestPublisher (graph CLI by default).
        builder: ArtifactBuilder run on the subgraph directory before anything
            is launched. None skips the build step.
    """

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        poller: ReadinessPoller | None = None,
        publisher: ManifestPublisher | None = None,
        builder: ArtifactBuilder | None = None,
    ):
        if publisher is None:
            from connectors.graph_cli import GraphCli
            publisher = GraphCli()
        self.launcher = launcher or BackgroundLauncher()
        self.poller = poller or ReadinessPoller()
        self.publisher = publisher
        self.builder = builder
        self._handles: list[ProcessHandle] = []

    @property
    def launched(self) -> list[str]:
        """Names of the services launched so far, in launch order."""
        return [handle.name for handle in self._handles]

    async def _launch(self, service: Service) -> ProcessHandle:
        handle = await service.start(self.launcher)
        self._handles.append(handle)
        return handle

    async def deploy(self, plan: DeploymentPlan) -> None:
        if self.builder is not None:
            logger.info("Building subgraph in %s", plan.subgraph_template_dir)
            await self.builder.build(plan.subgraph_template_dir)

        chain = ChainNode(plan)
        await self._launch(chain)
        await chain.wait_ready(self.poller)

        branches = [
            asyncio.ensure_future(self._launch(ContentStore(plan))),
            asyncio.ensure_future(self._launch(RelationalStore(plan))),
            asyncio.ensure_future(self._index(plan)),
        ]
        try:
            await asyncio.gather(*branches)
        except BaseException:
            for branch in branches:
                if not branch.done():
                    branch.cancel()
            raise
        logger.info("Subgraph %r deployed; %d service(s) running", plan.subgraph_name, len(self._handles))

    async def _index(self, plan: DeploymentPlan) -> None:
        await ContentStore(plan).wait_ready(self.poller)
        indexer = IndexerNode(plan)
        await self._launch(indexer)
        await indexer.wait_ready(self.poller)
        await self.publisher.create(plan)
        await self.publisher.deploy(plan)

    async def join(self) -> None:
        """Wait until every launched service process has exited."""
        await asyncio.gather(*(handle.wait() for handle in self._handles))


async def deploy(plan: DeploymentPlan, **collaborators) -> None:
    """Run one deployment with a fresh Deployer; services outlive the call."""
    await Deployer(**collaborators).deploy(plan)


__all__ = ["Deployer", "deploy"]
