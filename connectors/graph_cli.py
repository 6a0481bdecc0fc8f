"""Connector for the graph command line tool (@graphprotocol/graph-cli)."""

import logging
import shlex
from pathlib import Path

from connectors.shell import ShellCommandRunner
from connectors.tool_interface import CommandRunner
from orchestrator.models import DeploymentPlan, Source

logger = logging.getLogger(__name__)

GRAPH = "npx graph"
CODEGEN_SCRIPT = "graph codegen --output-dir src/types/ subgraph.yaml"


def codegen_command() -> str:
    return "npm run-script codegen"


def build_command() -> str:
    return f"{GRAPH} build"


def add_source_command(source: Source, abi_path: Path) -> str:
    return (
        f"{GRAPH} add {shlex.quote(source.contract_address)}"
        f" --abi {shlex.quote(str(abi_path))}"
        f" --contract-name {shlex.quote(source.contract_name)}"
    )


def create_command(plan: DeploymentPlan) -> str:
    return f"{GRAPH} create --node {plan.indexer_admin_endpoint.url} {shlex.quote(plan.subgraph_name)}"


def deploy_command(plan: DeploymentPlan) -> str:
    return (
        f"{GRAPH} deploy"
        f" --node {plan.indexer_admin_endpoint.url}"
        f" --ipfs {plan.content_store_endpoint.url}"
        f" --version-label {shlex.quote(plan.version_label)}"
        f" {shlex.quote(plan.subgraph_name)}"
    )


class GraphCli:
    """
    ArtifactBuilder and ManifestPublisher backed by the graph CLI.

    Args:
        runner: CommandRunner used for every invocation.
            Defaults to a ShellCommandRunner that passes output through.
    """

    def __init__(self, runner: CommandRunner | None = None):
        self.runner: CommandRunner = runner or ShellCommandRunner()

    async def codegen(self, directory: Path) -> None:
        await self.runner.run(codegen_command(), directory)

    async def build(self, directory: Path) -> None:
        """Regenerate types and compile the subgraph mappings."""
        await self.codegen(directory)
        await self.runner.run(build_command(), directory)

    async def create(self, plan: DeploymentPlan) -> None:
        """Register the subgraph name with the indexer node."""
        logger.info("Registering subgraph %r", plan.subgraph_name)
        await self.runner.run(create_command(plan), plan.subgraph_template_dir)

    async def deploy(self, plan: DeploymentPlan) -> None:
        """Upload the subgraph to the content store and deploy it under the version label."""
        logger.info("Deploying subgraph %r (%s)", plan.subgraph_name, plan.version_label)
        await self.runner.run(deploy_command(plan), plan.subgraph_template_dir)
