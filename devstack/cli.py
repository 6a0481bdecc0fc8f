"""
This file is the entry point for the 'autographed' command-line tool.
Run 'autographed --help' in your shell to see the available commands.

Configuration is read from the environment (a .env file in the working
directory is loaded first) or from a JSON/YAML file passed with --config.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from dotenv import load_dotenv

from common.app_setup import monkeypatch_print, print_and_log, print_error, setup_logging
from common.workspace import Workspace
from connectors.graph_cli import GraphCli
from connectors.hardhat import compile_hardhat_project
from connectors.shell import ShellCommandRunner
from devstack.scaffold import build_subgraph, create_subgraph_template, ensure_first_time_setup
from orchestrator import __version__
from orchestrator.config import load_environment, to_deploy_params
from orchestrator.deployer import Deployer
from orchestrator.errors import AutographedError, ConfigurationError
from orchestrator.models import DeploymentPlan, Endpoint, Environment, Source
from orchestrator.process import BackgroundLauncher
from orchestrator.readiness import (
    CHAIN_READINESS,
    CONTENT_STORE_READINESS,
    INDEXER_API_READINESS,
    ReadinessCheck,
    ReadinessPoller,
)

app = typer.Typer(add_completion=False, help="Start a local chain, IPFS, postgres and graph-node stack and deploy a subgraph to it.")

logger = logging.getLogger("autographed")
monkeypatch_print()

ConfigOption = typer.Option(None, "--config", "-c", help="JSON or YAML configuration file (default: environment variables)")
WorkspaceOption = typer.Option(None, "--workspace", "-w", help="Workspace identifier (default: derived from the package version)")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages")):
    setup_logging(app_name="autographed", loglevel=logging.DEBUG if verbose else logging.INFO)
    load_dotenv()


def _emit(result: dict):
    """JSON results go to stdout unformatted so they stay machine readable."""
    typer.echo(json.dumps(result, default=str))
    logger.info(json.dumps(result, default=str))


def _workspace(identifier: Optional[str]) -> Workspace:
    if identifier:
        return Workspace(identifier)
    return Workspace.for_version(__version__)


def _load(config: Optional[Path]) -> Environment:
    try:
        return load_environment(config)
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)


def _load_sources(specs: List[str], sources_file: Optional[Path]) -> list[Source]:
    sources = [Source.parse(spec) for spec in specs]
    if sources_file is not None:
        entries = yaml.safe_load(sources_file.read_text(encoding="utf-8")) or []
        if not isinstance(entries, list):
            raise ValueError(f"{sources_file} must contain a list of sources")
        sources += [Source.model_validate(entry) for entry in entries]
    return sources


@app.command()
def validate(config: Optional[Path] = ConfigOption):
    """Validate the stack configuration and print the result as JSON."""
    try:
        environment = load_environment(config)
    except ConfigurationError as e:
        _emit({"returncode": 1, "valid": False, "errors": e.errors})
        raise typer.Exit(1)
    settings = environment.model_dump()
    settings["POSTGRES_PASSWORD"] = "****"
    _emit({"returncode": 0, "valid": True, "settings": settings})


@app.command()
def setup(
    force: bool = typer.Option(False, "--force", help="Recreate the graph CLI template and graph-node checkout"),
    workspace: Optional[str] = WorkspaceOption,
):
    """Install the graph CLI template and check out graph-node (first time setup)."""
    ws = _workspace(workspace)
    try:
        performed = ensure_first_time_setup(ws, force=force)
    except (AutographedError, OSError) as e:
        print_error(f"Setup failed: {e}")
        raise typer.Exit(1)
    if not performed:
        print_and_log(f"Workspace {ws.identifier} is already set up.")


@app.command()
def build(subgraph_dir: Path = typer.Argument(..., help="Subgraph directory to build")):
    """Run codegen and graph build on a subgraph directory."""
    try:
        build_subgraph(subgraph_dir)
    except AutographedError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command()
def deploy(
    hardhat_project_dir: Path = typer.Option(..., "--hardhat-project-dir", help="Hardhat project with the contracts"),
    subgraph_name: str = typer.Option(..., "--subgraph-name", help="Name to register the subgraph under"),
    source: List[str] = typer.Option([], "--source", "-s", help="Contract source as Name:0xAddress[:AbiPath]; repeatable"),
    sources_file: Optional[Path] = typer.Option(None, "--sources-file", help="YAML/JSON list of sources"),
    config: Optional[Path] = ConfigOption,
    workspace: Optional[str] = WorkspaceOption,
    version_label: str = typer.Option("v0.0.1", "--version-label", help="Version label of the deployment"),
    skip_compile: bool = typer.Option(False, "--skip-compile", help="Do not run `hardhat compile` first"),
    keep_running: bool = typer.Option(True, "--keep-running/--no-keep-running", help="Keep the stack alive after deploying"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not pass service output through"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Readiness deadline in seconds (default: very long)"),
):
    """Compile, scaffold the subgraph, start the stack and deploy the subgraph."""
    environment = _load(config)
    ws = _workspace(workspace)
    hardhat_project_dir = hardhat_project_dir.resolve()
    try:
        sources = _load_sources(source, sources_file)
        if not sources:
            raise typer.BadParameter("at least one --source or --sources-file entry is required")
        if not skip_compile:
            compile_hardhat_project(hardhat_project_dir)
        ensure_first_time_setup(ws)
        # Source code changes all of the time; rebuild the template every run.
        create_subgraph_template(
            sources,
            dir=ws.subgraph_template_dir,
            graph_protocol_template_dir=ws.graph_protocol_template_dir,
            hardhat_project_dir=hardhat_project_dir,
            purge_if_exists=True,
        )
        plan = DeploymentPlan(
            **to_deploy_params(environment),
            hardhat_project_dir=hardhat_project_dir,
            graph_node_installation_dir=ws.graph_node_installation_dir,
            subgraph_template_dir=ws.subgraph_template_dir,
            ipfs_repo_dir=ws.ipfs_repo_dir,
            subgraph_name=subgraph_name,
            workspace=ws.identifier,
            version_label=version_label,
        )
        print_and_log("Deploying...")
        asyncio.run(_deploy(plan, keep_running=keep_running, passthrough=not quiet, timeout=timeout))
    except (AutographedError, OSError, ValueError) as e:
        print_error(f"Deployment failed: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        print_and_log("Interrupted.")
        raise typer.Exit(130)


async def _deploy(plan: DeploymentPlan, keep_running: bool, passthrough: bool, timeout: Optional[float]):
    graph = GraphCli(ShellCommandRunner(passthrough=passthrough))
    poller = ReadinessPoller() if timeout is None else ReadinessPoller(timeout=timeout)
    deployer = Deployer(
        launcher=BackgroundLauncher(passthrough=passthrough),
        poller=poller,
        publisher=graph,
        builder=graph,
    )
    await deployer.deploy(plan)
    print_and_log(
        f"[green]Deployed[/green] {plan.subgraph_name} ({plan.version_label}): "
        f"{plan.indexer_api_endpoint.url}/subgraphs/name/{plan.subgraph_name}"
    )
    if keep_running:
        print_and_log("Stack is running. Press Ctrl+C to exit.")
        await deployer.join()


@app.command()
def status(config: Optional[Path] = ConfigOption):
    """Probe every HTTP endpoint of the stack once and print readiness as JSON."""
    environment = _load(config)
    checks: dict[str, tuple[Endpoint, ReadinessCheck]] = {
        "chain-node": (Endpoint(port=environment.ETHEREUM_PORT), CHAIN_READINESS),
        "content-store": (Endpoint(port=environment.IPFS_PORT), CONTENT_STORE_READINESS),
        "indexer-node": (Endpoint(port=environment.GRAPH_NODE_GRAPHQL_PORT), INDEXER_API_READINESS),
    }
    poller = ReadinessPoller()

    async def probe_all():
        outcomes = await asyncio.gather(*(poller.probe(endpoint, check) for endpoint, check in checks.values()))
        return {name: outcome.is_ready for name, outcome in zip(checks, outcomes)}

    services = asyncio.run(probe_all())
    # postgres speaks no HTTP; its readiness is not probed
    services["relational-store"] = None
    _emit({"returncode": 0, "ready": all(v for v in services.values() if v is not None), "services": services})


if __name__ == "__main__":
    app()
