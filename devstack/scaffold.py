"""
scaffold.py
-----------
Builds the directories a deployment needs:

- the graph CLI template (a node project with @graphprotocol/graph-cli),
- the graph-node checkout,
- a subgraph generated from a list of contract sources.

All subprocesses go through connectors.shell.run_command; failures raise
CommandError and stop the pipeline.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Iterable

import yaml
from box import Box

from common.app_setup import print_and_log
from common.workspace import Workspace
from connectors.graph_cli import CODEGEN_SCRIPT, add_source_command, build_command, codegen_command
from connectors.hardhat import resolve_abi_path
from connectors.shell import run_command
from orchestrator.constants import GRAPH_CLI_VERSION, GRAPH_NODE_REPOSITORY
from orchestrator.models import Source

logger = logging.getLogger(__name__)

# Files `graph add` and the example subgraph leave behind that we do not want.
TEMPLATE_LEFTOVERS = (
    Path("src", "my-contract-name.ts"),
    Path("tests", "my-contract-name-utils.ts"),
    Path("tests", "my-contract-name.test.ts"),
    Path("src", "mapping.ts"),
)


def throw_or_purge_on_dir_exists(dir: str | Path, purge_if_exists: bool = False) -> None:
    """Refuse to touch an existing directory unless asked to delete it."""
    dir = Path(dir)
    if dir.exists():
        if not purge_if_exists:
            raise FileExistsError("The target directory already exists. Refusing to continue.")
        logger.info("Purging %s", dir)
        shutil.rmtree(dir)


def create_graph_protocol_template(dir: str | Path, purge_if_exists: bool = False) -> Path:
    """An empty node project with the graph CLI installed."""
    dir = Path(dir)
    throw_or_purge_on_dir_exists(dir, purge_if_exists)
    dir.mkdir(parents=True)
    (dir / "package.json").write_text(json.dumps({}))
    run_command(f"npm i --save @graphprotocol/graph-cli@{GRAPH_CLI_VERSION}", dir)
    return dir


def ensure_graph_node_installation(graph_node_installation_dir: str | Path, purge_if_exists: bool = False) -> Box:
    """Clone graph-node once. An existing checkout is reused unless purging."""
    root = Path(graph_node_installation_dir)
    graph_node_dir = root / "graph-node"
    if not purge_if_exists and (graph_node_dir / "Cargo.toml").is_file():
        logger.info("Reusing graph-node checkout at %s", graph_node_dir)
        return Box(graph_node_dir=graph_node_dir)
    throw_or_purge_on_dir_exists(root, purge_if_exists)
    root.mkdir(parents=True)
    run_command(f"git clone --depth 1 {GRAPH_NODE_REPOSITORY} graph-node", root)
    return Box(graph_node_dir=graph_node_dir)


def example_subgraph_dir(graph_protocol_template_dir: Path) -> Path:
    return graph_protocol_template_dir / "node_modules" / "@graphprotocol" / "graph-cli" / "examples" / "example-subgraph"


def create_subgraph_template(
    sources: Iterable[Source],
    dir: str | Path,
    graph_protocol_template_dir: str | Path,
    hardhat_project_dir: str | Path | None = None,
    purge_if_exists: bool = False,
) -> Box:
    """Generate a subgraph indexing ``sources`` from the graph CLI example subgraph.

    Returns the paths of package.json, subgraph.yaml, networks.json and
    schema.graphql as a Box.
    """
    dir = Path(dir)
    graph_protocol_template_dir = Path(graph_protocol_template_dir)
    if not graph_protocol_template_dir.exists():
        raise FileNotFoundError(f'Unable to find graphProtocolTemplate at "{graph_protocol_template_dir}".')

    throw_or_purge_on_dir_exists(dir, purge_if_exists)

    example = example_subgraph_dir(graph_protocol_template_dir)
    if not example.exists():
        raise FileNotFoundError(f'Unable to find exampleSubgraphDir at "{example}".')
    shutil.copytree(example, dir)

    paths = Box(
        package_json=dir / "package.json",
        subgraph_yaml=dir / "subgraph.yaml",
        networks_json=dir / "networks.json",
        schema_graphql=dir / "schema.graphql",
    )
    original_schema = paths.schema_graphql.read_text(encoding="utf-8")

    # Rewrite commands.
    package = json.loads(paths.package_json.read_text(encoding="utf-8"))
    package["scripts"] = {"codegen": CODEGEN_SCRIPT}
    paths.package_json.write_text(json.dumps(package, indent=2))
    paths.networks_json.write_text(json.dumps({}))

    for source in sources:
        abi_path = resolve_abi_path(source, hardhat_project_dir)
        run_command(add_source_command(source, abi_path), dir)

    for leftover in TEMPLATE_LEFTOVERS:
        (dir / leftover).unlink(missing_ok=True)

    # Drop the example data source, keep the ones `graph add` appended.
    manifest = yaml.safe_load(paths.subgraph_yaml.read_text(encoding="utf-8"))
    manifest["dataSources"] = list(manifest.get("dataSources") or [])[1:]
    paths.subgraph_yaml.write_text(yaml.safe_dump(manifest, sort_keys=False))

    # `graph add` appends entities; strip the example ones.
    schema = paths.schema_graphql.read_text(encoding="utf-8")
    paths.schema_graphql.write_text(schema[len(original_schema):])

    shutil.rmtree(dir / "src" / "types", ignore_errors=True)

    run_command(codegen_command(), dir)
    generated = dir / "generated"
    if generated.exists():
        shutil.rmtree(generated)
    shutil.move(str(dir / "src" / "types"), str(generated))

    run_command("npm i", dir)
    logger.info("Subgraph template ready at %s", dir)
    return paths


def build_subgraph(subgraph_dir: str | Path) -> None:
    run_command(codegen_command(), subgraph_dir)
    run_command(build_command(), subgraph_dir)


def ensure_first_time_setup(workspace: Workspace, force: bool = False) -> bool:
    """Create the graph CLI template and graph-node checkout when missing.

    Returns True when setup was performed.
    """
    template_dir = workspace.graph_protocol_template_dir
    installation_dir = workspace.graph_node_installation_dir
    if not force and template_dir.exists() and installation_dir.exists():
        return False
    print_and_log("Performing first time setup...")
    create_graph_protocol_template(template_dir, purge_if_exists=True)
    ensure_graph_node_installation(installation_dir, purge_if_exists=True)
    return True


__all__ = [
    "build_subgraph",
    "create_graph_protocol_template",
    "create_subgraph_template",
    "ensure_first_time_setup",
    "ensure_graph_node_installation",
    "throw_or_purge_on_dir_exists",
]
