"""Pydantic models and value types for the deployment engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .constants import DEFAULT_VERSION_LABEL

if TYPE_CHECKING:
    from .readiness import ReadinessCheck

_NUMERIC = re.compile(r"\d+")


def parse_numeric_string(value: Any) -> int:
    """Accept only strings of digits (as found in environment variables)."""
    if not isinstance(value, str) or not _NUMERIC.fullmatch(value):
        raise ValueError("must be a string of digits")
    return int(value)


NumericString = Annotated[int, BeforeValidator(parse_numeric_string)]
NonEmptyString = Annotated[str, Field(min_length=1)]


class Environment(BaseModel):
    """Validated configuration record. All fields are required."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    # postgres
    POSTGRES_PORT: NumericString
    POSTGRES_DB: NonEmptyString
    POSTGRES_USER: NonEmptyString
    POSTGRES_PASSWORD: NonEmptyString
    # ethereum
    ETHEREUM_PORT: NumericString
    ETHEREUM_NETWORK: NonEmptyString
    # ipfs
    IPFS_PORT: NumericString
    # the graph
    GRAPH_NODE_STATUS_PORT: NumericString
    GRAPH_NODE_GRAPHQL_PORT: NumericString


class Source(BaseModel):
    """A deployed contract to index."""

    model_config = ConfigDict(frozen=True)

    contract_name: NonEmptyString
    contract_address: NonEmptyString
    abi_path: Path | None = None

    @classmethod
    def parse(cls, text: str) -> Source:
        """Parse ``Name:0xAddress[:path/to/abi.json]``."""
        parts = text.split(":", 2)
        if len(parts) < 2:
            raise ValueError(f"Expected Name:Address[:AbiPath], got {text!r}")
        name, address = parts[0], parts[1]
        abi_path = Path(parts[2]) if len(parts) == 3 and parts[2] else None
        return cls(contract_name=name, contract_address=address, abi_path=abi_path)


class Endpoint(BaseModel):
    """A host/port pair addressing a running service."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class DeploymentPlan(BaseModel):
    """Everything one deployment needs, resolved once and never mutated."""

    model_config = ConfigDict(frozen=True)

    postgres_port: int
    postgres_db: NonEmptyString
    postgres_user: NonEmptyString
    postgres_password: NonEmptyString
    ipfs_port: int
    ethereum_port: int
    ethereum_network: NonEmptyString
    graph_node_graphql_port: int
    graph_node_status_port: int

    hardhat_project_dir: Path
    graph_node_installation_dir: Path
    subgraph_template_dir: Path
    ipfs_repo_dir: Path
    subgraph_name: NonEmptyString
    workspace: NonEmptyString
    version_label: NonEmptyString = DEFAULT_VERSION_LABEL

    @property
    def graph_node_dir(self) -> Path:
        return self.graph_node_installation_dir / "graph-node"

    @property
    def chain_endpoint(self) -> Endpoint:
        return Endpoint(port=self.ethereum_port)

    @property
    def content_store_endpoint(self) -> Endpoint:
        return Endpoint(port=self.ipfs_port)

    @property
    def relational_store_endpoint(self) -> Endpoint:
        return Endpoint(port=self.postgres_port)

    @property
    def indexer_api_endpoint(self) -> Endpoint:
        return Endpoint(port=self.graph_node_graphql_port)

    @property
    def indexer_admin_endpoint(self) -> Endpoint:
        return Endpoint(port=self.graph_node_status_port)


@dataclass(frozen=True)
class ServiceSpec:
    """Launch parameters for one background service."""

    name: str
    command: str
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)
    endpoint: Endpoint | None = None
    readiness: ReadinessCheck | None = None


__all__ = [
    "DeploymentPlan",
    "Endpoint",
    "Environment",
    "NumericString",
    "ServiceSpec",
    "Source",
    "parse_numeric_string",
]
