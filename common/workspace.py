"""Per-version working directories shared by the scaffolding and deploy stages."""

from __future__ import annotations

import hashlib
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path


def version_seed(version: str) -> str:
    """Stable identifier derived from a version string."""
    return hashlib.sha256(version.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class Workspace:
    """Names directories as ``<root>/<name>__<identifier>``.

    The identifier is always supplied by the caller, so two different
    versions (or two test runs) never share directories by accident.
    """

    identifier: str
    root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    def __post_init__(self) -> None:
        if not self.identifier or "/" in self.identifier:
            raise ValueError(f"Invalid workspace identifier: {self.identifier!r}")

    @classmethod
    def for_version(cls, version: str, root: Path | None = None) -> Workspace:
        if root is None:
            return cls(version_seed(version))
        return cls(version_seed(version), Path(root))

    def path(self, name: str) -> Path:
        return self.root / f"{name}__{self.identifier}"

    def random_path(self) -> Path:
        return self.root / uuid.uuid4().hex

    @property
    def graph_protocol_template_dir(self) -> Path:
        return self.path("graphProtocolTemplateDir")

    @property
    def graph_node_installation_dir(self) -> Path:
        return self.path("graphNodeInstallationDir")

    @property
    def subgraph_template_dir(self) -> Path:
        return self.path("subgraphTemplateDir")

    @property
    def ipfs_repo_dir(self) -> Path:
        return self.path("ipfsRepoDir")


__all__ = ["Workspace", "version_seed"]
