from pathlib import Path
from typing import Protocol

from orchestrator.models import DeploymentPlan, ServiceSpec
from orchestrator.process import ProcessHandle


class ProcessLauncher(Protocol):
    """Starts a background service process and returns immediately.

    Implementations raise LaunchError when the process cannot be spawned.
    """
    async def launch(self, spec: ServiceSpec) -> ProcessHandle: ...


class CommandRunner(Protocol):
    """Runs one external command to completion.

    Must raise CommandError when the command exits non-zero.
    """
    async def run(self, command: str, cwd: Path) -> None: ...


class ArtifactBuilder(Protocol):
    """Produces the build artifact of a directory ("succeeds or throws")."""
    async def build(self, directory: Path) -> None: ...


class ManifestPublisher(Protocol):
    """
    Registers a manifest name with the indexer node and pushes its content.
    Both calls target the endpoints named in the plan.
    """
    async def create(self, plan: DeploymentPlan) -> None: ...
    async def deploy(self, plan: DeploymentPlan) -> None: ...
