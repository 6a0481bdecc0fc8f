"""Connector for hardhat projects: compilation and artifact lookup."""

from pathlib import Path

from connectors.shell import run_command
from orchestrator.models import Source


def compile_hardhat_project(hardhat_project_dir: str | Path) -> None:
    """Compile the contracts of a hardhat project (writes ./artifacts)."""
    project = Path(hardhat_project_dir)
    if not (project / "package.json").is_file():
        raise FileNotFoundError(f"Unable to find a hardhat project at {project}")
    run_command("npx hardhat compile", project)


def artifact_abi_path(hardhat_project_dir: str | Path, contract_name: str) -> Path:
    """Locate ``artifacts/contracts/**/<Name>.json`` for a compiled contract."""
    artifacts = Path(hardhat_project_dir) / "artifacts" / "contracts"
    matches = sorted(artifacts.glob(f"**/{contract_name}.json"))
    if not matches:
        raise FileNotFoundError(f"No compiled artifact for {contract_name} under {artifacts}")
    return matches[0]


def resolve_abi_path(source: Source, hardhat_project_dir: str | Path | None) -> Path:
    """Explicit abi_path wins; otherwise look the contract up in the hardhat artifacts."""
    if source.abi_path is not None:
        return source.abi_path
    if hardhat_project_dir is None:
        raise ValueError(f"No ABI path for {source.contract_name} and no hardhat project given")
    return artifact_abi_path(hardhat_project_dir, source.contract_name)
