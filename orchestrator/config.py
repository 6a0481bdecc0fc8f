"""Loading and validation of the stack configuration."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .models import Environment

logger = logging.getLogger(__name__)


def parse_environment(payload: Mapping[str, Any]) -> Environment:
    """Validate ``payload`` and raise ConfigurationError naming every bad field."""
    try:
        return Environment.model_validate(dict(payload))
    except ValidationError as exc:
        errors = {
            ".".join(str(part) for part in err["loc"]) or "<root>": err["msg"]
            for err in exc.errors()
        }
        raise ConfigurationError(errors) from exc


def load_environment(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Environment:
    """Load the configuration from a JSON/YAML file, or from the environment.

    ``environ`` defaults to ``os.environ``; callers load ``.env`` beforehand.
    """
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError({"<file>": f"configuration file not found: {path}"})
        try:
            payload = _load_text_payload(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise ConfigurationError({"<file>": f"{path} is not UTF-8 text: {exc.reason}"}) from exc
        logger.info("Loaded configuration from %s", path)
    else:
        payload = dict(os.environ if environ is None else environ)
    return parse_environment(payload)


def to_deploy_params(environment: Environment) -> dict[str, Any]:
    """Keyword arguments for DeploymentPlan derived from a configuration record."""
    return {
        "postgres_port": environment.POSTGRES_PORT,
        "postgres_db": environment.POSTGRES_DB,
        "postgres_user": environment.POSTGRES_USER,
        "postgres_password": environment.POSTGRES_PASSWORD,
        "ipfs_port": environment.IPFS_PORT,
        "ethereum_port": environment.ETHEREUM_PORT,
        "ethereum_network": environment.ETHEREUM_NETWORK,
        "graph_node_graphql_port": environment.GRAPH_NODE_GRAPHQL_PORT,
        "graph_node_status_port": environment.GRAPH_NODE_STATUS_PORT,
    }


def _load_text_payload(raw: str | bytes) -> dict[str, Any]:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError({"<file>": f"neither YAML nor JSON: {exc}"}) from exc
    if not isinstance(payload, dict):
        raise ConfigurationError({"<file>": "configuration must be a mapping"})
    return payload


__all__ = ["load_environment", "parse_environment", "to_deploy_params"]
