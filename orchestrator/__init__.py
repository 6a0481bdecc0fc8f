"""Deployment engine: readiness polling, background services and the deployer."""

__version__ = "0.1.0"

from .config import load_environment, parse_environment, to_deploy_params
from .constants import DEFAULT_SETTINGS
from .deployer import Deployer, deploy
from .errors import AutographedError, CommandError, ConfigurationError, LaunchError, ReadinessTimeout
from .models import DeploymentPlan, Endpoint, Environment, ServiceSpec, Source
from .process import BackgroundLauncher, ProcessHandle
from .readiness import ProbeOutcome, ReadinessCheck, ReadinessPoller

__all__ = [
    "AutographedError",
    "BackgroundLauncher",
    "CommandError",
    "ConfigurationError",
    "DEFAULT_SETTINGS",
    "Deployer",
    "DeploymentPlan",
    "Endpoint",
    "Environment",
    "LaunchError",
    "ProbeOutcome",
    "ProcessHandle",
    "ReadinessCheck",
    "ReadinessPoller",
    "ReadinessTimeout",
    "ServiceSpec",
    "Source",
    "deploy",
    "load_environment",
    "parse_environment",
    "to_deploy_params",
]
