"""Exceptions raised by the deployment engine and its tool connectors."""

import logging

mylogger = logging.getLogger(__name__)


class AutographedError(Exception):
    """Base exception with a message. Optionally logged when raised."""
    def __init__(self, message="A deployment error occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            mylogger.error(message)


class ConfigurationError(AutographedError):
    """A configuration record is missing fields or fails validation."""
    def __init__(self, errors: dict[str, str], log=False):
        self.errors = errors
        details = "; ".join(f"{field}: {reason}" for field, reason in errors.items())
        super().__init__(f"Invalid configuration: {details}", log=log)


class LaunchError(AutographedError):
    """A background service process could not be spawned."""
    def __init__(self, service: str, reason: str, log=False):
        self.service = service
        super().__init__(f"Failed to launch {service}: {reason}", log=log)


class CommandError(AutographedError):
    """An external command exited with a non-zero status."""
    def __init__(self, command: str, returncode: int, log=False):
        self.command = command
        self.returncode = returncode
        super().__init__(f"Command {command!r} exited with code {returncode}", log=log)


class ReadinessTimeout(AutographedError):
    """An endpoint did not become ready before the poller deadline."""
    def __init__(self, url: str, elapsed: float, log=False):
        self.url = url
        self.elapsed = elapsed
        super().__init__(f"{url} not ready after {elapsed:.1f}s", log=log)


__all__ = [
    "AutographedError",
    "CommandError",
    "ConfigurationError",
    "LaunchError",
    "ReadinessTimeout",
]
