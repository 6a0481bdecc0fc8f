"""
process.py
----------
Starts long-running service processes in the background.

A launched process is expected to run until the orchestrating process exits.
The handle still carries a terminate() so shutdown can be added later; the
deployer itself never calls it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass, field

import psutil

from .errors import LaunchError
from .models import ServiceSpec

logger = logging.getLogger(__name__)


@dataclass
class ProcessHandle:
    """A spawned background service process."""

    name: str
    process: asyncio.subprocess.Process
    command: str = field(default="", repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def running(self) -> bool:
        if self.process.returncode is not None:
            return False
        try:
            return psutil.Process(self.pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

    async def wait(self) -> int:
        return await self.process.wait()

    def terminate(self) -> None:
        """Send SIGTERM to the process and every child it spawned (shell commands fork)."""
        try:
            parent = psutil.Process(self.pid)
            children = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            return
        for proc in children + [parent]:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                continue
        logger.info("Sent SIGTERM to %s (PID %s) and %d child process(es)", self.name, self.pid, len(children))


class BackgroundLauncher:
    """Spawns ServiceSpecs with a shell, returning as soon as the process exists.

    With ``passthrough`` the child writes to the parent's stdout/stderr,
    otherwise its output is discarded. Nothing is captured.
    """

    def __init__(self, passthrough: bool = True):
        self.passthrough = passthrough

    async def launch(self, spec: ServiceSpec) -> ProcessHandle:
        stream = None if self.passthrough else subprocess.DEVNULL
        env = {**os.environ, **spec.env} if spec.env else None
        if not spec.cwd.is_dir():
            raise LaunchError(spec.name, f"working directory {spec.cwd} does not exist", log=True)
        try:
            proc = await asyncio.create_subprocess_shell(
                spec.command,
                cwd=str(spec.cwd),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
            )
        except OSError as exc:
            raise LaunchError(spec.name, str(exc), log=True) from exc
        logger.info("Launched %s with PID %s: %s", spec.name, proc.pid, spec.command)
        return ProcessHandle(name=spec.name, process=proc, command=spec.command)


__all__ = ["BackgroundLauncher", "ProcessHandle"]
