"""
shell.py
--------
Runs external tools (npm, npx graph, hardhat, git) with the standard streams
passed through to the terminal.

run_command is blocking and used by the scaffolding pipeline, which runs
before the event loop starts. ShellCommandRunner is the async variant used
by the deployer.
"""

import asyncio
import logging
import subprocess
from pathlib import Path

from orchestrator.errors import CommandError
from orchestrator.process import ProcessHandle

logger = logging.getLogger(__name__)


def run_command(command: str, cwd: str | Path, quiet: bool = False) -> None:
    """Run ``command`` in a shell inside ``cwd``; raise CommandError on failure."""
    logger.info("Running in %s: %s", cwd, command)
    stream = subprocess.DEVNULL if quiet else None
    result = subprocess.run(command, shell=True, cwd=str(cwd), stdout=stream, stderr=stream)
    if result.returncode != 0:
        raise CommandError(command, result.returncode, log=True)


class ShellCommandRunner:
    """Async CommandRunner based on asyncio subprocesses."""

    def __init__(self, passthrough: bool = True):
        self.passthrough = passthrough

    async def run(self, command: str, cwd: Path) -> None:
        logger.info("Running in %s: %s", cwd, command)
        stream = None if self.passthrough else subprocess.DEVNULL
        proc = await asyncio.create_subprocess_shell(
            command, cwd=str(cwd), stdin=subprocess.DEVNULL, stdout=stream, stderr=stream
        )
        try:
            returncode = await proc.wait()
        except asyncio.CancelledError:
            logger.info("Cancelled, stopping: %s", command)
            ProcessHandle(name=command, process=proc, command=command).terminate()
            raise
        if returncode != 0:
            raise CommandError(command, returncode, log=True)
        logger.debug("Command finished: %s", command)
