import asyncio

import psutil
import pytest

from orchestrator.errors import LaunchError
from orchestrator.models import ServiceSpec
from orchestrator.process import BackgroundLauncher


@pytest.mark.asyncio
async def test_launch_returns_immediately_with_running_handle(tmp_path):
    launcher = BackgroundLauncher(passthrough=False)
    spec = ServiceSpec(name="sleeper", command="sleep 30", cwd=tmp_path)
    handle = await asyncio.wait_for(launcher.launch(spec), timeout=5)
    try:
        assert handle.name == "sleeper"
        assert psutil.pid_exists(handle.pid)
        assert handle.running
        assert handle.returncode is None
    finally:
        handle.terminate()
        await asyncio.wait_for(handle.wait(), timeout=5)
    assert not handle.running


@pytest.mark.asyncio
async def test_terminate_reaches_child_processes(tmp_path):
    launcher = BackgroundLauncher(passthrough=False)
    # two commands keep the shell alive as the parent of `sleep`
    spec = ServiceSpec(name="tree", command="sleep 30; true", cwd=tmp_path)
    handle = await launcher.launch(spec)
    for _ in range(50):
        children = psutil.Process(handle.pid).children(recursive=True)
        if children:
            break
        await asyncio.sleep(0.05)
    assert children
    handle.terminate()
    await asyncio.wait_for(handle.wait(), timeout=5)
    gone, alive = psutil.wait_procs(children, timeout=5)
    assert not alive


@pytest.mark.asyncio
async def test_launch_runs_in_cwd_with_extra_env(tmp_path):
    launcher = BackgroundLauncher(passthrough=False)
    spec = ServiceSpec(name="writer", command='echo "$GREETING" > out.txt', cwd=tmp_path, env={"GREETING": "hello"})
    handle = await launcher.launch(spec)
    assert await asyncio.wait_for(handle.wait(), timeout=5) == 0
    assert (tmp_path / "out.txt").read_text().strip() == "hello"


@pytest.mark.asyncio
async def test_each_launch_creates_a_new_process(tmp_path):
    launcher = BackgroundLauncher(passthrough=False)
    spec = ServiceSpec(name="sleeper", command="sleep 30", cwd=tmp_path)
    first = await launcher.launch(spec)
    second = await launcher.launch(spec)
    try:
        assert first.pid != second.pid
    finally:
        for handle in (first, second):
            handle.terminate()
            await asyncio.wait_for(handle.wait(), timeout=5)


@pytest.mark.asyncio
async def test_missing_working_directory_is_a_launch_error(tmp_path):
    launcher = BackgroundLauncher(passthrough=False)
    spec = ServiceSpec(name="lost", command="sleep 1", cwd=tmp_path / "missing")
    with pytest.raises(LaunchError) as excinfo:
        await launcher.launch(spec)
    assert excinfo.value.service == "lost"
