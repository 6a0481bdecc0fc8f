import asyncio
import json

import httpx
import pytest

from orchestrator.errors import ReadinessTimeout
from orchestrator.models import Endpoint
from orchestrator.readiness import (
    CHAIN_READINESS,
    CONTENT_STORE_READINESS,
    INDEXER_API_READINESS,
    ProbeOutcome,
    ReadinessPoller,
    wait_for_chain,
    wait_for_content_store,
    wait_for_indexer_api,
)

ENDPOINT = Endpoint(port=5001)


def status_transport(status_code):
    return httpx.MockTransport(lambda request: httpx.Response(status_code))


def refused_transport():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)
    return httpx.MockTransport(handler)


def poller_for(transport, **kwargs):
    kwargs.setdefault("interval", 0.01)
    return ReadinessPoller(transport=transport, **kwargs)


@pytest.mark.asyncio
async def test_content_store_ready_on_200():
    outcome = await poller_for(status_transport(200)).wait(ENDPOINT, CONTENT_STORE_READINESS)
    assert outcome is ProbeOutcome.READY


@pytest.mark.asyncio
async def test_content_store_ready_on_404():
    outcome = await wait_for_content_store(ENDPOINT, poller_for(status_transport(404)))
    assert outcome is ProbeOutcome.READY_VIA_ERROR
    assert outcome.is_ready


@pytest.mark.asyncio
async def test_content_store_not_ready_on_connection_refused():
    poller = poller_for(refused_transport())
    assert await poller.probe(ENDPOINT, CONTENT_STORE_READINESS) is ProbeOutcome.NOT_READY
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(poller.wait(ENDPOINT, CONTENT_STORE_READINESS), timeout=0.3)


@pytest.mark.asyncio
async def test_404_only_counts_for_the_content_store():
    poller = poller_for(status_transport(404))
    assert await poller.probe(ENDPOINT, CHAIN_READINESS) is ProbeOutcome.NOT_READY
    assert await poller.probe(ENDPOINT, INDEXER_API_READINESS) is ProbeOutcome.NOT_READY


@pytest.mark.asyncio
async def test_server_errors_are_retried():
    poller = poller_for(status_transport(503))
    assert await poller.probe(ENDPOINT, CONTENT_STORE_READINESS) is ProbeOutcome.NOT_READY


@pytest.mark.asyncio
async def test_never_responding_endpoint_never_resolves():
    poller = poller_for(refused_transport(), timeout=None)
    task = asyncio.ensure_future(poller.wait(ENDPOINT, INDEXER_API_READINESS))
    await asyncio.sleep(0.5)
    assert not task.done()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_deadline_is_honoured():
    poller = poller_for(refused_transport(), interval=0.05, timeout=0.3)
    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(ReadinessTimeout) as excinfo:
        await poller.wait(ENDPOINT, CHAIN_READINESS)
    assert loop.time() - started < 2
    assert excinfo.value.url == ENDPOINT.url


@pytest.mark.asyncio
async def test_polls_until_endpoint_comes_up():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 4:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x0"})

    outcome = await poller_for(httpx.MockTransport(handler)).wait(ENDPOINT, CHAIN_READINESS)
    assert outcome is ProbeOutcome.READY
    assert len(attempts) == 4


@pytest.mark.asyncio
async def test_chain_probe_is_a_json_rpc_call():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x0"})

    await wait_for_chain(Endpoint(port=8545), poller_for(httpx.MockTransport(handler)))
    request = seen[0]
    assert request.method == "POST"
    assert request.url == httpx.URL("http://localhost:8545/")
    assert json.loads(request.content)["method"] == "eth_blockNumber"


@pytest.mark.asyncio
async def test_interval_between_probes():
    times = []
    loop = asyncio.get_running_loop()

    def handler(request):
        times.append(loop.time())
        if len(times) < 3:
            return httpx.Response(503)
        return httpx.Response(200)

    await poller_for(httpx.MockTransport(handler), interval=0.1).wait(ENDPOINT, INDEXER_API_READINESS)
    assert times[1] - times[0] >= 0.09
    assert times[2] - times[1] >= 0.09


@pytest.mark.asyncio
async def test_indexer_api_404_is_not_ready():
    poller = poller_for(status_transport(404), timeout=0.1)
    with pytest.raises(ReadinessTimeout):
        await wait_for_indexer_api(Endpoint(port=8000), poller)
