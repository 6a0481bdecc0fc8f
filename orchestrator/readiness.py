"""
readiness.py
------------
Retry-until-ready polling against HTTP endpoints.

A ReadinessCheck describes one probe. The ReadinessPoller repeats it at a
fixed interval until the endpoint answers, or until the check classifies the
error of a failed probe as "reachable anyway" (a 404 from the content store).
There is no retry count; the only bound is the poller deadline.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from .constants import DEFAULT_READINESS_TIMEOUT, PROBE_REQUEST_TIMEOUT, READINESS_INTERVAL
from .errors import ReadinessTimeout
from .models import Endpoint

logger = logging.getLogger(__name__)


class ProbeOutcome(enum.Enum):
    READY = "ready"
    READY_VIA_ERROR = "ready_via_error"
    NOT_READY = "not_ready"

    @property
    def is_ready(self) -> bool:
        return self is not ProbeOutcome.NOT_READY


@dataclass(frozen=True)
class ReadinessCheck:
    """One HTTP probe and its failure classification."""

    name: str
    method: str = "GET"
    path: str = "/"
    payload: Any = None
    accepts_error: Callable[[Exception], bool] | None = None


def is_not_found(exc: Exception) -> bool:
    """True for an HTTP 404 response: the server is up, it just has nothing there."""
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 404


CHAIN_READINESS = ReadinessCheck(
    name="chain",
    method="POST",
    payload={"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1},
)
CONTENT_STORE_READINESS = ReadinessCheck(name="content-store", accepts_error=is_not_found)
INDEXER_API_READINESS = ReadinessCheck(name="indexer-api")


class ReadinessPoller:
    """Polls endpoints until ready.

    Args:
        interval: seconds between two probes.
        timeout: overall deadline per wait() in seconds; None waits forever.
        request_timeout: timeout of a single HTTP probe.
        transport: optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        interval: float = READINESS_INTERVAL,
        timeout: float | None = DEFAULT_READINESS_TIMEOUT,
        request_timeout: float = PROBE_REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.interval = interval
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.request_timeout, transport=self.transport)

    async def _probe(self, client: httpx.AsyncClient, endpoint: Endpoint, check: ReadinessCheck) -> ProbeOutcome:
        url = f"{endpoint.url}/{check.path.lstrip('/')}"
        try:
            response = await client.request(check.method, url, json=check.payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            if check.accepts_error is not None and check.accepts_error(exc):
                logger.debug("%s probe at %s accepted error: %s", check.name, url, exc)
                return ProbeOutcome.READY_VIA_ERROR
            logger.debug("%s probe at %s not ready: %s", check.name, url, exc)
            return ProbeOutcome.NOT_READY
        return ProbeOutcome.READY

    async def probe(self, endpoint: Endpoint, check: ReadinessCheck) -> ProbeOutcome:
        """Run a single probe."""
        async with self._client() as client:
            return await self._probe(client, endpoint, check)

    async def wait(self, endpoint: Endpoint, check: ReadinessCheck) -> ProbeOutcome:
        """Probe every ``interval`` seconds until ready or the deadline passes."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempts = 0
        logger.info("Waiting for %s at %s", check.name, endpoint.url)
        async with self._client() as client:
            while True:
                attempts += 1
                outcome = await self._probe(client, endpoint, check)
                if outcome.is_ready:
                    logger.info("%s ready at %s after %d attempt(s)", check.name, endpoint.url, attempts)
                    return outcome
                elapsed = loop.time() - started
                if self.timeout is not None and elapsed + self.interval > self.timeout:
                    raise ReadinessTimeout(endpoint.url, elapsed, log=True)
                await asyncio.sleep(self.interval)


async def wait_for_chain(endpoint: Endpoint, poller: ReadinessPoller | None = None) -> ProbeOutcome:
    return await (poller or ReadinessPoller()).wait(endpoint, CHAIN_READINESS)


async def wait_for_content_store(endpoint: Endpoint, poller: ReadinessPoller | None = None) -> ProbeOutcome:
    return await (poller or ReadinessPoller()).wait(endpoint, CONTENT_STORE_READINESS)


async def wait_for_indexer_api(endpoint: Endpoint, poller: ReadinessPoller | None = None) -> ProbeOutcome:
    return await (poller or ReadinessPoller()).wait(endpoint, INDEXER_API_READINESS)


__all__ = [
    "CHAIN_READINESS",
    "CONTENT_STORE_READINESS",
    "INDEXER_API_READINESS",
    "ProbeOutcome",
    "ReadinessCheck",
    "ReadinessPoller",
    "is_not_found",
    "wait_for_chain",
    "wait_for_content_store",
    "wait_for_indexer_api",
]
