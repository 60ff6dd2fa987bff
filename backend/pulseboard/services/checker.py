"""Checker service - probes HTTP endpoints and classifies the outcome."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Union

import httpx

from ..schemas.monitor import MonitorConfig
from ..schemas.status import CheckOutcome, StatusLevel
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10_000


@dataclass(frozen=True)
class ProbeTimeout:
    """The deadline expired before the request settled."""
    timeout_ms: int


@dataclass(frozen=True)
class ProbeNetworkError:
    """The request failed at the transport level."""
    detail: str


@dataclass(frozen=True)
class ProbeHttpStatus:
    """A response arrived. `body_length` is set when the body was read."""
    code: int
    body_length: Optional[int] = None


ProbeResult = Union[ProbeTimeout, ProbeNetworkError, ProbeHttpStatus]


def status_from_code(status_code: int) -> StatusLevel:
    """Map an HTTP status code to a status level.

    2xx/3xx = up, 4xx = degraded, 5xx or anything else = down.
    """
    if 200 <= status_code < 400:
        return "up"
    if 400 <= status_code < 500:
        return "degraded"
    return "down"


def status_from_length(length: int, minimum: Optional[int], maximum: Optional[int]):
    """Classify a response body by its length. Returns (status, message)."""
    if maximum is not None and length > maximum:
        return "down", f"Response body too long: {length} > {maximum}"
    if minimum is not None and length < minimum:
        return "degraded", f"Response body too short: {length} < {minimum}"
    return "up", None


class CheckerService:
    """Service for probing monitored endpoints."""

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_ms = timeout_ms
        self._transport = transport

    async def probe(self, monitor: MonitorConfig, timeout_ms: Optional[int] = None) -> CheckOutcome:
        """Probe a single monitor. Never raises for probe failures."""
        timeout_ms = timeout_ms or self.timeout_ms
        start = time.monotonic()
        result = await self._dispatch(monitor, timeout_ms)
        # Measured from dispatch to settlement on every path
        elapsed_ms = int((time.monotonic() - start) * 1000)
        return self.classify(monitor, result, elapsed_ms)

    async def probe_all(
        self,
        monitors: List[MonitorConfig],
        timeout_ms: Optional[int] = None,
    ) -> List[CheckOutcome]:
        """Probe all monitors concurrently and wait for every one to settle."""
        if not monitors:
            return []

        results = await asyncio.gather(
            *[self.probe(monitor, timeout_ms) for monitor in monitors],
            return_exceptions=True,
        )

        outcomes = []
        for monitor, result in zip(monitors, results):
            if isinstance(result, BaseException):
                # Programming errors in classification still must not sink the batch
                logger.error(f"Unexpected error probing {monitor.id}: {result!r}")
                result = CheckOutcome(
                    monitor_id=monitor.id,
                    status="down",
                    error_message=str(result) or type(result).__name__,
                    checked_at=utcnow(),
                )
            outcomes.append(result)
        return outcomes

    async def _dispatch(self, monitor: MonitorConfig, timeout_ms: int) -> ProbeResult:
        """Issue the request under a deadline and tag how it settled."""
        check = monitor.check
        read_body = check is not None and check.type == "length"
        method = "GET" if read_body else "HEAD"

        async def send() -> ProbeResult:
            async with httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
                timeout=None,  # deadline enforced by wait_for
            ) as client:
                response = await client.request(method, monitor.url)
                if read_body:
                    return ProbeHttpStatus(code=response.status_code, body_length=len(response.text))
                return ProbeHttpStatus(code=response.status_code)

        try:
            # Cancels the in-flight request when the deadline expires
            return await asyncio.wait_for(send(), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeTimeout(timeout_ms=timeout_ms)
        except httpx.HTTPError as e:
            return ProbeNetworkError(detail=str(e) or type(e).__name__)
        except (OSError, ValueError) as e:
            return ProbeNetworkError(detail=str(e) or type(e).__name__)

    def classify(self, monitor: MonitorConfig, result: ProbeResult, elapsed_ms: int) -> CheckOutcome:
        """Turn a tagged probe result into a CheckOutcome."""
        checked_at = utcnow()
        elapsed_ms = max(0, elapsed_ms)

        if isinstance(result, ProbeTimeout):
            return CheckOutcome(
                monitor_id=monitor.id,
                status="down",
                response_time_ms=elapsed_ms,
                error_message=f"Timeout after {result.timeout_ms}ms",
                checked_at=checked_at,
            )

        if isinstance(result, ProbeNetworkError):
            return CheckOutcome(
                monitor_id=monitor.id,
                status="down",
                response_time_ms=elapsed_ms,
                error_message=result.detail,
                checked_at=checked_at,
            )

        status = status_from_code(result.code)
        message = None if status == "up" else f"HTTP {result.code}"

        if status == "up" and result.body_length is not None:
            expect = monitor.check.expect
            status, message = status_from_length(result.body_length, expect.min, expect.max)

        return CheckOutcome(
            monitor_id=monitor.id,
            status=status,
            status_code=result.code,
            response_time_ms=elapsed_ms,
            error_message=message,
            checked_at=checked_at,
        )
