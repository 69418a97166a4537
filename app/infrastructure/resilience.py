import asyncio
import random
import time
from typing import Awaitable, Callable, Optional

import httpx

from app.errors import TransientProviderError
from app.obs.logger import log_event
from app.obs.metrics import inc_counter, record_timing


TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})
DEFAULT_TIMEOUT_MS = 12000
DEFAULT_MAX_RETRIES = 2
BACKOFF_MIN_MS = 300
BACKOFF_MAX_MS = 800


class ResilientCaller:
    """Send one outbound request with a deadline and retry-with-backoff.

    Retries on timeouts, transport errors and the transient statuses
    (429/500/502/503/504). Any other response is handed back untouched, and a
    still-failing response is handed back once retries run out. Only a
    network-level failure on the final attempt raises.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.http = http
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_seconds(self) -> float:
        return self._rng.uniform(BACKOFF_MIN_MS, BACKOFF_MAX_MS) / 1000.0

    async def execute(
        self,
        request: httpx.Request,
        timeout_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
    ) -> httpx.Response:
        timeout_s = (timeout_ms if timeout_ms is not None else self.timeout_ms) / 1000.0
        retries = self.max_retries if max_retries is None else max(0, max_retries)
        endpoint = request.url.path
        # httpx enforces its own timeouts too; keep them in line with the deadline
        request.extensions = {**request.extensions, "timeout": httpx.Timeout(timeout_s).as_dict()}

        attempt = 0
        while True:
            start = time.monotonic()
            try:
                response = await asyncio.wait_for(self.http.send(request), timeout=timeout_s)
            except (asyncio.TimeoutError, httpx.TransportError) as e:
                elapsed_ms = (time.monotonic() - start) * 1000.0
                reason = "timeout" if isinstance(e, (asyncio.TimeoutError, httpx.TimeoutException)) else "network"
                inc_counter("provider_calls_total", {"endpoint": endpoint, "status": reason})
                record_timing("provider_latency_ms", elapsed_ms, {"endpoint": endpoint})
                log_event(
                    "provider_call_failed",
                    level="WARNING",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    reason=reason,
                    error=f"{type(e).__name__}: {e}",
                )
                if attempt < retries:
                    attempt += 1
                    await self._sleep(self.backoff_seconds())
                    continue
                raise TransientProviderError(
                    f"{reason} calling {endpoint} after {attempt + 1} attempt(s)"
                ) from e

            elapsed_ms = (time.monotonic() - start) * 1000.0
            inc_counter("provider_calls_total", {"endpoint": endpoint, "status": str(response.status_code)})
            record_timing("provider_latency_ms", elapsed_ms, {"endpoint": endpoint})

            if response.status_code in TRANSIENT_STATUSES and attempt < retries:
                log_event(
                    "provider_call_retry",
                    level="WARNING",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    status=response.status_code,
                )
                await response.aclose()
                attempt += 1
                await self._sleep(self.backoff_seconds())
                continue

            return response
