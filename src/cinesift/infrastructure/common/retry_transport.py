"""Connection-pooling transport that rides out catalog rate limits.

TMDB answers bursts with 429 and RapidAPI gateways shed load with 503.
Both are worth one or two more tries before the fallback chain moves on;
every other status goes straight back to the adapter.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)

RATE_LIMIT_STATUSES = frozenset({429, 503})


def backoff_delay(
    attempt: int,
    retry_after: str | None,
    *,
    base: float,
    ceiling: float,
) -> float:
    """Seconds to wait before retry number ``attempt + 1``.

    A numeric ``Retry-After`` wins; HTTP-date values fall back to
    exponential backoff with jitter.  Never exceeds *ceiling*.
    """
    if retry_after is not None:
        try:
            return min(float(retry_after), ceiling)
        except ValueError:
            pass
    jitter = random.uniform(0, base)  # noqa: S311
    return min(base * (2**attempt) + jitter, ceiling)


class RetryTransport(httpx.AsyncHTTPTransport):
    """``AsyncHTTPTransport`` that repeats rate-limited requests.

    The waits are plain ``asyncio.sleep`` calls, so cancelling the search
    task that owns the request interrupts them.  Extra keyword arguments
    go to ``httpx.AsyncHTTPTransport``.
    """

    def __init__(
        self,
        *,
        max_retries: int = 2,
        backoff_base: float = 0.25,
        max_backoff: float = 2.0,
        **transport_kwargs: Any,
    ) -> None:
        super().__init__(**transport_kwargs)
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.max_backoff = max_backoff

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            response = await super().handle_async_request(request)
            if (
                response.status_code not in RATE_LIMIT_STATUSES
                or attempt >= self.max_retries
            ):
                return response

            await response.aclose()
            delay = backoff_delay(
                attempt,
                response.headers.get("retry-after"),
                base=self.backoff_base,
                ceiling=self.max_backoff,
            )
            attempt += 1
            log.info(
                "catalog_rate_limited",
                host=request.url.host,
                status=response.status_code,
                retry=attempt,
                wait=round(delay, 2),
            )
            await asyncio.sleep(delay)
