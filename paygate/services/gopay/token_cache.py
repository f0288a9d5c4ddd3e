"""Bearer token cache with single-flight refresh.

Concurrent callers that find the token expiring share one refresh task, so an
expired token costs exactly one round trip to the provider.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from paygate.common.logging import logger
from paygate.common.metrics import token_refresh_total


@dataclass(frozen=True)
class ProviderToken:
    value: str
    expires_at: float

    def is_expiring(self, now: float, skew: float) -> bool:
        return now >= self.expires_at - skew


class ProviderTokenCache:
    """Holds one provider token and refreshes it ahead of expiry.

    `fetch` must return a fully validated `ProviderToken` or raise; the cache
    is only written after it returns, so a failed refresh keeps the previous
    entry as it was.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[ProviderToken]],
        skew_seconds: float = 10.0,
        clock: Callable[[], float] = time.time,
        service: str = "gopay",
    ) -> None:
        self._fetch = fetch
        self.skew_seconds = skew_seconds
        self._clock = clock
        self._service = service
        self._token: ProviderToken | None = None
        self._refresh: asyncio.Future | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> ProviderToken | None:
        return self._token

    def invalidate(self) -> None:
        self._token = None

    async def get_valid_token(self) -> str:
        async with self._lock:
            token = self._token
            if token is not None and not token.is_expiring(self._clock(), self.skew_seconds):
                return token.value
            if self._refresh is None:
                self._refresh = asyncio.ensure_future(self._run_refresh())
            refresh = self._refresh
        return await asyncio.shield(refresh)

    async def _run_refresh(self) -> str:
        try:
            logger.info("fetching new %s token", self._service)
            token = await self._fetch()
        except Exception:
            token_refresh_total.labels(service=self._service, outcome="failed").inc()
            raise
        finally:
            self._refresh = None
        self._token = token
        token_refresh_total.labels(service=self._service, outcome="ok").inc()
        return token.value
