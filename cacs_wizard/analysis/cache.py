import asyncio
import time
from collections.abc import Awaitable, Callable

from cacs_wizard.analysis.models import AnalysisResponse
from cacs_wizard.logging.logger import Log


class AnalysisCache:
    """Time-limited cache of analysis responses keyed by request snapshot.

    Identical requests share a single in-flight round trip. Only successful
    responses are cached, so a failed request is re-issued on retry.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, AnalysisResponse]] = {}
        self._in_flight: dict[str, asyncio.Task[AnalysisResponse]] = {}

    def get(self, key: str) -> AnalysisResponse | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, response = entry
        if self._clock() - stored_at > self._ttl_seconds:
            del self._entries[key]
            return None
        return response

    def put(self, key: str, response: AnalysisResponse) -> None:
        self._entries[key] = (self._clock(), response)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def fetch(
        self,
        key: str,
        factory: Callable[[], Awaitable[AnalysisResponse]],
    ) -> AnalysisResponse:
        """Return the cached response for ``key`` or run ``factory`` once to get it."""
        cached = self.get(key)
        if cached is not None:
            Log.debug("Analysis cache hit")
            return cached
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, factory))
            self._in_flight[key] = task
        else:
            Log.debug("Joining in-flight analysis request")
        # Shielded: a caller giving up must not abort the shared request.
        return await asyncio.shield(task)

    async def _run(
        self,
        key: str,
        factory: Callable[[], Awaitable[AnalysisResponse]],
    ) -> AnalysisResponse:
        try:
            response = await factory()
            self.put(key, response)
            return response
        finally:
            self._in_flight.pop(key, None)
