"""Last-writer-wins debouncing for typed search input."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from swapdesk.domain.models import AssetId

SEARCH_DELAY_SECONDS = 0.3


class Debouncer:
    """Runs ``callback`` once the submissions have been quiet for ``delay`` seconds.

    Every submit cancels the pending timer. A call that already started is not
    cancelled; its result is simply superseded by the next one.
    """

    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any] | Any]) -> None:
        self.delay = delay
        self.callback = callback
        self._pending: asyncio.Task | None = None

    def submit(self, *args: Any) -> asyncio.Task:
        self.cancel()
        self._pending = asyncio.create_task(self._fire(args))
        return self._pending

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    @property
    def scheduled(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def _fire(self, args: tuple[Any, ...]) -> Any:
        await asyncio.sleep(self.delay)
        result = self.callback(*args)
        if asyncio.iscoroutine(result):
            result = await result
        return result


class AssetSearch:
    """Debounced asset lookup keeping the latest answer in ``results``."""

    def __init__(
        self,
        query: Callable[[str], Awaitable[list[AssetId]]],
        delay: float = SEARCH_DELAY_SECONDS,
    ) -> None:
        self.query = query
        self.text = ""
        self.results: list[AssetId] = []
        self._debouncer = Debouncer(delay, self._run)

    def type(self, text: str) -> asyncio.Task | None:
        """Record a keystroke; blank input clears the results without querying."""
        self.text = text
        if not text.strip():
            self._debouncer.cancel()
            self.results = []
            return None
        return self._debouncer.submit(text)

    async def _run(self, text: str) -> list[AssetId]:
        self.results = await self.query(text)
        return self.results
