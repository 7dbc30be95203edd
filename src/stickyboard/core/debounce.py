"""Keyed debounce: coalesce scheduled work per logical target.

A key names the target being saved (``order``, ``title:<note id>``, ...).
Scheduling under a key replaces whatever is still waiting under that key, so
only the last schedule within the window runs. Once a callback has fired it is
in flight and is never cancelled by a later schedule.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

Callback = Callable[[], Awaitable[None]]


class KeyedDebouncer:
    def __init__(self) -> None:
        self._pending: dict[str, tuple[asyncio.TimerHandle, Callback]] = {}
        self._in_flight: set[asyncio.Task[None]] = set()

    def schedule(self, key: str, delay: float, callback: Callback) -> None:
        """Run `callback` after `delay` seconds unless `key` is scheduled again first."""
        self._cancel(key)
        handle = asyncio.get_running_loop().call_later(delay, self._fire, key)
        self._pending[key] = (handle, callback)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def flush(self, key: str | None = None) -> None:
        """Fire pending work now (one key or all) and wait for in-flight work."""
        keys = [key] if key is not None else list(self._pending)
        for pending_key in keys:
            if pending_key in self._pending:
                handle, _ = self._pending[pending_key]
                handle.cancel()
                self._fire(pending_key)
        await self.wait()

    async def wait(self) -> None:
        """Wait until nothing is in flight."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def cancel(self, key: str) -> None:
        """Drop pending work under `key`; in-flight work is left alone."""
        self._cancel(key)

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self._cancel(key)

    def _cancel(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is not None:
            entry[0].cancel()

    def _fire(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        task = asyncio.get_running_loop().create_task(entry[1]())
        task.set_name(f"debounce:{key}")
        self._in_flight.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("debounced_callback_failed", task=task.get_name(), exc_info=exc)
