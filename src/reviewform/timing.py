"""Clock and debounce helpers shared by the validator and the auto-save path."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return int(moment.timestamp() * 1000)


class Debouncer:
    """Run the latest scheduled coroutine per key after a quiet period.

    Scheduling a key again before its delay elapsed cancels the pending run,
    so only the newest input is acted on. Must be used from within a running
    event loop.
    """

    def __init__(self, delay: float) -> None:
        self.delay = max(float(delay), 0.0)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._closed = False

    @property
    def pending(self) -> list[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def schedule(self, key: str, action: Callable[[], Awaitable[object]]) -> None:
        if self._closed:
            return
        self.cancel(key)
        self._tasks[key] = asyncio.get_running_loop().create_task(self._run(key, action))

    def cancel(self, key: str) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def close(self) -> None:
        self._closed = True
        self.cancel_all()

    async def drain(self) -> None:
        """Wait until every pending run has finished or been cancelled."""
        while True:
            tasks = [task for task in self._tasks.values() if not task.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, key: str, action: Callable[[], Awaitable[object]]) -> None:
        await asyncio.sleep(self.delay)
        current = asyncio.current_task()
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Debounced action %s failed: %s", key, exc)
        finally:
            if self._tasks.get(key) is current:
                del self._tasks[key]
