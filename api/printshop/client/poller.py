"""Periodic printer status polling."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class StatusPoller:
    """Refresh a value on a fixed interval in a background asyncio task.

    Each successful poll replaces ``latest`` (last write wins). A failed
    poll keeps the previous value and records the error in ``last_error``.
    The task lives until ``stop()`` or the end of the ``async with`` block.

    Args:
        fetch: Coroutine function returning the fresh value
        interval: Seconds between polls
        on_update: Optional callback invoked with each new value

    Example:
        >>> async with StatusPoller(lambda: client.get_printer_status(3), interval=5) as poller:
        ...     await asyncio.sleep(30)
        ...     print(poller.latest)
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        interval: float = 5.0,
        on_update: Optional[Callable[[Any], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fetch = fetch
        self.interval = interval
        self.on_update = on_update
        self.latest: Any = None
        self.last_error: Optional[Exception] = None
        self.polls = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def poll_once(self) -> Any:
        """Run one poll now; returns the current ``latest``."""
        try:
            value = await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Status poll failed: {e}")
            self.last_error = e
        else:
            self.latest = value
            self.last_error = None
            if self.on_update is not None:
                self.on_update(value)
        finally:
            self.polls += 1
        return self.latest

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> "StatusPoller":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
