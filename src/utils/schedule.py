"""Fixed-period callback scheduling on the running event loop."""

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class IntervalHandle:
    """Cancellation handle returned by `set_interval`."""

    def __init__(self, task: asyncio.Task):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()


def set_interval(callback: Callable[[], None], interval: float, *, immediate: bool = False) -> IntervalHandle:
    """
    Call `callback` every `interval` seconds until the returned handle is cancelled.

    Args:
        callback: Synchronous callable. Exceptions are logged and do not stop the schedule.
        interval: Period in seconds.
        immediate: Also call `callback` once, synchronously, before returning.

    Returns:
        IntervalHandle for stopping the schedule. Work already started by the
        callback is not recalled by cancelling the handle.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    def fire() -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Interval callback {callback!r} raised: {e}", exc_info=True)

    async def run() -> None:
        while True:
            await asyncio.sleep(interval)
            fire()

    if immediate:
        fire()

    task = asyncio.get_running_loop().create_task(run())
    return IntervalHandle(task)
