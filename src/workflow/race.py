"""First-resolution race between independent completion signals.

Each arm is a coroutine that receives the shared `FirstResolution` latch and
calls `resolve` when it sees completion. The first call wins; later calls
return False and are ignored. `race` waits for the latch up to a timeout and
then cancels every arm, whether the race was won or timed out.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Which arm won and what it resolved with."""

    source: str
    value: Any


class FirstResolution:
    """One-shot latch; only the first `resolve` call takes effect."""

    def __init__(self):
        self._future: Optional[asyncio.Future] = None

    def _ensure_future(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def resolved(self) -> bool:
        return self._future is not None and self._future.done()

    @property
    def result(self) -> Optional[Resolution]:
        if not self.resolved or self._future.cancelled():
            return None
        return self._future.result()

    def resolve(self, source: str, value: Any = None) -> bool:
        """Resolve the latch. Returns True only for the winning call."""
        future = self._ensure_future()
        if future.done():
            logger.debug(f"Ignoring late resolution from {source}")
            return False
        future.set_result(Resolution(source=source, value=value))
        return True

    async def wait(self, timeout: Optional[float] = None) -> Optional[Resolution]:
        """Wait for the winning resolution, or return None after `timeout` seconds."""
        future = self._ensure_future()
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except asyncio.TimeoutError:
            return None


Arm = Callable[[FirstResolution], Awaitable[None]]


def _log_arm_failure(name: str):
    def callback(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Race arm {name} failed: {exc!r}")

    return callback


async def race(
    arms: Dict[str, Arm],
    timeout: Optional[float],
    latch: Optional[FirstResolution] = None,
) -> Optional[Resolution]:
    """
    Run every arm concurrently until one resolves the latch or the timeout expires.

    An arm that raises is logged and drops out; the remaining arms keep
    racing. All arm tasks are cancelled and awaited before returning, on
    every exit path including cancellation of the caller.

    Returns:
        Optional[Resolution]: The winning resolution, or None on timeout.
    """
    latch = latch or FirstResolution()
    tasks = []
    for name, arm in arms.items():
        task = asyncio.create_task(arm(latch), name=f"race-{name}")
        task.add_done_callback(_log_arm_failure(name))
        tasks.append(task)

    try:
        return await latch.wait(timeout)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
