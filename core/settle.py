"""
Exactly-once settlement of racing completion paths.

A bounded operation can finish three ways: its own completion, an error, or the
timer. Whichever fires first settles the slot; later firings are no-ops.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger("mtce.settle")


class Settlement:
    """Single-assignment result slot."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._future: asyncio.Future = (loop or asyncio.get_running_loop()).create_future()
        self.settled_by: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, value: Any, by: str = "result") -> bool:
        """Store value if the slot is still empty. Returns True only for the first caller."""
        if self._future.done():
            logger.debug("Late settlement from %s ignored", by)
            return False
        self.settled_by = by
        self._future.set_result(value)
        return True

    async def wait(self) -> Any:
        return await asyncio.shield(self._future)


async def race(
    coro: Awaitable[Any],
    timeout: float,
    on_timeout: Callable[[], Any],
    on_error: Callable[[BaseException], Any],
) -> Any:
    """
    Run coro against a timer. Returns coro's result, on_error(exc) if it raised,
    or on_timeout() if the timer fired first. The losing task is cancelled and
    awaited, so resources it owns are released before this returns.
    """
    loop = asyncio.get_running_loop()
    slot = Settlement(loop)
    task = asyncio.ensure_future(coro)

    def _finished(t: asyncio.Task) -> None:
        if t.cancelled():
            return
        exc = t.exception()
        if slot.settled:
            return
        if exc is None:
            slot.settle(t.result(), by="result")
        else:
            slot.settle(on_error(exc), by="error")

    def _expired() -> None:
        if slot.settled:
            return
        if slot.settle(on_timeout(), by="timeout"):
            task.cancel()

    task.add_done_callback(_finished)
    timer = loop.call_later(timeout, _expired)
    try:
        return await slot.wait()
    finally:
        timer.cancel()
        if not task.done():
            task.cancel()
        await asyncio.wait({task})
