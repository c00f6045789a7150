"""Schedule-after-delay / cancel primitive backed by the asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class Timer(Protocol):
    """Delayed callback scheduling. Delays are best effort, in seconds."""

    def schedule_after(self, delay_s: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class AsyncioTimer:
    """Runs callbacks on the running event loop via call_later."""

    def schedule_after(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(max(delay_s, 0.0), callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        """Cancel a pending callback. No-op if it already fired or was cancelled."""
        handle.cancel()
