from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ManualClock:
    """Deterministic millisecond clock for headless races and tests."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> float:
        self.now_ms += ms
        return self.now_ms


class TickScheduler:
    """
    Owns named periodic asyncio tasks.

    Each task sleeps for its interval and then calls its callback; cancelling
    the scheduler cancels every task and later `schedule` calls are refused.
    """

    def __init__(self) -> None:
        self.tasks: Dict[str, asyncio.Task] = {}
        self.cancelled = False

    def schedule(self, name: str, interval_ms: float, callback: Callable[[], object]) -> Optional[asyncio.Task]:
        if self.cancelled:
            return None
        existing = self.tasks.get(name)
        if existing is not None and not existing.done():
            existing.cancel()
        task = asyncio.get_running_loop().create_task(self._run(name, interval_ms / 1000.0, callback))
        self.tasks[name] = task
        return task

    async def _run(self, name: str, interval_s: float, callback: Callable[[], object]) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                callback()
            except Exception as tick_err:
                print(f"[TickScheduler] Error in '{name}' tick: {tick_err}")

    def cancel_all(self) -> None:
        self.cancelled = True
        for task in list(self.tasks.values()):
            task.cancel()

    @property
    def active(self) -> bool:
        return any(not task.done() for task in self.tasks.values())
