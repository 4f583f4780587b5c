from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from pollwright.core.contracts import PollConfig


@dataclass(frozen=True)
class Timing:
    clock: Callable[[], float] = field(default=time.monotonic)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)


DEFAULT_TIMING = Timing()


class PollTicker:
    """Drives one polling loop.

    The deadline is fixed when the ticker is created. ``tick()`` is called
    after each attempt: it returns False once the deadline has passed and at
    least ``min_tries`` attempts have run, otherwise it sleeps until
    ``interval * attempts`` has elapsed since the start and returns True. An
    attempt that overran the interval is followed by the next one at once.
    """

    def __init__(self, config: PollConfig, timing: Timing | None = None) -> None:
        self._config = config
        self._timing = timing or DEFAULT_TIMING
        self._start = self._timing.clock()
        self._tries = 0

    @property
    def ticks(self) -> int:
        return self._tries

    @property
    def elapsed(self) -> float:
        return self._timing.clock() - self._start

    @property
    def elapsed_ms(self) -> int:
        return int(round(self.elapsed * 1000))

    def deadline_passed(self) -> bool:
        if self._config.timeout_ms is None:
            return True
        return self.elapsed >= self._config.timeout_ms / 1000.0

    async def tick(self) -> bool:
        self._tries += 1

        if self.deadline_passed() and self._tries >= self._config.min_tries:
            return False

        if self._config.interval_ms > 0:
            minimum_elapsed = self._config.interval_ms / 1000.0 * self._tries
            actual_elapsed = self.elapsed
            if actual_elapsed < minimum_elapsed:
                await self._timing.sleep(minimum_elapsed - actual_elapsed)

        return True
