"""Progress tracking for the analysis and translation phases."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Callable, Optional

from .models import TranslatingInfo

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
ChunkProgressCallback = Callable[[int, Optional[TranslatingInfo]], None]

# 模拟进度的时间常数下限（秒）
MIN_TIME_CONSTANT = 20.0
# 每多少字符增加一秒时间常数
CHARS_PER_SECOND = 5000
# 模拟进度永远不会自行达到 100
SIMULATED_CEILING = 99


def time_constant_for(input_length: int) -> float:
    """Time constant of the saturation curve, scaled by input size."""
    return max(MIN_TIME_CONSTANT, input_length / CHARS_PER_SECOND)


def saturation_percentage(elapsed: float, time_constant: float) -> int:
    """
    Asymptotic progress estimate for an outstanding request.

    ``100 * (1 - 1 / (elapsed / T + 1))`` capped at 99 and floored.
    """
    if elapsed <= 0:
        return 0
    value = 100 * (1 - 1 / (elapsed / time_constant + 1))
    return int(min(SIMULATED_CEILING, value))


class SimulatedProgress:
    """Monotonic progress estimate for a request whose duration is unknown."""

    def __init__(
        self,
        input_length: int,
        on_progress: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.time_constant = time_constant_for(input_length)
        self._on_progress = on_progress
        self._clock = clock
        self._started_at: Optional[float] = None
        self.value = 0

    def start(self) -> None:
        self._started_at = self._clock()
        self._emit(0)

    def tick(self) -> int:
        """Recompute the estimate; only ever moves forward."""
        if self._started_at is None:
            return self.value
        estimate = saturation_percentage(self._clock() - self._started_at, self.time_constant)
        if estimate > self.value:
            self._emit(estimate)
        return self.value

    def complete(self) -> None:
        self._emit(100)

    def reset(self) -> None:
        self._started_at = None
        self._emit(0)

    def _emit(self, value: int) -> None:
        self.value = value
        if self._on_progress:
            self._on_progress(value)


class PeriodicTicker:
    """Cancellable timer that calls ``callback`` every ``interval`` seconds."""

    def __init__(self, interval: float, callback: Callable[[], object]):
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._callback()

    async def cancel(self) -> None:
        """
        Stop the ticker and wait for its task to finish.

        Cancellation of the awaiting caller still propagates; only the
        ticker's own cancellation is absorbed.
        """
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()


class ChunkProgress:
    """
    Completed-chunk counter for the translation phase.

    Percentage and current block are advisory: with concurrent workers the
    last chunk to complete wins, regardless of its position.
    """

    def __init__(self, total_chunks: int, on_progress: Optional[ChunkProgressCallback] = None):
        self.total_chunks = total_chunks
        self.completed = 0
        self.current: Optional[TranslatingInfo] = None
        self._on_progress = on_progress

    @property
    def percentage(self) -> int:
        if self.total_chunks == 0:
            return 100
        return math.floor(100 * self.completed / self.total_chunks)

    def mark_completed(self, info: Optional[TranslatingInfo]) -> int:
        """Count one finished chunk (translated or fallback)."""
        self.completed += 1
        if info is not None:
            self.current = info
        logger.debug(f"Chunk progress {self.completed}/{self.total_chunks}")
        if self._on_progress:
            self._on_progress(self.percentage, self.current)
        return self.percentage
