"""
services/countdown.py

카운트다운 타이머.

남은 시간은 (마감 시각 - 현재 시각)의 순수 함수이며 1초마다 다시 계산한다.
0에 도달하면 스스로 멈추고 만료 콜백을 정확히 한 번 호출한다.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel

from config import TIMER_TICK, TIMER_WARNING_SECONDS

logger = logging.getLogger(__name__)


class TimerReading(BaseModel):
    remaining_seconds: int
    display: str
    urgent: bool
    expired: bool


def format_remaining(remaining_seconds: float) -> str:
    """남은 시간을 MM:SS 로. 60분 이상이면 분 자리가 늘어난다."""
    total = max(0, int(remaining_seconds))
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


class CountdownTimer:
    def __init__(
        self,
        deadline: datetime,
        clock: Callable[[], datetime],
        on_expire: Callable[[], None],
        warning_seconds: float = TIMER_WARNING_SECONDS,
        tick_seconds: float = TIMER_TICK,
    ):
        self.deadline = deadline
        self._clock = clock
        self._on_expire = on_expire
        self.warning_seconds = warning_seconds
        self.tick_seconds = tick_seconds
        self._fired = False
        self._stopped = False
        self._task: Optional[asyncio.Task] = None

    def remaining(self) -> float:
        return max(0.0, (self.deadline - self._clock()).total_seconds())

    def reading(self) -> TimerReading:
        remaining = self.remaining()
        return TimerReading(
            remaining_seconds=int(remaining),
            display=format_remaining(remaining),
            urgent=remaining < self.warning_seconds,
            expired=remaining <= 0,
        )

    def tick(self) -> TimerReading:
        """
        남은 시간을 다시 계산한다.
        마감에 도달하면 타이머를 멈추고 만료 콜백을 한 번만 호출한다.
        """
        reading = self.reading()
        if reading.expired and not self._fired:
            self._fired = True
            self.stop()
            logger.info(f"타이머 만료 (마감 {self.deadline.isoformat()})")
            self._on_expire()
        return reading

    def start(self) -> None:
        """실행 중인 이벤트 루프에 1초 주기 tick 태스크를 건다."""
        if self._task is not None or self._stopped:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # tick() 안에서 멈추는 경우 자기 자신은 루프 조건으로 빠져나온다
        if task is not current:
            task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._stopped

    async def _run(self) -> None:
        while not self._stopped:
            self.tick()
            if self._stopped:
                break
            await asyncio.sleep(self.tick_seconds)
