"""
services/autosave.py

자동 저장 스케줄러.

ACTIVE 상태인 동안 일정 주기(기본 30초)마다 답안지 전체 + 감독 카운터/로그를
저장 요청으로 보낸다. 매번 전체 상태를 보내므로 마지막 쓰기가 이긴다.
실패는 로그만 남기고 다음 주기에 다시 시도한다 (백오프·큐 없음).
멈춰도 이미 보낸 요청은 취소하지 않으며, 세션이 ACTIVE 를 벗어났다면 결과를 무시한다.
클라이언트를 닫기 전에는 drain() 으로 진행 중인 요청이 끝나기를 기다린다.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Set

from config import AUTOSAVE_INTERVAL, SAVE_INDICATOR_SECONDS
from exam_engine.services.errors import SaveError

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    def __init__(
        self,
        save: Callable[[], Awaitable[None]],
        is_active: Callable[[], bool],
        clock: Callable[[], datetime],
        interval: float = AUTOSAVE_INTERVAL,
        indicator_seconds: float = SAVE_INDICATOR_SECONDS,
    ):
        self._save = save
        self._is_active = is_active
        self._clock = clock
        self.interval = interval
        self.indicator_seconds = indicator_seconds
        self.last_saved_at: Optional[datetime] = None
        self.failures = 0
        self._indicator_until: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    async def flush(self) -> bool:
        """
        저장 요청 한 번. 성공하면 True.

        SaveError 는 삼키고 경고 로그만 남긴다.
        """
        if not self._is_active():
            return False
        try:
            await self._save()
        except SaveError as e:
            self.failures += 1
            logger.warning(f"자동 저장 실패 ({self.failures}회째), 다음 주기에 재시도: {e}")
            return False

        if not self._is_active():
            logger.debug("자동 저장 응답 무시: 세션이 이미 진행 상태가 아님")
            return False

        now = self._clock()
        self.last_saved_at = now
        self._indicator_until = now + timedelta(seconds=self.indicator_seconds)
        return True

    def indicator_visible(self) -> bool:
        return self._indicator_until is not None and self._clock() < self._indicator_until

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """주기만 멈춘다. 진행 중인 저장 요청은 그대로 둔다."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self._is_active():
                break
            # 저장 요청은 주기 태스크와 분리해 stop() 으로 취소되지 않게 한다
            request = asyncio.ensure_future(self.flush())
            self._in_flight.add(request)
            request.add_done_callback(self._request_done)

    def _request_done(self, request: asyncio.Task) -> None:
        self._in_flight.discard(request)
        if request.cancelled():
            return
        error = request.exception()
        if error is not None:
            # SaveError 외의 예외 (예: 이미 닫힌 클라이언트)
            self.failures += 1
            logger.error(f"자동 저장 요청 오류: {error!r}")

    async def drain(self) -> None:
        """진행 중인 저장 요청이 모두 끝날 때까지 기다린다."""
        if self._in_flight:
            await asyncio.wait(list(self._in_flight))
