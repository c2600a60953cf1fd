"""
services/session_controller.py

시험 세션 컨트롤러 — 응시 한 건의 상태 머신.

    LOADING → ACTIVE → {EXPIRED, SUBMITTING} → {COMPLETED, ERROR}

하위 구성요소(답안지, 문항 이동, 타이머, 자동 저장, 감독 모니터)의 수명을 소유한다.
백엔드 클라이언트와 시계는 생성자로 주입받는다 (테스트에서 가짜로 대체).

모든 동작은 하나의 이벤트 루프에서 실행된다고 가정하므로 락이 없다.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from config import (
    AUTOSAVE_INTERVAL,
    NOTICE_SECONDS,
    SAVE_INDICATOR_SECONDS,
    TAB_SWITCH_DEBOUNCE,
    TIMER_TICK,
    TIMER_WARNING_SECONDS,
)
from exam_engine.models.attempt_model import Attempt
from exam_engine.models.question_model import Question, QuestionType
from exam_engine.models.session_state import (
    ProgressSnapshot,
    SessionStatus,
    SubmissionResult,
    SubmitTrigger,
)
from exam_engine.services import question_types
from exam_engine.services.answer_store import AnswerStore
from exam_engine.services.autosave import AutosaveScheduler
from exam_engine.services.backend_client import AttemptBackend
from exam_engine.services.countdown import CountdownTimer
from exam_engine.services.errors import (
    AnswerValidationError,
    LoadError,
    SessionStateError,
    SubmitError,
    ValidationWarning,
)
from exam_engine.services.interaction import reorder
from exam_engine.services.navigation import NavigationController
from exam_engine.services.proctoring import ProctoringMonitor

logger = logging.getLogger(__name__)

LEAVE_WARNING = "Your test progress will be saved, but are you sure you want to leave?"
TIME_UP_MESSAGE = "Time is up! Your test is being submitted automatically."
EXPIRED_ON_LOAD_MESSAGE = "Time has expired for this test. Submitting automatically."
SUBMIT_FAILED_MESSAGE = "Failed to submit test. Please try again."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExamSession:
    """
    응시 한 건을 처음부터 끝까지 진행하는 세션 객체.

    Attributes:
        status:   현재 상태 (SessionStatus)
        attempt:  불러온 응시 정보 (start() 이후)
        questions:문항 목록
        store:    답안지
        result:   제출 결과 (COMPLETED 이후)
        alert:    사용자에게 띄울 마지막 안내 문구
    """

    def __init__(
        self,
        backend: AttemptBackend,
        clock: Callable[[], datetime] = utc_now,
        *,
        autosave_interval: float = AUTOSAVE_INTERVAL,
        tick_seconds: float = TIMER_TICK,
        warning_seconds: float = TIMER_WARNING_SECONDS,
        debounce_seconds: float = TAB_SWITCH_DEBOUNCE,
        notice_seconds: float = NOTICE_SECONDS,
        indicator_seconds: float = SAVE_INDICATOR_SECONDS,
        run_schedulers: bool = True,
    ):
        self.backend = backend
        self.clock = clock
        self.autosave_interval = autosave_interval
        self.tick_seconds = tick_seconds
        self.warning_seconds = warning_seconds
        self.debounce_seconds = debounce_seconds
        self.notice_seconds = notice_seconds
        self.indicator_seconds = indicator_seconds
        self.run_schedulers = run_schedulers

        self.status = SessionStatus.LOADING
        self.attempt: Optional[Attempt] = None
        self.questions: List[Question] = []
        self.store: Optional[AnswerStore] = None
        self.navigation: Optional[NavigationController] = None
        self.timer: Optional[CountdownTimer] = None
        self.autosave: Optional[AutosaveScheduler] = None
        self.proctoring: Optional[ProctoringMonitor] = None
        self.result: Optional[SubmissionResult] = None
        self.last_error: Optional[Exception] = None
        self.alert: Optional[str] = None
        self.draft = None
        self.expiry_task: Optional[asyncio.Task] = None

    # ── 불러오기 ──────────────────────────────────────────────────────────

    async def start(self, attempt_id: str) -> None:
        """
        응시와 문항을 불러와 ACTIVE 로 진입한다.

        Raises:
            LoadError: 응답 실패, 이미 완료된 응시, 문항 없음, 이미 지난 마감
        """
        if self.status is not SessionStatus.LOADING:
            raise SessionStateError(f"이미 시작된 세션입니다 (상태: {self.status.value})")

        try:
            payload = await self.backend.load_attempt(attempt_id)
        except LoadError as e:
            self._fail(e)
            raise

        if payload.attempt.is_completed:
            error = LoadError("This test has already been submitted.", reason=LoadError.COMPLETED)
            self._fail(error)
            raise error
        if not payload.questions:
            error = LoadError("This test has no questions. Please contact your teacher.", reason=LoadError.EMPTY)
            self._fail(error)
            raise error

        self._build(payload.attempt, payload.questions)

        if self.clock() >= self.attempt.deadline:
            logger.warning(f"응시 {self.attempt.id}: 불러온 시점에 이미 마감 → 자동 제출")
            self.status = SessionStatus.EXPIRED
            self.alert = EXPIRED_ON_LOAD_MESSAGE
            try:
                await self.submit(SubmitTrigger.TIMEOUT)
            except SubmitError as e:
                raise LoadError(EXPIRED_ON_LOAD_MESSAGE, reason=LoadError.EXPIRED) from e
            raise LoadError(EXPIRED_ON_LOAD_MESSAGE, reason=LoadError.EXPIRED)

        self.status = SessionStatus.ACTIVE
        self.proctoring.start()
        if self.run_schedulers:
            self.timer.start()
            self.autosave.start()
        logger.info(
            f"응시 {self.attempt.id} 시작: 문항 {len(self.questions)}개, "
            f"복원 답안 {len(self.store)}개, 마감 {self.attempt.deadline.isoformat()}"
        )

    def _build(self, attempt: Attempt, questions: List[Question]) -> None:
        self.attempt = attempt
        self.questions = list(questions)
        self.store = AnswerStore(self.questions)
        self.store.restore(attempt.answers)
        self.navigation = NavigationController(self.questions, self.store, flush=self.flush_current)
        self.timer = CountdownTimer(
            attempt.deadline,
            self.clock,
            on_expire=self._on_deadline,
            warning_seconds=self.warning_seconds,
            tick_seconds=self.tick_seconds,
        )
        self.autosave = AutosaveScheduler(
            self._save_progress,
            is_active=lambda: self.status is SessionStatus.ACTIVE,
            clock=self.clock,
            interval=self.autosave_interval,
            indicator_seconds=self.indicator_seconds,
        )
        self.proctoring = ProctoringMonitor(
            attempt.proctoring,
            self.clock,
            tab_switches=attempt.tab_switches,
            copy_attempts=attempt.copy_attempts,
            events=attempt.suspicious_activity,
            debounce_seconds=self.debounce_seconds,
            notice_seconds=self.notice_seconds,
        )

    def _fail(self, error: Exception) -> None:
        self.status = SessionStatus.ERROR
        self.last_error = error
        self.alert = str(error)
        logger.error(f"세션 오류: {error}")

    # ── 답안 입력 ─────────────────────────────────────────────────────────

    @property
    def current_question(self) -> Question:
        self._require_navigation()
        return self.navigation.current

    def render_current(self):
        """현재 문항의 입력 위젯. 작성 중인 초안이 있으면 초안을 그대로 보여준다."""
        question = self.current_question
        if self.draft is not None:
            return self.draft
        return question_types.render_input(question, self.store.get(question.id))

    def set_draft(self, widget) -> Any:
        """
        현재 문항의 위젯 상태를 초안으로 보관한다. 형태가 맞는지 미리 검증한다.

        Returns:
            위젯에서 꺼낸 답안 값
        """
        self._require_active()
        value = question_types.extract_answer(self.current_question, widget)
        self.draft = widget
        return value

    def answer(self, widget) -> Any:
        """초안 보관 + 즉시 답안지 반영."""
        self.set_draft(widget)
        return self.flush_current()

    def reorder(self, from_index: int, to_index: int) -> List[int]:
        """현재 순서 배열 문항의 항목을 옮긴다 (드래그 앤 드롭)."""
        self._require_active()
        question = self.current_question
        if question.question_type is not QuestionType.ORDERING:
            raise AnswerValidationError(f"문항 {question.id}은(는) 순서 배열 문항이 아닙니다.")
        order = question_types.extract_answer(question, self.render_current())
        new_order = reorder(order, from_index, to_index)
        self.draft = question_types.render_input(question, new_order)
        return new_order

    def flush_current(self) -> Any:
        """초안을 답안지에 반영한다. 초안이 없으면 아무것도 하지 않는다."""
        if self.draft is None or self.navigation is None:
            return None
        question = self.navigation.current
        value = question_types.extract_answer(question, self.draft)
        self.draft = None
        return self.store.put(question.id, value)

    # ── 이동 ──────────────────────────────────────────────────────────────

    def jump(self, index: int) -> Question:
        self._require_active()
        return self.navigation.jump(index)

    def next(self) -> bool:
        self._require_active()
        return self.navigation.next()

    def prev(self) -> bool:
        self._require_active()
        return self.navigation.prev()

    # ── 자동 저장 / 제출 ──────────────────────────────────────────────────

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            answers=self.store.snapshot() if self.store else {},
            tab_switches=self.proctoring.tab_switches if self.proctoring else 0,
            copy_attempts=self.proctoring.copy_attempts if self.proctoring else 0,
            suspicious_activity=self.proctoring.log() if self.proctoring else [],
        )

    async def _save_progress(self) -> None:
        # 요청 시점의 전체 상태를 먼저 찍어 둔다
        snapshot = self.snapshot()
        await self.backend.save_progress(self.attempt.id, snapshot)

    def confirm_submission(self) -> Optional[ValidationWarning]:
        """
        수동 제출 전 확인. 미응답 문항이 있으면 경고를 반환한다 (막지는 않음).
        """
        self._require_active()
        self.flush_current()
        unanswered = len(self.store.unanswered())
        return ValidationWarning(unanswered) if unanswered else None

    async def submit(self, trigger: SubmitTrigger = SubmitTrigger.MANUAL) -> Optional[SubmissionResult]:
        """
        답안 전체와 감독 기록을 제출한다.

        SUBMITTING / COMPLETED 상태에서는 다시 보내지 않고 기존 결과를 돌려준다.
        실패하면 ERROR 로 전이하고 SubmitError 를 던진다. 답안지는 그대로 남아 재시도할 수 있다.
        """
        if self.status in (SessionStatus.SUBMITTING, SessionStatus.COMPLETED):
            logger.info(f"제출 무시 ({trigger.value}): 이미 {self.status.value}")
            return self.result
        if self.status not in (SessionStatus.ACTIVE, SessionStatus.EXPIRED, SessionStatus.ERROR) or self.attempt is None:
            raise SessionStateError(f"제출할 수 없는 상태입니다: {self.status.value}")

        if self.status is not SessionStatus.ERROR:
            self.flush_current()
        self.timer.stop()
        self.autosave.stop()
        self.status = SessionStatus.SUBMITTING
        logger.info(f"응시 {self.attempt.id} 제출 시작 ({trigger.value}), 답안 {len(self.store)}개")

        try:
            result = await self.backend.submit(self.attempt.id, self.snapshot())
        except SubmitError as e:
            self._fail(e)
            self.alert = SUBMIT_FAILED_MESSAGE
            raise

        self.result = result
        self.status = SessionStatus.COMPLETED
        self.attempt.is_completed = True
        self.proctoring.stop()
        self.alert = result.summary()
        logger.info(f"응시 {self.attempt.id} 제출 완료: {result.score}/{result.max_score}")
        return result

    def _on_deadline(self) -> None:
        """타이머 만료 콜백. ACTIVE 일 때만 한 번 자동 제출을 건다."""
        if self.status is not SessionStatus.ACTIVE:
            return
        self.status = SessionStatus.EXPIRED
        self.alert = TIME_UP_MESSAGE
        self.expiry_task = asyncio.ensure_future(self._auto_submit())

    async def _auto_submit(self) -> Optional[SubmissionResult]:
        try:
            return await self.submit(SubmitTrigger.TIMEOUT)
        except SubmitError:
            logger.error(f"응시 {self.attempt.id}: 자동 제출 실패, 사용자 재시도 대기")
            return None

    # ── 상태 ──────────────────────────────────────────────────────────────

    @property
    def leave_warning(self) -> Optional[str]:
        """진행/제출 중에는 페이지 이탈 경고 (막지는 않는다)."""
        if self.status in (SessionStatus.ACTIVE, SessionStatus.SUBMITTING):
            return LEAVE_WARNING
        return None

    @property
    def can_retry(self) -> bool:
        return self.status is SessionStatus.ERROR and self.attempt is not None and self.result is None

    def close(self) -> None:
        """세션 폐기 시 주기 작업을 모두 멈춘다."""
        if self.timer is not None:
            self.timer.stop()
        if self.autosave is not None:
            self.autosave.stop()

    async def aclose(self) -> None:
        """close() 후 이미 보낸 자동 저장 요청이 끝나기를 기다린다."""
        self.close()
        if self.autosave is not None:
            await self.autosave.drain()

    def _require_navigation(self) -> None:
        if self.navigation is None:
            raise SessionStateError("응시가 아직 시작되지 않았습니다.")

    def _require_active(self) -> None:
        self._require_navigation()
        if self.status is not SessionStatus.ACTIVE:
            raise SessionStateError(f"진행 중인 응시가 아닙니다 (상태: {self.status.value})")
