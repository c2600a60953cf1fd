"""
services/backend_client.py

채점 백엔드 연동 (httpx 비동기 클라이언트).

Public API:
  - load_attempt(attempt_id)        -> AttemptPayload     : 응시 + 문항 불러오기
  - save_progress(attempt_id, snap) -> None               : 자동 저장
  - submit(attempt_id, snap)        -> SubmissionResult   : 최종 제출
  - load_review(attempt_id)         -> CompletedAttempt   : 완료 후 리뷰 조회

요청/응답 필드 이름은 백엔드 계약이므로 그대로 둔다.
네트워크/HTTP 오류는 각각 LoadError / SaveError / SubmitError 로 바꿔 던진다.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from config import BACKEND_TIMEOUT, BACKEND_URL
from exam_engine.models.attempt_model import Attempt, AttemptPayload, CompletedAttempt
from exam_engine.models.session_state import ProgressSnapshot, SubmissionResult
from exam_engine.services.errors import LoadError, SaveError, SubmitError

logger = logging.getLogger(__name__)

ATTEMPT_PATH = "/api/student/attempts/{attempt_id}"


class AttemptBackend(Protocol):
    """세션 컨트롤러가 쓰는 백엔드 인터페이스 (테스트에서는 가짜 구현으로 대체)."""

    async def load_attempt(self, attempt_id: str) -> AttemptPayload: ...

    async def save_progress(self, attempt_id: str, snapshot: ProgressSnapshot) -> None: ...

    async def submit(self, attempt_id: str, snapshot: ProgressSnapshot) -> SubmissionResult: ...

    async def load_review(self, attempt_id: str) -> CompletedAttempt: ...


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return fallback


class BackendClient:
    """실제 백엔드용 AttemptBackend 구현."""

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        token: Optional[str] = None,
        timeout: float = BACKEND_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = headers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _path(self, attempt_id: str, action: str = "") -> str:
        path = ATTEMPT_PATH.format(attempt_id=attempt_id)
        return f"{path}/{action}" if action else path

    async def _fetch_attempt(self, attempt_id: str) -> Dict[str, Any]:
        try:
            response = await self._client.get(self._path(attempt_id), headers=self._headers)
        except httpx.HTTPError as e:
            raise LoadError(f"응시 정보를 불러오지 못했습니다: {e}") from e

        if response.status_code == 404:
            raise LoadError(_error_message(response, "Attempt not found"), reason=LoadError.NOT_FOUND)
        if not response.is_success:
            raise LoadError(_error_message(response, f"Failed to load test (HTTP {response.status_code})"))
        try:
            data = response.json()
        except ValueError as e:
            raise LoadError("응시 응답이 JSON 이 아닙니다.") from e
        if not isinstance(data, dict) or not isinstance(data.get("attempt"), dict):
            raise LoadError("응시 응답에 attempt 가 없습니다.")
        return data

    async def load_attempt(self, attempt_id: str) -> AttemptPayload:
        data = await self._fetch_attempt(attempt_id)
        try:
            return AttemptPayload(
                attempt=Attempt.from_backend(attempt_id, data["attempt"]),
                questions=data.get("questions") or [],
            )
        except ValidationError as e:
            raise LoadError(f"응시 응답 형식 오류: {e.error_count()}건") from e

    async def load_review(self, attempt_id: str) -> CompletedAttempt:
        data = await self._fetch_attempt(attempt_id)
        raw = dict(data["attempt"])
        raw.setdefault("id", attempt_id)
        raw["questions"] = data.get("questions") or []
        try:
            completed = CompletedAttempt.model_validate(raw)
        except ValidationError as e:
            raise LoadError(f"리뷰 응답 형식 오류: {e.error_count()}건") from e
        if not data["attempt"].get("is_completed", True):
            raise LoadError("아직 제출되지 않은 응시입니다.", reason=LoadError.INVALID)
        return completed

    async def save_progress(self, attempt_id: str, snapshot: ProgressSnapshot) -> None:
        try:
            response = await self._client.put(
                self._path(attempt_id, "save"), json=snapshot.to_body(), headers=self._headers
            )
        except httpx.HTTPError as e:
            raise SaveError(str(e)) from e
        if not response.is_success:
            raise SaveError(_error_message(response, f"HTTP {response.status_code}"))

    async def submit(self, attempt_id: str, snapshot: ProgressSnapshot) -> SubmissionResult:
        try:
            response = await self._client.put(
                self._path(attempt_id, "submit"), json=snapshot.to_body(), headers=self._headers
            )
        except httpx.HTTPError as e:
            raise SubmitError(f"Failed to submit test: {e}") from e
        if not response.is_success:
            raise SubmitError(_error_message(response, "Failed to submit test"))
        try:
            return SubmissionResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise SubmitError("제출 응답 형식 오류") from e
