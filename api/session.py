"""
api/session.py — 브라우저별 인메모리 세션 (쿠키 기반)

각 브라우저에 UUID 세션 ID를 발급하고, 세션마다 진행 중인 응시(ExamSession)
하나와 그 백엔드 클라이언트를 보관한다. 세션당 진행 중 응시는 최대 하나.
TTL(기본 1시간) 동안 접근이 없으면 만료된다.
"""

import threading
import time
import uuid
from typing import Any, List

from config import SESSION_TTL

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state() -> dict[str, Any]:
    return {
        "exam": None,       # ExamSession
        "backend": None,    # BackendClient
        "token": "",
    }


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            return None
        _timestamps[sid] = time.time()  # 접근 시 갱신
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    """세션에서 값 읽기."""
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    """세션에 값 쓰기."""
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def reset(sid: str) -> dict[str, Any]:
    """
    세션 초기화 (토큰은 유지).

    Returns:
        초기화 직전 상태. 호출한 쪽이 응시·클라이언트를 정리한다.
    """
    with _lock:
        old = _sessions.get(sid) or _new_state()
        if sid in _sessions:
            _sessions[sid] = _new_state()
            _sessions[sid]["token"] = old.get("token", "")
            _timestamps[sid] = time.time()
        return old


def cleanup_expired() -> List[dict[str, Any]]:
    """만료된 세션을 정리. 제거된 세션 상태 목록 반환 (응시 정리용)."""
    now = time.time()
    removed: List[dict[str, Any]] = []
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            removed.append(_sessions.pop(sid))
            del _timestamps[sid]
    return removed


def drain() -> List[dict[str, Any]]:
    """서버 종료 시 모든 세션을 비우고 상태 목록을 반환."""
    with _lock:
        states = list(_sessions.values())
        _sessions.clear()
        _timestamps.clear()
    return states
