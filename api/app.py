"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + static 파일 서빙
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from config import BACKEND_URL, INDEX_FILE, SESSION_TTL, STATIC_DIR
from api.routes import router, _discard
import api.session as session
from exam_engine.services.backend_client import AttemptBackend, BackendClient
from exam_engine.services.session_controller import utc_now

SESSION_COOKIE = "exam_session"
CLEANUP_INTERVAL = 300  # 5분

logger = logging.getLogger(__name__)


def _default_backend(token: str) -> AttemptBackend:
    return BackendClient(base_url=BACKEND_URL, token=token or None)


def create_app(
    backend_factory: Optional[Callable[[str], AttemptBackend]] = None,
    clock: Callable[[], datetime] = utc_now,
    run_schedulers: bool = True,
) -> FastAPI:
    """
    앱 생성.

    Args:
        backend_factory: 토큰 → 백엔드 클라이언트. 테스트에서 가짜 백엔드 주입용.
        clock:           세션이 쓰는 시계
        run_schedulers:  False 면 타이머/자동 저장 주기 태스크를 띄우지 않는다
    """

    # 만료 세션 주기적 정리 (5분마다)
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL)
            removed = session.cleanup_expired()
            for state in removed:
                await _discard(state)
            if removed:
                logger.info(f"만료 세션 {len(removed)}개 정리")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cleanup = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            cleanup.cancel()
            for state in session.drain():
                await _discard(state)

    app = FastAPI(title="Exam Session Engine", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.backend_factory = backend_factory or _default_backend
    app.state.clock = clock
    app.state.run_schedulers = run_schedulers

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=SESSION_TTL,
        )
        return response

    app.include_router(router)

    # static 파일 마운트
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # 루트 → index.html (프런트엔드를 static/ 에 설치한 경우). 없으면 API 안내만 돌려준다.
    @app.get("/")
    async def serve_index():
        if os.path.exists(INDEX_FILE):
            return FileResponse(INDEX_FILE)
        return {
            "service": app.title,
            "frontend": False,
            "start": "/api/attempts/{attempt_id}/start",
            "exam": "/api/exam",
            "review": "/api/attempts/{attempt_id}/review",
        }

    return app
