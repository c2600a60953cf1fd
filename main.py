"""
main.py — 시험 응시 엔진 진입점

사용법:
    python main.py [--kiosk] [attempt_id]

엔진은 HTTP API 만 제공한다. static/index.html 에 프런트엔드가 설치된 경우에만
브라우저를 연다 (attempt_id 를 주면 해당 응시 화면으로 바로 연다).
--kiosk 는 전체화면 감독 응시용으로 브라우저를 키오스크 모드로 띄운다.
"""

import os
import socket
import subprocess
import sys
import time
import threading
import logging
import traceback

# ── 패키지 경로 설정 (반드시 최상단) ──────────────────────────────────────────
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BASE_DIR, INDEX_FILE, LOG_FILE, DEFAULT_HOST, DEFAULT_TIMEOUT

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]

def _wait_for_server(port: int, timeout: float = DEFAULT_TIMEOUT) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _open_browser(url: str, kiosk: bool = False) -> None:
    candidates = [
        r"C:\Program Files\Google\Chrome\Application\chrome.exe",
        r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
        r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
        r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
    ]
    flags = [f"--app={url}", "--no-first-run", "--window-size=1280,800"]
    if kiosk:
        flags.append("--kiosk")

    for path in candidates:
        if os.path.exists(path):
            logger.info(f"브라우저 실행 시도: {path}")
            subprocess.Popen([path] + flags)
            return

    import webbrowser
    webbrowser.open(url)

def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - Port: {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="error")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")

# ── 메인 실행 ────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== Exam Session Engine Started ===")
    os.chdir(BASE_DIR)

    args = sys.argv[1:]
    kiosk = "--kiosk" in args
    positional = [a for a in args if not a.startswith("--")]
    attempt_id = positional[0] if positional else None

    port = _find_free_port()
    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if _wait_for_server(port):
        base_url = f"http://{DEFAULT_HOST}:{port}"
        logger.info(f"API 서버 준비 완료: {base_url}/api")
        if os.path.exists(INDEX_FILE):
            url = f"{base_url}/"
            if attempt_id:
                url += f"?attempt_id={attempt_id}"
            logger.info("프런트엔드 발견. 브라우저를 엽니다.")
            _open_browser(url, kiosk=kiosk)
        else:
            logger.info(f"프런트엔드 없음 (static/index.html). API 만 제공합니다: {base_url}/api")
            if attempt_id:
                logger.info(f"응시 시작: POST {base_url}/api/attempts/{attempt_id}/start")

        # 메인 스레드 유지
        try:
            while True:
                time.sleep(10)
        except KeyboardInterrupt:
            logger.info("사용자에 의해 종료되었습니다.")
    else:
        logger.error("서버 시작 제한 시간을 초과했습니다.")
        sys.exit(1)
