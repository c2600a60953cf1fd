import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
INDEX_FILE = os.path.join(STATIC_DIR, "index.html")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
DEFAULT_TIMEOUT = 15.0

# 백엔드(채점 서버) 설정
BACKEND_URL = os.getenv("EXAM_BACKEND_URL", "http://127.0.0.1:3000")
BACKEND_TIMEOUT = float(os.getenv("EXAM_BACKEND_TIMEOUT", "10"))
DASHBOARD_URL = "/dashboard.html"

# 시험 세션 설정
AUTOSAVE_INTERVAL = float(os.getenv("EXAM_AUTOSAVE_INTERVAL", "30"))   # 초
TIMER_TICK = 1.0                                                        # 초
TIMER_WARNING_SECONDS = 5 * 60      # 5분 미만이면 긴급 표시
TAB_SWITCH_DEBOUNCE = 1.5           # 동시에 발생하는 blur/visibility 신호 병합
NOTICE_SECONDS = 3.0                # 감독 알림 표시 시간
SAVE_INDICATOR_SECONDS = 2.0        # "저장됨" 표시 시간

# 세션 설정
SESSION_TTL = int(os.getenv("EXAM_SESSION_TTL", "3600"))
