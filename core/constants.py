"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → ledgerconnect/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    CURRENCY: str = "PHP"
    CURRENCY_SYMBOL: str = "₱"
    MINOR_UNIT_DIGITS: int = 2  # centavo

    # 로컬 타임존 (Asia/Manila, UTC+8)
    TIMEZONE_OFFSET_HOURS: int = 8

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    # SQLite 잠금 대기 (Web과 재보정 작업 동시 접근)
    DB_BUSY_TIMEOUT_MS: int = 30000

    # 잔액 재계산 재시도
    RECALC_MAX_ATTEMPTS: int = 3
    RECALC_RETRY_DELAY_SEC: float = 0.2

    OVERPAYMENT_POLICY: str = "flag"


class LedgerLabels:
    """고정 라벨"""

    POS_CASH_SALE_CATEGORY: str = "POS Cash Sale"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    JOBS_LOGS_DIR: Path = LOGS_DIR / "jobs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    PROD_DB: Path = DATA_DIR / "ledger_prod.db"
    SANDBOX_DB: Path = DATA_DIR / "ledger_sandbox.db"
