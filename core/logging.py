"""
로깅 설정 유틸리티

Web과 Jobs 모두에서 사용하는 공통 로깅 설정.
- 콘솔: INFO 레벨
- 파일: INFO 레벨 (TimedRotatingFileHandler, daily)
- 원장 로그의 extra 컨텍스트(customer_id 등)를 메시지 뒤에 key=value로 출력

사용법:
    from core.logging import setup_logging
    setup_logging("web")   # Web API용 로거 설정
    setup_logging("jobs")  # 재보정 작업용 로거 설정
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7  # 최대 7일치 파일 유지

# extra로 전달되어 로그 끝에 붙는 원장 컨텍스트 필드 (출력 순서)
CONTEXT_FIELDS = (
    "customer_id",
    "debt_id",
    "repayment_id",
    "order_id",
    "category",
    "balance",
    "surplus",
    "revision",
    "attempt",
)

# 레벨을 WARNING으로 낮출 외부 로거
NOISY_LOGGERS = [
    "aiosqlite",      # 쿼리마다 executing/completed 로그
    "httpcore",
    "httpx",
    "asyncio",
    "uvicorn.access", # 요청별 액세스 로그
]


class LedgerFormatter(logging.Formatter):
    """원장 컨텍스트를 덧붙이는 포맷터

    예: ``... | core.ledger.service | 상환 배분: Maria ₱120.00 [Rice] | customer_id=c-1 balance=3000``
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        return f"{line} | {context}" if context else line


def get_log_dir(process_name: str) -> Path:
    """프로세스별 로그 디렉토리"""
    return {
        "web": Paths.WEB_LOGS_DIR,
        "jobs": Paths.JOBS_LOGS_DIR,
    }.get(process_name, Paths.LOGS_DIR)


def get_log_file_path(process_name: str) -> Path:
    return get_log_dir(process_name) / f"{process_name}.log"


def _file_handler(log_file: Path, level: int, formatter: logging.Formatter) -> TimedRotatingFileHandler:
    """자정마다 새 파일로 넘어가는 파일 핸들러 (백업: web.log.2026-03-01)"""
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """로깅 설정 초기화

    Args:
        process_name: 프로세스 이름 ("web" 또는 "jobs")
        console_level: 콘솔 로그 레벨
        file_level: 파일 로그 레벨
        log_dir: 로그 디렉토리 (None이면 프로세스별 기본 경로)

    Returns:
        설정된 루트 Logger
    """
    log_dir = log_dir or get_log_dir(process_name)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{process_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # 핸들러에서 필터링

    # 재호출 시 핸들러 중복 방지
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = LedgerFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_file_handler(log_file, file_level, formatter))

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        f"로깅 초기화 완료: {process_name} "
        f"(콘솔 {logging.getLevelName(console_level)}, 파일 {log_file})"
    )
    return root_logger
