"""로깅 설정 테스트"""

import logging
from pathlib import Path

import pytest

from core.constants import Paths
from core.logging import LedgerFormatter, get_log_dir, get_log_file_path, setup_logging


@pytest.fixture
def restore_root_logger():
    """테스트 후 루트 로거 핸들러/레벨 복원"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("core.ledger.service", logging.INFO, __file__, 1, "상환 배분", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLedgerFormatter:
    def test_appends_context(self) -> None:
        formatter = LedgerFormatter("%(message)s")

        line = formatter.format(make_record(customer_id="c1", balance=3000, unrelated="x"))

        assert line == "상환 배분 | customer_id=c1 balance=3000"

    def test_plain_without_context(self) -> None:
        assert LedgerFormatter("%(message)s").format(make_record()) == "상환 배분"


class TestLogPaths:
    def test_log_dirs(self) -> None:
        assert get_log_dir("web") == Paths.WEB_LOGS_DIR
        assert get_log_dir("jobs") == Paths.JOBS_LOGS_DIR
        assert get_log_dir("other") == Paths.LOGS_DIR
        assert get_log_file_path("jobs") == Paths.JOBS_LOGS_DIR / "jobs.log"


class TestSetupLogging:
    def test_creates_file_and_handlers(self, temp_dir: Path, restore_root_logger) -> None:
        root = setup_logging("jobs", log_dir=temp_dir / "logs")

        assert (temp_dir / "logs" / "jobs.log").exists()
        assert len(root.handlers) == 2
        assert all(isinstance(h.formatter, LedgerFormatter) for h in root.handlers)
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_repeated_setup_does_not_duplicate(self, temp_dir: Path, restore_root_logger) -> None:
        setup_logging("web", log_dir=temp_dir)
        root = setup_logging("web", log_dir=temp_dir)

        assert len(root.handlers) == 2
