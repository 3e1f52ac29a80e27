"""
pytest 공통 fixture 정의

임시 DB, 원장 저장소/서비스, 고정 시계, Mock 알림.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.mock.notifier import MockNotifier
from core.config.loader import LedgerConfig, NotificationConfig, Settings
from core.ledger.events import NotificationDispatcher
from core.ledger.locks import CustomerLocks
from core.ledger.schema import init_ledger_schema
from core.ledger.service import LedgerService
from core.ledger.store import LedgerStore


class FakeClock:
    """테스트용 시계 (호출마다 1초씩 전진, 명시적으로 이동 가능)"""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2026, 3, 2, 2, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_settings():
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture
async def db(temp_dir: Path) -> SQLiteAdapter:
    """원장 스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(temp_dir / "test_ledger.db")
    await adapter.connect()
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def store(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """재시도 대기 없는 원장 설정"""
    return LedgerConfig(recalc_retry_delay_sec=0)


@pytest.fixture
def dispatcher(notifier: MockNotifier) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, NotificationConfig(slack_webhook_url="https://hooks.slack.com/test"))


@pytest.fixture
def locks() -> CustomerLocks:
    return CustomerLocks()


@pytest.fixture
def service(
    store: LedgerStore,
    ledger_config: LedgerConfig,
    dispatcher: NotificationDispatcher,
    locks: CustomerLocks,
    clock: FakeClock,
) -> LedgerService:
    return LedgerService(
        store,
        config=ledger_config,
        dispatcher=dispatcher,
        locks=locks,
        clock=clock,
    )
