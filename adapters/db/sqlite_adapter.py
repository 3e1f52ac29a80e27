"""
SQLite 어댑터

원장 DB 연결 관리 (WAL 모드, 외래 키 활성화).
Web API와 재보정 작업이 같은 파일을 동시에 열 수 있도록 busy_timeout 설정.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults

logger = logging.getLogger(__name__)

Params = tuple[Any, ...]


async def create_connection(
    db_path: Path | str,
    busy_timeout_ms: int = Defaults.DB_BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """원장 DB 연결 생성

    상위 디렉토리가 없으면 만들고 WAL / busy_timeout / foreign_keys 설정.

    Args:
        db_path: DB 파일 경로
        busy_timeout_ms: 다른 연결의 잠금 대기 시간

    Returns:
        aiosqlite 연결 객체
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(str(path))
    for pragma in (
        "PRAGMA journal_mode=WAL",
        f"PRAGMA busy_timeout={int(busy_timeout_ms)}",
        # 외상 삭제 시 상환 배분 내역 보호 / 상환 삭제 시 CASCADE
        "PRAGMA foreign_keys=ON",
    ):
        await conn.execute(pragma)

    logger.info("SQLite 연결 생성", extra={"db_path": str(path)})
    return conn


def _as_dicts(cursor: aiosqlite.Cursor, rows: list[Params]) -> list[dict[str, Any]]:
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row)) for row in rows]


class SQLiteAdapter:
    """원장 DB 어댑터

    연결 하나를 공유하며, transaction()은 내부 Lock으로 직렬화되어
    서로 다른 고객의 변경이 한 트랜잭션에 섞이지 않음.
    transaction() 중첩 금지 (교착).

    Args:
        db_path: DB 파일 경로
        busy_timeout_ms: 잠금 대기 시간

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)

        async with db.transaction():
            await db.execute("UPDATE debts SET paid_amount = ? WHERE debt_id = ?", (0, debt_id))
    ```
    """

    def __init__(self, db_path: Path | str, busy_timeout_ms: int = Defaults.DB_BUSY_TIMEOUT_MS):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError(f"Not connected to database: {self.db_path}")
        return self._conn

    async def connect(self) -> None:
        if self._conn is None:
            self._conn = await create_connection(self.db_path, self.busy_timeout_ms)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료", extra={"db_path": str(self.db_path)})

    # -------------------------------------------------------------------------
    # 실행 / 조회
    # -------------------------------------------------------------------------

    async def execute(self, sql: str, parameters: Params | None = None) -> aiosqlite.Cursor:
        return await self._require_conn().execute(sql, parameters or ())

    async def executemany(self, sql: str, parameters: list[Params]) -> aiosqlite.Cursor:
        return await self._require_conn().executemany(sql, parameters)

    async def fetchone(self, sql: str, parameters: Params | None = None) -> Params | None:
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, parameters: Params | None = None) -> list[Params]:
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def fetchone_dict(self, sql: str, parameters: Params | None = None) -> dict[str, Any] | None:
        """단일 행 조회 (컬럼명 → 값)"""
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        return _as_dicts(cursor, [row])[0] if row is not None else None

    async def fetchall_dict(self, sql: str, parameters: Params | None = None) -> list[dict[str, Any]]:
        """전체 행 조회 (컬럼명 → 값 목록)"""
        cursor = await self.execute(sql, parameters)
        return _as_dicts(cursor, list(await cursor.fetchall()))

    async def commit(self) -> None:
        await self._require_conn().commit()

    # -------------------------------------------------------------------------
    # 트랜잭션
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """성공 시 커밋, 예외(취소 포함) 시 롤백"""
        conn = self._require_conn()

        async with self._tx_lock:
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator["SQLiteAdapter"]:
        """커밋된 행만 읽기 (진행 중인 transaction() 종료까지 대기)

        연결을 공유하므로 잠금 없이 읽으면 다른 코루틴의 미커밋 변경이 보임.
        여러 고객에 걸친 조회에 사용. 블록 안에서 transaction() 호출 금지.
        """
        self._require_conn()
        async with self._tx_lock:
            yield self

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
