"""
원장 스키마 초기화

Web/Jobs 시작 시 자동으로 원장 테이블과 View 생성.
CREATE IF NOT EXISTS / DROP VIEW IF EXISTS 패턴으로 안전하게 동작.

금액 컬럼은 모두 INTEGER (minor unit, centavo).
시각 컬럼은 UTC ISO 문자열 (마이크로초 고정 포맷이므로 문자열 정렬 = 시간 정렬).
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """원장 스키마 초기화 (테이블 + View)

    Web/Jobs 시작 시 호출되어 필요한 모든 테이블과 View를 생성.
    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_views(db)
    logger.info("원장 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """원장 테이블 생성"""

    # customers 테이블 (outstanding_balance는 엔진만 갱신하는 캐시)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS customers (
            customer_id         TEXT PRIMARY KEY,
            name                TEXT NOT NULL,
            phone               TEXT,
            email               TEXT,
            address             TEXT,
            outstanding_balance INTEGER NOT NULL DEFAULT 0
                                CHECK (outstanding_balance >= 0),
            created_at          TEXT NOT NULL
        )
    """)

    # debts 테이블 (차변)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS debts (
            debt_id          TEXT PRIMARY KEY,
            customer_id      TEXT NOT NULL,
            amount           INTEGER NOT NULL CHECK (amount >= 0),
            paid_amount      INTEGER NOT NULL DEFAULT 0,
            category         TEXT NOT NULL,
            category_key     TEXT NOT NULL,
            created_at       TEXT NOT NULL,
            order_id         TEXT,
            items_json       TEXT NOT NULL DEFAULT '[]',
            notes            TEXT,
            CHECK (paid_amount >= 0 AND paid_amount <= amount),
            FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
        )
    """)

    # repayments 테이블 (대변)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS repayments (
            repayment_id     TEXT PRIMARY KEY,
            customer_id      TEXT NOT NULL,
            amount           INTEGER NOT NULL CHECK (amount > 0),
            category         TEXT NOT NULL,
            category_key     TEXT NOT NULL,
            ts               TEXT NOT NULL,
            method           TEXT NOT NULL DEFAULT 'CASH',
            source           TEXT NOT NULL DEFAULT 'ALLOCATION',
            FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
        )
    """)

    # repayment_allocations 테이블 (상환 → 외상 배분 내역, 삭제 시 정확한 역산용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS repayment_allocations (
            repayment_id     TEXT NOT NULL,
            debt_id          TEXT NOT NULL,
            amount           INTEGER NOT NULL CHECK (amount > 0),
            PRIMARY KEY (repayment_id, debt_id),
            FOREIGN KEY (repayment_id) REFERENCES repayments(repayment_id) ON DELETE CASCADE,
            FOREIGN KEY (debt_id) REFERENCES debts(debt_id) ON DELETE CASCADE
        )
    """)

    # 인덱스 생성
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_debts_customer_category "
        "ON debts(customer_id, category_key, created_at, debt_id)"
    )
    await db.execute("CREATE INDEX IF NOT EXISTS idx_debts_order ON debts(order_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_debts_created_at ON debts(created_at)")
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_repayments_customer_ts "
        "ON repayments(customer_id, ts)"
    )
    await db.execute("CREATE INDEX IF NOT EXISTS idx_repayments_ts ON repayments(ts)")
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_allocations_debt "
        "ON repayment_allocations(debt_id)"
    )

    await db.commit()
    logger.debug("원장 테이블 생성 완료")


async def _create_ledger_views(db: "SQLiteAdapter") -> None:
    """조회용 View 생성

    View는 항상 DROP 후 CREATE하여 스키마 변경 시에도 안전.
    """

    # 고객별 캐시 잔액 vs 이력 기반 잔액 (재보정/드리프트 감지용)
    await db.execute("DROP VIEW IF EXISTS v_customer_balance")
    await db.execute("""
        CREATE VIEW v_customer_balance AS
        SELECT
            c.customer_id,
            c.name,
            c.outstanding_balance AS cached_balance,
            COALESCE((SELECT SUM(d.amount) FROM debts d
                      WHERE d.customer_id = c.customer_id), 0) AS total_debits,
            COALESCE((SELECT SUM(r.amount) FROM repayments r
                      WHERE r.customer_id = c.customer_id), 0) AS total_credits
        FROM customers c
    """)

    # 고객/카테고리별 순잔액 (활성 카테고리 조회용)
    await db.execute("DROP VIEW IF EXISTS v_category_balance")
    await db.execute("""
        CREATE VIEW v_category_balance AS
        SELECT
            customer_id,
            category_key,
            MAX(category) AS category,
            SUM(debit) AS total_debits,
            SUM(credit) AS total_credits,
            SUM(debit) - SUM(credit) AS net_balance
        FROM (
            SELECT customer_id, category_key, category, amount AS debit, 0 AS credit
            FROM debts
            UNION ALL
            SELECT customer_id, category_key, category, 0 AS debit, amount AS credit
            FROM repayments
        )
        GROUP BY customer_id, category_key
    """)

    await db.commit()
    logger.debug("원장 View 생성 완료")
