"""
원장 저장소

고객 / 외상 / 상환 / 배분 내역 저장 및 조회.
customers.outstanding_balance는 SQL 합계로만 다시 계산되는 캐시.

모든 변경 메서드는 하나의 SQLite 트랜잭션으로 실행되며
sqlite3 오류는 StoreFailure로 변환됨.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable

from core.errors import StoreFailure
from core.ledger.models import (
    Allocation,
    Customer,
    Debt,
    Repayment,
    items_to_json,
)
from core.types import EntryType
from core.utils.timezone import to_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceTotals:
    """고객 잔액 집계 (v_customer_balance 한 행)"""

    customer_id: str
    name: str
    cached_balance: int
    total_debits: int
    total_credits: int

    @property
    def computed_balance(self) -> int:
        """이력 기반 잔액 (0 하한)"""
        return max(0, self.total_debits - self.total_credits)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BalanceTotals":
        return cls(
            customer_id=row["customer_id"],
            name=row["name"],
            cached_balance=int(row["cached_balance"]),
            total_debits=int(row["total_debits"]),
            total_credits=int(row["total_credits"]),
        )


@dataclass(frozen=True)
class CategoryChange:
    """카테고리 변경 한 건 (저장소 반영용, 라벨/키 정규화 완료 상태)"""

    entry_type: EntryType
    entry_id: str
    category: str
    category_key: str
    items_json: str | None = None


class LedgerStore:
    """원장 저장소

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    @asynccontextmanager
    async def _write(self, operation: str) -> AsyncIterator[None]:
        """쓰기 트랜잭션 (실패 시 롤백 후 StoreFailure)"""
        try:
            async with self.db.transaction():
                yield
        except sqlite3.Error as e:
            logger.error(
                f"원장 쓰기 실패: {operation}",
                extra={"operation": operation, "error": str(e)},
            )
            raise StoreFailure(f"{operation} failed: {e}") from e

    # -------------------------------------------------------------------------
    # 고객
    # -------------------------------------------------------------------------

    async def insert_customer(self, customer: Customer) -> Customer:
        async with self._write("insert_customer"):
            await self.db.execute(
                """
                INSERT INTO customers (
                    customer_id, name, phone, email, address,
                    outstanding_balance, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    customer.customer_id,
                    customer.name,
                    customer.phone,
                    customer.email,
                    customer.address,
                    customer.outstanding_balance,
                    to_iso(customer.created_at),
                ),
            )
        logger.debug(f"Saved customer: {customer.customer_id}")
        return customer

    async def get_customer(self, customer_id: str) -> Customer | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM customers WHERE customer_id = ?",
            (customer_id,),
        )
        return Customer.from_row(row) if row else None

    async def list_customers(self) -> list[Customer]:
        rows = await self.db.fetchall_dict(
            "SELECT * FROM customers ORDER BY name COLLATE NOCASE, customer_id"
        )
        return [Customer.from_row(row) for row in rows]

    async def list_customer_ids(self) -> list[str]:
        async with self.db.snapshot():
            rows = await self.db.fetchall(
                "SELECT customer_id FROM customers ORDER BY created_at, customer_id"
            )
        return [row[0] for row in rows]

    # -------------------------------------------------------------------------
    # 외상
    # -------------------------------------------------------------------------

    async def _insert_debt(self, debt: Debt) -> None:
        await self.db.execute(
            """
            INSERT INTO debts (
                debt_id, customer_id, amount, paid_amount,
                category, category_key, created_at,
                order_id, items_json, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                debt.debt_id,
                debt.customer_id,
                debt.amount,
                debt.paid_amount,
                debt.category,
                debt.category_key,
                to_iso(debt.created_at),
                debt.order_id,
                items_to_json(debt.items),
                debt.notes,
            ),
        )

    async def add_debts(self, debts: Iterable[Debt]) -> None:
        """외상 저장 (여러 건이면 한 트랜잭션)"""
        debts = list(debts)
        async with self._write("add_debts"):
            for debt in debts:
                await self._insert_debt(debt)
        logger.debug(f"Saved {len(debts)} debt(s)")

    async def get_debt(self, debt_id: str) -> Debt | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM debts WHERE debt_id = ?",
            (debt_id,),
        )
        return Debt.from_row(row) if row else None

    async def list_debts(
        self,
        customer_id: str,
        category_key: str | None = None,
    ) -> list[Debt]:
        """고객 외상 조회 (created_at, debt_id 오름차순)

        Args:
            customer_id: 고객 ID
            category_key: 지정 시 해당 카테고리만
        """
        if category_key is None:
            rows = await self.db.fetchall_dict(
                """
                SELECT * FROM debts
                WHERE customer_id = ?
                ORDER BY created_at, debt_id
                """,
                (customer_id,),
            )
        else:
            rows = await self.db.fetchall_dict(
                """
                SELECT * FROM debts
                WHERE customer_id = ? AND category_key = ?
                ORDER BY created_at, debt_id
                """,
                (customer_id, category_key),
            )
        return [Debt.from_row(row) for row in rows]

    async def list_open_debts(self, customer_id: str, category_key: str) -> list[Debt]:
        """카테고리 내 미결 외상 (FIFO 순서)"""
        rows = await self.db.fetchall_dict(
            """
            SELECT * FROM debts
            WHERE customer_id = ? AND category_key = ? AND paid_amount < amount
            ORDER BY created_at, debt_id
            """,
            (customer_id, category_key),
        )
        return [Debt.from_row(row) for row in rows]

    async def delete_debt(self, debt_id: str) -> None:
        """외상 삭제 (상환 미적용 외상만)

        paid_amount > 0인 행은 삭제하지 않음. 호출 측에서 사전 검증.
        """
        async with self._write("delete_debt"):
            cursor = await self.db.execute(
                "DELETE FROM debts WHERE debt_id = ? AND paid_amount = 0",
                (debt_id,),
            )
            if cursor.rowcount != 1:
                raise sqlite3.IntegrityError(f"debt {debt_id} changed concurrently")

    # -------------------------------------------------------------------------
    # 상환
    # -------------------------------------------------------------------------

    async def _insert_repayment(self, repayment: Repayment) -> None:
        await self.db.execute(
            """
            INSERT INTO repayments (
                repayment_id, customer_id, amount,
                category, category_key, ts, method, source
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                repayment.repayment_id,
                repayment.customer_id,
                repayment.amount,
                repayment.category,
                repayment.category_key,
                to_iso(repayment.timestamp),
                repayment.method.value,
                repayment.source.value,
            ),
        )

    async def _apply_allocations(self, repayment_id: str, allocations: Iterable[Allocation]) -> None:
        """배분 내역 기록 + 외상 paid_amount 증가 (원자적 단일 행 업데이트)"""
        for allocation in allocations:
            cursor = await self.db.execute(
                """
                UPDATE debts
                SET paid_amount = paid_amount + ?
                WHERE debt_id = ? AND paid_amount + ? <= amount
                """,
                (allocation.amount, allocation.debt_id, allocation.amount),
            )
            if cursor.rowcount != 1:
                raise sqlite3.IntegrityError(
                    f"allocation of {allocation.amount} exceeds debt {allocation.debt_id}"
                )
            await self.db.execute(
                """
                INSERT INTO repayment_allocations (repayment_id, debt_id, amount)
                VALUES (?, ?, ?)
                """,
                (repayment_id, allocation.debt_id, allocation.amount),
            )

    async def add_repayment(
        self,
        repayment: Repayment,
        allocations: Iterable[Allocation],
        new_debts: Iterable[Debt] = (),
    ) -> None:
        """상환 저장 + 배분 반영 (한 트랜잭션)

        Args:
            repayment: 상환 기록
            allocations: 외상별 적용 금액
            new_debts: 같은 트랜잭션에서 먼저 생성할 외상 (POS 현금 판매)
        """
        async with self._write("add_repayment"):
            for debt in new_debts:
                await self._insert_debt(debt)
            await self._insert_repayment(repayment)
            await self._apply_allocations(repayment.repayment_id, allocations)
        logger.debug(f"Saved repayment: {repayment.repayment_id}")

    async def get_repayment(self, repayment_id: str) -> Repayment | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM repayments WHERE repayment_id = ?",
            (repayment_id,),
        )
        return Repayment.from_row(row) if row else None

    async def list_repayments(self, customer_id: str) -> list[Repayment]:
        """고객 상환 조회 (최신순)"""
        rows = await self.db.fetchall_dict(
            """
            SELECT * FROM repayments
            WHERE customer_id = ?
            ORDER BY ts DESC, repayment_id DESC
            """,
            (customer_id,),
        )
        return [Repayment.from_row(row) for row in rows]

    async def get_allocations(self, repayment_id: str) -> list[Allocation]:
        rows = await self.db.fetchall_dict(
            """
            SELECT a.repayment_id, a.debt_id, a.amount
            FROM repayment_allocations a
            JOIN debts d ON d.debt_id = a.debt_id
            WHERE a.repayment_id = ?
            ORDER BY d.created_at, d.debt_id
            """,
            (repayment_id,),
        )
        return [Allocation.from_row(row) for row in rows]

    async def remove_repayment(self, repayment_id: str, reversals: Iterable[Allocation]) -> None:
        """상환 삭제 + 외상 paid_amount 역산 (한 트랜잭션)

        배분 내역은 ON DELETE CASCADE로 함께 삭제.
        """
        async with self._write("remove_repayment"):
            for reversal in reversals:
                cursor = await self.db.execute(
                    """
                    UPDATE debts
                    SET paid_amount = paid_amount - ?
                    WHERE debt_id = ? AND paid_amount >= ?
                    """,
                    (reversal.amount, reversal.debt_id, reversal.amount),
                )
                if cursor.rowcount != 1:
                    raise sqlite3.IntegrityError(
                        f"reversal of {reversal.amount} exceeds paid amount of {reversal.debt_id}"
                    )
            cursor = await self.db.execute(
                "DELETE FROM repayments WHERE repayment_id = ?",
                (repayment_id,),
            )
            if cursor.rowcount != 1:
                raise sqlite3.IntegrityError(f"repayment {repayment_id} changed concurrently")
        logger.debug(f"Removed repayment: {repayment_id}")

    # -------------------------------------------------------------------------
    # 카테고리
    # -------------------------------------------------------------------------

    async def update_categories(self, changes: Iterable[CategoryChange]) -> None:
        """카테고리 재지정 (금액 불변, 한 트랜잭션)"""
        async with self._write("update_categories"):
            for change in changes:
                if change.entry_type == EntryType.DEBT:
                    await self.db.execute(
                        """
                        UPDATE debts
                        SET category = ?, category_key = ?,
                            items_json = COALESCE(?, items_json)
                        WHERE debt_id = ?
                        """,
                        (change.category, change.category_key, change.items_json, change.entry_id),
                    )
                else:
                    await self.db.execute(
                        """
                        UPDATE repayments
                        SET category = ?, category_key = ?
                        WHERE repayment_id = ?
                        """,
                        (change.category, change.category_key, change.entry_id),
                    )

    async def list_category_labels(self) -> list[tuple[str, str]]:
        """전체 고객에 걸친 (키, 라벨) 목록 (키당 하나, 최근 사용 라벨)"""
        async with self.db.snapshot():
            rows = await self.db.fetchall(
                """
                SELECT category_key, category, MAX(ts) AS last_used FROM (
                    SELECT category_key, category, created_at AS ts FROM debts
                    UNION ALL
                    SELECT category_key, category, ts FROM repayments
                )
                GROUP BY category_key
                ORDER BY category_key
                """
            )
        return [(row[0], row[1]) for row in rows]

    async def list_category_balances(self, customer_id: str) -> list[dict[str, Any]]:
        """고객의 카테고리별 순잔액 (v_category_balance)"""
        return await self.db.fetchall_dict(
            """
            SELECT category_key, category, total_debits, total_credits, net_balance
            FROM v_category_balance
            WHERE customer_id = ?
            ORDER BY category_key
            """,
            (customer_id,),
        )

    # -------------------------------------------------------------------------
    # 잔액 집계
    # -------------------------------------------------------------------------

    async def get_balance_totals(self, customer_id: str) -> BalanceTotals | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM v_customer_balance WHERE customer_id = ?",
            (customer_id,),
        )
        return BalanceTotals.from_row(row) if row else None

    async def list_balance_totals(self) -> list[BalanceTotals]:
        async with self.db.snapshot():
            rows = await self.db.fetchall_dict(
                "SELECT * FROM v_customer_balance ORDER BY customer_id"
            )
        return [BalanceTotals.from_row(row) for row in rows]

    async def recalculate_balance(self, customer_id: str) -> int:
        """캐시 잔액을 SQL 합계로 다시 계산 (멱등)

        Returns:
            갱신된 outstanding_balance
        """
        async with self._write("recalculate_balance"):
            await self.db.execute(
                """
                UPDATE customers
                SET outstanding_balance = MAX(0,
                    COALESCE((SELECT SUM(amount) FROM debts WHERE customer_id = ?), 0)
                    - COALESCE((SELECT SUM(amount) FROM repayments WHERE customer_id = ?), 0)
                )
                WHERE customer_id = ?
                """,
                (customer_id, customer_id, customer_id),
            )
            row = await self.db.fetchone(
                "SELECT outstanding_balance FROM customers WHERE customer_id = ?",
                (customer_id,),
            )
        return int(row[0]) if row else 0

    async def set_outstanding_balance(self, customer_id: str, balance: int) -> None:
        """캐시 잔액 덮어쓰기 (재보정 작업 전용)"""
        async with self._write("set_outstanding_balance"):
            await self.db.execute(
                "UPDATE customers SET outstanding_balance = ? WHERE customer_id = ?",
                (balance, customer_id),
            )

    async def sum_debts_between(self, start: str, end: str) -> int:
        """[start, end) 구간 외상 합계 (UTC ISO 문자열)"""
        async with self.db.snapshot():
            row = await self.db.fetchone(
                "SELECT COALESCE(SUM(amount), 0) FROM debts WHERE created_at >= ? AND created_at < ?",
                (start, end),
            )
        return int(row[0]) if row else 0

    async def sum_repayments_between(self, start: str, end: str) -> int:
        """[start, end) 구간 상환 합계 (UTC ISO 문자열)"""
        async with self.db.snapshot():
            row = await self.db.fetchone(
                "SELECT COALESCE(SUM(amount), 0) FROM repayments WHERE ts >= ? AND ts < ?",
                (start, end),
            )
        return int(row[0]) if row else 0

    async def total_outstanding(self) -> int:
        async with self.db.snapshot():
            row = await self.db.fetchone(
                "SELECT COALESCE(SUM(outstanding_balance), 0) FROM customers"
            )
        return int(row[0]) if row else 0
