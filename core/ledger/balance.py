"""
잔액 재구성

현재 잔액: Σ외상 − Σ상환 (0 하한)
특정일 잔액(as-of): 카테고리별로
    기초 잔액 = 대상일 이전 차변 합 − 대상일 이전 대변 합
    대상일 항목을 시간순으로 재생 (동률이면 차변 먼저, 그다음 ID)
    기말 잔액 = 기초 + 당일 차변 − 당일 대변
전체 기말 잔액은 카테고리 기말 합계의 0 하한.
대상일 이후 항목은 제외. 날짜 구분은 원장 타임존(기본 UTC+8) 기준.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING

from core.ledger.category import category_key
from core.types import EntryType
from core.utils.timezone import PHT, local_date, to_iso

if TYPE_CHECKING:
    from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementLine:
    """명세서 한 줄 (대상일 당일 항목)"""

    entry_id: str
    entry_type: EntryType
    timestamp: datetime
    category: str
    debit: int
    credit: int
    running_balance: int


@dataclass
class CategoryStatement:
    """카테고리별 명세"""

    category: str
    category_key: str
    opening: int
    lines: list[StatementLine] = field(default_factory=list)

    @property
    def closing(self) -> int:
        return self.lines[-1].running_balance if self.lines else self.opening

    @property
    def total_debits(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit for line in self.lines)


@dataclass
class Statement:
    """특정일 기준 고객 명세서"""

    customer_id: str
    as_of: date
    categories: list[CategoryStatement] = field(default_factory=list)

    @property
    def opening(self) -> int:
        return max(0, sum(c.opening for c in self.categories))

    @property
    def closing(self) -> int:
        """전체 기말 잔액 (0 하한)"""
        return max(0, sum(c.closing for c in self.categories))

    def category(self, label: str) -> CategoryStatement | None:
        key = category_key(label)
        for cat in self.categories:
            if cat.category_key == key:
                return cat
        return None


@dataclass(frozen=True)
class CategoryBalance:
    """활성 카테고리 (순잔액 > 0)"""

    category: str
    category_key: str
    open_amount: int


@dataclass(frozen=True)
class LedgerSummary:
    """원장 요약 (대시보드용)

    Attributes:
        total_outstanding: 전체 고객 미수 잔액
        today_debt: 오늘 발생 외상
        today_income: 오늘 상환
        month_income: 이번 달 누적 상환
    """

    day: date
    total_outstanding: int
    today_debt: int
    today_income: int
    month_income: int


@dataclass(frozen=True)
class _Entry:
    entry_id: str
    entry_type: EntryType
    timestamp: datetime
    category: str
    category_key: str
    amount: int

    @property
    def sort_key(self) -> tuple[datetime, int, str]:
        # 같은 시각이면 차변(외상) 먼저
        return (self.timestamp, 0 if self.entry_type == EntryType.DEBT else 1, self.entry_id)


class BalanceReconstructor:
    """잔액 재구성기

    저장된 이력만으로 잔액을 계산. 캐시(outstanding_balance)는 읽지 않음.

    Args:
        store: LedgerStore
        tz: 날짜 구분 타임존 (기본 PHT)
    """

    def __init__(self, store: LedgerStore, tz: tzinfo = PHT):
        self.store = store
        self.tz = tz

    async def live_balance(self, customer_id: str) -> int:
        """현재 잔액 = Σ외상 − Σ상환 (0 하한)"""
        totals = await self.store.get_balance_totals(customer_id)
        if totals is None:
            return 0
        return totals.computed_balance

    async def _load_entries(self, customer_id: str) -> list[_Entry]:
        debts = await self.store.list_debts(customer_id)
        repayments = await self.store.list_repayments(customer_id)

        entries = [
            _Entry(d.debt_id, EntryType.DEBT, d.created_at, d.category, d.category_key, d.amount)
            for d in debts
        ]
        entries.extend(
            _Entry(r.repayment_id, EntryType.REPAYMENT, r.timestamp, r.category, r.category_key, r.amount)
            for r in repayments
        )
        entries.sort(key=lambda e: e.sort_key)
        return entries

    async def as_of_balance(
        self,
        customer_id: str,
        as_of: date,
        category: str | None = None,
    ) -> Statement:
        """특정일 기준 잔액 재구성

        Args:
            customer_id: 고객 ID
            as_of: 대상일 (로컬 달력 날짜)
            category: 지정 시 해당 카테고리만

        Returns:
            Statement (카테고리별 기초/당일 내역/기말)
        """
        wanted_key = category_key(category) if category is not None else None
        entries = await self._load_entries(customer_id)

        by_key: dict[str, CategoryStatement] = {}
        for entry in entries:
            if wanted_key is not None and entry.category_key != wanted_key:
                continue

            entry_day = local_date(entry.timestamp, self.tz)
            if entry_day > as_of:
                continue

            cat = by_key.get(entry.category_key)
            if cat is None:
                cat = CategoryStatement(
                    category=entry.category,
                    category_key=entry.category_key,
                    opening=0,
                )
                by_key[entry.category_key] = cat

            signed = entry.amount if entry.entry_type == EntryType.DEBT else -entry.amount

            if entry_day < as_of:
                cat.opening += signed
                continue

            cat.lines.append(
                StatementLine(
                    entry_id=entry.entry_id,
                    entry_type=entry.entry_type,
                    timestamp=entry.timestamp,
                    category=entry.category,
                    debit=entry.amount if entry.entry_type == EntryType.DEBT else 0,
                    credit=entry.amount if entry.entry_type == EntryType.REPAYMENT else 0,
                    running_balance=cat.closing + signed,
                )
            )

        # 기초 잔액도 없고 당일 항목도 없는 카테고리는 생략
        categories = [
            cat for cat in sorted(by_key.values(), key=lambda c: c.category_key)
            if cat.opening != 0 or cat.lines
        ]
        logger.debug(
            "as-of 잔액 재구성",
            extra={"customer_id": customer_id, "as_of": as_of.isoformat(), "categories": len(categories)},
        )
        return Statement(customer_id=customer_id, as_of=as_of, categories=categories)

    async def active_categories(self, customer_id: str) -> list[CategoryBalance]:
        """순잔액이 양수인 카테고리 (상환 대상 선택용)"""
        rows = await self.store.list_category_balances(customer_id)
        return [
            CategoryBalance(
                category=row["category"],
                category_key=row["category_key"],
                open_amount=int(row["net_balance"]),
            )
            for row in rows
            if int(row["net_balance"]) > 0
        ]

    def _local_day_bounds(self, day: date) -> tuple[str, str]:
        """로컬 날짜 [00:00, 다음날 00:00)의 UTC ISO 경계"""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        return to_iso(start), to_iso(start + timedelta(days=1))

    async def ledger_summary(self, today: date) -> LedgerSummary:
        """대시보드 요약 (오늘/이번 달 기준은 로컬 날짜)"""
        day_start, day_end = self._local_day_bounds(today)
        month_start, _ = self._local_day_bounds(today.replace(day=1))

        return LedgerSummary(
            day=today,
            total_outstanding=await self.store.total_outstanding(),
            today_debt=await self.store.sum_debts_between(day_start, day_end),
            today_income=await self.store.sum_repayments_between(day_start, day_end),
            month_income=await self.store.sum_repayments_between(month_start, day_end),
        )
