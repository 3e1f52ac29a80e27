"""
원장 서비스

외상/상환/삭제/카테고리 변경의 진입점.

처리 순서:
    입력 검증 → 고객 잠금 → 원장 쓰기(한 트랜잭션) → 잔액 재계산(재시도) → 알림 예약

- 검증 실패(ValidationError/NotFound)는 어떤 변경보다 먼저 발생
- 원장 쓰기 실패는 StoreFailure (롤백됨)
- 재계산이 끝내 실패하면 StoreFailure(ledger_committed=True); 재보정 작업으로 복구
- 알림 실패는 로그만 남기고 호출자에게 전파하지 않음
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Iterable

from core.config.loader import LedgerConfig
from core.constants import LedgerLabels
from core.errors import (
    DebtHasPayments,
    InvalidAmount,
    NotFound,
    OverpaymentError,
    StoreFailure,
    ValidationError,
)
from core.ledger.allocation import (
    AllocationResult,
    clamp_reversal,
    plan_fifo_allocation,
    plan_lifo_reversal,
)
from core.ledger.balance import (
    BalanceReconstructor,
    CategoryBalance,
    LedgerSummary,
    Statement,
)
from core.ledger.category import category_key, clean_label
from core.ledger.events import LedgerEvent, NotificationDispatcher
from core.ledger.locks import CustomerLocks
from core.ledger.models import (
    Allocation,
    Customer,
    Debt,
    LineItem,
    Repayment,
    items_to_json,
)
from core.ledger.store import CategoryChange, LedgerStore
from core.money import format_money
from core.types import (
    EntryType,
    LedgerEventKind,
    OverpaymentPolicy,
    PaymentMethod,
    RepaymentSource,
)
from core.utils.timezone import local_date, make_tz, now_utc

logger = logging.getLogger(__name__)


@dataclass
class RepaymentReversal:
    """상환 삭제 결과

    Attributes:
        repayment: 삭제된 상환
        reversals: 외상별로 되돌린 금액
        exact: 배분 내역 기반 정확한 역산이면 True, LIFO 휴리스틱이면 False
        balance_after: 재계산된 잔액
    """

    repayment: Repayment
    reversals: list[Allocation]
    exact: bool
    balance_after: int

    @property
    def unapplied(self) -> int:
        """되돌리지 못한 금액 (휴리스틱에서 상환된 외상이 부족한 경우)"""
        return self.repayment.amount - sum(r.amount for r in self.reversals)


@dataclass
class CashSaleResult:
    """POS 현금 판매 결과 (완납 외상 + 같은 금액의 상환)"""

    debts: list[Debt]
    repayment: Repayment
    balance_after: int


@dataclass(frozen=True)
class CategoryReassignment:
    """카테고리 재지정 요청 한 건"""

    entry_type: EntryType
    entry_id: str
    category: str


@dataclass
class ReassignmentResult:
    """카테고리 재지정 결과"""

    customer_id: str
    changed: int
    revision: int
    entries: list[Debt | Repayment] = field(default_factory=list)


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_amount(amount: int, allow_zero: bool = False) -> int:
    """정수 minor unit 금액 검증"""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"amount must be integer minor units, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmount(f"amount must not be negative: {amount}")
    if amount == 0 and not allow_zero:
        raise InvalidAmount("amount must be greater than zero")
    return amount


class LedgerService:
    """원장 서비스

    Args:
        store: LedgerStore
        config: 원장 엔진 설정 (None이면 기본값)
        dispatcher: 알림 디스패처 (None이면 알림 없음)
        locks: 고객별 잠금 (재보정 작업과 공유)
        clock: 현재 시각 함수 (테스트에서 교체)

    사용 예시:
    ```python
    service = LedgerService(LedgerStore(db))
    customer = await service.create_customer("Maria")
    await service.create_debt(customer.customer_id, 10000, "Rice")
    result = await service.apply_repayment(customer.customer_id, "rice", 5000)
    ```
    """

    def __init__(
        self,
        store: LedgerStore,
        config: LedgerConfig | None = None,
        dispatcher: NotificationDispatcher | None = None,
        locks: CustomerLocks | None = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.store = store
        self.config = config or LedgerConfig()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.locks = locks or CustomerLocks()
        self.clock = clock
        self.tz = make_tz(self.config.timezone_offset_hours)
        self.reconstructor = BalanceReconstructor(store, self.tz)
        self._category_revision = 0

    @property
    def category_revision(self) -> int:
        """카테고리 변경 리비전 (카테고리별 파생 뷰 무효화용)"""
        return self._category_revision

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    async def _require_customer(self, customer_id: str) -> Customer:
        customer = await self.store.get_customer(customer_id)
        if customer is None:
            raise NotFound("customer", customer_id)
        return customer

    async def _recalculate(self, customer_id: str) -> int:
        """잔액 재계산 (멱등, 제한 횟수 재시도)

        Raises:
            StoreFailure: 모든 시도 실패 (ledger_committed=True)
        """
        attempts = self.config.recalc_max_attempts
        last_error: StoreFailure | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await self.store.recalculate_balance(customer_id)
            except StoreFailure as e:
                last_error = e
                logger.warning(
                    f"잔액 재계산 실패 ({attempt}/{attempts}): {e}",
                    extra={"customer_id": customer_id, "attempt": attempt},
                )
                if attempt < attempts:
                    await asyncio.sleep(self.config.recalc_retry_delay_sec)

        logger.error(
            "잔액 재계산 최종 실패 - 원장은 커밋됨, 재보정 필요",
            extra={"customer_id": customer_id},
        )
        raise StoreFailure(
            f"balance recalculation failed for {customer_id} after {attempts} attempts",
            ledger_committed=True,
        ) from last_error

    def _notify(self, customer: Customer, kind: LedgerEventKind, amount: int, category: str) -> None:
        self.dispatcher.dispatch(
            LedgerEvent.create(
                customer_id=customer.customer_id,
                kind=kind,
                amount=amount,
                category=category,
                customer_name=customer.name,
            )
        )

    def _group_items(
        self,
        items: Iterable[LineItem],
        category_map: dict[str, str] | None,
    ) -> list[tuple[str, list[LineItem]]]:
        """품목을 카테고리별로 묶음 (카테고리 재지정 반영, 최초 등장 순서 유지)"""
        groups: dict[str, tuple[str, list[LineItem]]] = {}
        for item in items:
            if item.quantity <= 0:
                raise ValidationError(f"quantity must be positive: {item.product_id}")
            _require_amount(item.price, allow_zero=True)

            override = (category_map or {}).get(item.product_id)
            label = clean_label(override if override is not None else item.category)
            item = replace(item, category=label)

            key = category_key(label)
            if key not in groups:
                groups[key] = (label, [])
            groups[key][1].append(item)

        if not groups:
            raise ValidationError("at least one line item is required")
        return list(groups.values())

    # -------------------------------------------------------------------------
    # 고객
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        name: str,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> Customer:
        """고객 생성 (잔액 0)"""
        cleaned = " ".join((name or "").split())
        if not cleaned:
            raise ValidationError("customer name is required")

        customer = Customer(
            customer_id=_new_id(),
            name=cleaned,
            outstanding_balance=0,
            created_at=self.clock(),
            phone=phone,
            email=email,
            address=address,
        )
        await self.store.insert_customer(customer)
        logger.info(f"고객 생성: {cleaned}", extra={"customer_id": customer.customer_id})
        return customer

    async def get_customer(self, customer_id: str) -> Customer:
        return await self._require_customer(customer_id)

    async def list_customers(self) -> list[Customer]:
        return await self.store.list_customers()

    # -------------------------------------------------------------------------
    # 외상
    # -------------------------------------------------------------------------

    async def create_debt(
        self,
        customer_id: str,
        amount: int,
        category: str,
        *,
        items: list[LineItem] | None = None,
        order_id: str | None = None,
        notes: str | None = None,
        created_at: datetime | None = None,
        adjustment: bool = False,
    ) -> Debt:
        """외상 기록

        Args:
            customer_id: 고객 ID
            amount: 금액 (minor unit, 양수; adjustment=True면 0 허용)
            category: 카테고리 라벨
            items: 표시용 품목
            order_id: 연결 주문 ID
            notes: 메모
            created_at: 기록 시각 (None이면 현재)
            adjustment: 0원 조정 항목 여부

        Raises:
            InvalidAmount: 음수, 또는 조정이 아닌 0원
            ValidationError: 카테고리 누락
            NotFound: 고객 없음
            StoreFailure: 저장 실패
        """
        _require_amount(amount, allow_zero=adjustment)
        label = clean_label(category)

        customer = await self._require_customer(customer_id)

        async with self.locks.for_customer(customer_id):
            debt = Debt(
                debt_id=_new_id(),
                customer_id=customer_id,
                amount=amount,
                paid_amount=0,
                category=label,
                category_key=category_key(label),
                created_at=created_at or self.clock(),
                order_id=order_id,
                items=list(items or []),
                notes=notes,
            )
            await self.store.add_debts([debt])
            balance = await self._recalculate(customer_id)

        logger.info(
            f"외상 기록: {customer.name} {format_money(amount)} [{label}]",
            extra={"customer_id": customer_id, "debt_id": debt.debt_id, "balance": balance},
        )
        self._notify(customer, LedgerEventKind.DEBT, amount, label)
        return debt

    async def get_debt(self, debt_id: str) -> Debt:
        debt = await self.store.get_debt(debt_id)
        if debt is None:
            raise NotFound("debt", debt_id)
        return debt

    async def list_debts(self, customer_id: str) -> list[Debt]:
        """고객 외상 목록 (생성 순)"""
        await self._require_customer(customer_id)
        return await self.store.list_debts(customer_id)

    async def delete_debt(self, debt_id: str) -> Debt:
        """외상 삭제

        Raises:
            NotFound: 외상 없음
            DebtHasPayments: 상환이 적용된 외상 (상환을 먼저 삭제해야 함)
        """
        debt = await self.get_debt(debt_id)

        async with self.locks.for_customer(debt.customer_id):
            # 잠금 획득 전 변경되었을 수 있으므로 다시 조회
            debt = await self.get_debt(debt_id)
            if debt.paid_amount > 0:
                raise DebtHasPayments(debt_id, debt.paid_amount)

            customer = await self._require_customer(debt.customer_id)
            await self.store.delete_debt(debt_id)
            balance = await self._recalculate(debt.customer_id)

        logger.info(
            f"외상 삭제: {customer.name} {format_money(debt.amount)} [{debt.category}]",
            extra={"customer_id": debt.customer_id, "debt_id": debt_id, "balance": balance},
        )
        self._notify(customer, LedgerEventKind.DELETION, debt.amount, debt.category)
        return debt

    # -------------------------------------------------------------------------
    # 상환
    # -------------------------------------------------------------------------

    async def apply_repayment(
        self,
        customer_id: str,
        category: str,
        amount: int,
        method: PaymentMethod = PaymentMethod.CASH,
    ) -> AllocationResult:
        """카테고리 내 FIFO 상환 배분

        미결 외상이 없으면 아무것도 기록하지 않고 no_open_debts 결과 반환.
        미결 금액을 초과하면 overpayment_policy에 따라
        초과분을 결과에 표시(flag)하거나 거부(reject).

        Raises:
            InvalidAmount: 0 이하 금액
            OverpaymentError: reject 정책에서 초과 상환
            NotFound: 고객 없음
        """
        _require_amount(amount)
        label = clean_label(category)
        key = category_key(label)

        customer = await self._require_customer(customer_id)

        async with self.locks.for_customer(customer_id):
            open_debts = await self.store.list_open_debts(customer_id, key)

            if not open_debts:
                logger.info(
                    f"상환 대상 없음: {customer.name} [{label}]",
                    extra={"customer_id": customer_id, "category": label},
                )
                return AllocationResult(
                    customer_id=customer_id,
                    category=label,
                    requested=amount,
                    surplus=amount,
                )

            plan = plan_fifo_allocation(open_debts, amount)
            if plan.surplus > 0 and self.config.overpayment_policy == OverpaymentPolicy.REJECT:
                raise OverpaymentError(amount, plan.consumed)

            repayment = Repayment(
                repayment_id=_new_id(),
                customer_id=customer_id,
                amount=plan.consumed,
                category=label,
                category_key=key,
                timestamp=self.clock(),
                method=method,
                source=RepaymentSource.ALLOCATION,
            )
            await self.store.add_repayment(repayment, plan.allocations)
            balance = await self._recalculate(customer_id)

        if plan.surplus > 0:
            logger.warning(
                f"초과 상환: {customer.name} 요청 {format_money(amount)}, "
                f"적용 {format_money(plan.consumed)}, 초과 {format_money(plan.surplus)}",
                extra={"customer_id": customer_id, "surplus": plan.surplus},
            )
        logger.info(
            f"상환 배분: {customer.name} {format_money(plan.consumed)} [{label}] "
            f"→ {len(plan.allocations)}건",
            extra={"customer_id": customer_id, "repayment_id": repayment.repayment_id, "balance": balance},
        )
        self._notify(customer, LedgerEventKind.REPAYMENT, plan.consumed, label)

        return AllocationResult(
            customer_id=customer_id,
            category=label,
            requested=amount,
            repayment=repayment,
            allocations=[replace(a, repayment_id=repayment.repayment_id) for a in plan.allocations],
            surplus=plan.surplus,
            balance_after=balance,
        )

    async def get_repayment(self, repayment_id: str) -> Repayment:
        repayment = await self.store.get_repayment(repayment_id)
        if repayment is None:
            raise NotFound("repayment", repayment_id)
        return repayment

    async def list_repayments(self, customer_id: str) -> list[Repayment]:
        """고객 상환 목록 (최신순)"""
        await self._require_customer(customer_id)
        return await self.store.list_repayments(customer_id)

    async def delete_repayment(self, repayment_id: str) -> RepaymentReversal:
        """상환 삭제 및 배분 역산

        배분 내역이 있으면 그대로 되돌리고(정확한 역산),
        없으면 해당 카테고리의 최근 외상부터 되돌림(LIFO 휴리스틱).

        Raises:
            NotFound: 상환 없음
        """
        repayment = await self.get_repayment(repayment_id)

        async with self.locks.for_customer(repayment.customer_id):
            repayment = await self.get_repayment(repayment_id)
            customer = await self._require_customer(repayment.customer_id)

            allocations = await self.store.get_allocations(repayment_id)
            if allocations:
                debts = await self.store.list_debts(repayment.customer_id)
                reversals = clamp_reversal({d.debt_id: d for d in debts}, allocations)
                exact = True
            else:
                debts = await self.store.list_debts(repayment.customer_id, repayment.category_key)
                reversals = plan_lifo_reversal(debts, repayment.amount)
                exact = False
                logger.info(
                    "배분 내역 없음 - LIFO 휴리스틱으로 역산",
                    extra={"repayment_id": repayment_id, "reversal_count": len(reversals)},
                )

            await self.store.remove_repayment(repayment_id, reversals)
            balance = await self._recalculate(repayment.customer_id)

        result = RepaymentReversal(
            repayment=repayment,
            reversals=reversals,
            exact=exact,
            balance_after=balance,
        )
        logger.info(
            f"상환 삭제: {customer.name} {format_money(repayment.amount)} [{repayment.category}]",
            extra={"customer_id": repayment.customer_id, "repayment_id": repayment_id, "balance": balance},
        )
        if result.unapplied > 0:
            logger.warning(
                f"역산 미완료 금액: {format_money(result.unapplied)}",
                extra={"repayment_id": repayment_id},
            )
        self._notify(customer, LedgerEventKind.DELETION, repayment.amount, repayment.category)
        return result

    # -------------------------------------------------------------------------
    # 주문 / POS
    # -------------------------------------------------------------------------

    async def confirm_order(
        self,
        customer_id: str,
        order_id: str,
        items: list[LineItem],
        category_map: dict[str, str] | None = None,
    ) -> list[Debt]:
        """주문 확정 → 카테고리별 외상 생성 (같은 order_id)

        Args:
            customer_id: 고객 ID
            order_id: 주문 ID
            items: 주문 품목
            category_map: product_id → 카테고리 재지정
        """
        if not order_id:
            raise ValidationError("order_id is required")
        groups = self._group_items(items, category_map)

        customer = await self._require_customer(customer_id)

        async with self.locks.for_customer(customer_id):
            now = self.clock()

            debts = []
            for label, group in groups:
                amount = _require_amount(sum(item.subtotal for item in group))
                debts.append(
                    Debt(
                        debt_id=_new_id(),
                        customer_id=customer_id,
                        amount=amount,
                        paid_amount=0,
                        category=label,
                        category_key=category_key(label),
                        created_at=now,
                        order_id=order_id,
                        items=group,
                    )
                )

            await self.store.add_debts(debts)
            balance = await self._recalculate(customer_id)

        logger.info(
            f"주문 확정: {customer.name} order={order_id} → 외상 {len(debts)}건",
            extra={"customer_id": customer_id, "order_id": order_id, "balance": balance},
        )
        for debt in debts:
            self._notify(customer, LedgerEventKind.DEBT, debt.amount, debt.category)
        return debts

    async def record_cash_sale(
        self,
        customer_id: str,
        items: list[LineItem],
        category_map: dict[str, str] | None = None,
    ) -> CashSaleResult:
        """POS 현금 판매

        카테고리별 완납 외상 + 합계 금액의 상환("POS Cash Sale")을
        한 트랜잭션으로 기록. 순잔액 변화 없음.
        """
        groups = self._group_items(items, category_map)

        customer = await self._require_customer(customer_id)

        async with self.locks.for_customer(customer_id):
            now = self.clock()

            debts = []
            for label, group in groups:
                amount = _require_amount(sum(item.subtotal for item in group))
                debts.append(
                    Debt(
                        debt_id=_new_id(),
                        customer_id=customer_id,
                        amount=amount,
                        paid_amount=0,
                        category=label,
                        category_key=category_key(label),
                        created_at=now,
                        items=group,
                        notes="POS cash sale",
                    )
                )

            total = sum(d.amount for d in debts)
            repayment = Repayment(
                repayment_id=_new_id(),
                customer_id=customer_id,
                amount=total,
                category=LedgerLabels.POS_CASH_SALE_CATEGORY,
                category_key=category_key(LedgerLabels.POS_CASH_SALE_CATEGORY),
                timestamp=now,
                method=PaymentMethod.CASH,
                source=RepaymentSource.POS_CASH,
            )
            allocations = [Allocation(debt_id=d.debt_id, amount=d.amount) for d in debts]

            await self.store.add_repayment(repayment, allocations, new_debts=debts)
            balance = await self._recalculate(customer_id)

        for debt in debts:
            debt.paid_amount = debt.amount

        logger.info(
            f"POS 현금 판매: {customer.name} {format_money(total)}",
            extra={"customer_id": customer_id, "repayment_id": repayment.repayment_id},
        )
        self._notify(customer, LedgerEventKind.REPAYMENT, total, repayment.category)
        return CashSaleResult(debts=debts, repayment=repayment, balance_after=balance)

    # -------------------------------------------------------------------------
    # 카테고리
    # -------------------------------------------------------------------------

    async def _build_change(
        self,
        entry_type: EntryType,
        entry_id: str,
        label: str,
    ) -> tuple[str, CategoryChange | None]:
        """재지정 변경 구성 (고객 ID, 변경 내용; 이미 같은 카테고리면 None)"""
        key = category_key(label)

        if entry_type == EntryType.DEBT:
            debt = await self.get_debt(entry_id)
            if debt.category == label:
                return debt.customer_id, None
            # 외상의 품목 카테고리도 함께 변경
            items = [replace(item, category=label) for item in debt.items]
            return debt.customer_id, CategoryChange(
                entry_type=entry_type,
                entry_id=entry_id,
                category=label,
                category_key=key,
                items_json=items_to_json(items),
            )

        repayment = await self.get_repayment(entry_id)
        if repayment.category == label:
            return repayment.customer_id, None
        return repayment.customer_id, CategoryChange(
            entry_type=entry_type,
            entry_id=entry_id,
            category=label,
            category_key=key,
        )

    async def _fetch_entry(self, entry_type: EntryType, entry_id: str) -> Debt | Repayment:
        if entry_type == EntryType.DEBT:
            return await self.get_debt(entry_id)
        return await self.get_repayment(entry_id)

    async def reassign_category(
        self,
        entry_id: str,
        entry_type: EntryType,
        new_category: str,
    ) -> Debt | Repayment:
        """카테고리 재지정 (금액 불변, 잔액 재계산/알림 없음)

        Raises:
            ValidationError: 카테고리 누락
            NotFound: 항목 없음
        """
        label = clean_label(new_category)
        entry = await self._fetch_entry(entry_type, entry_id)

        async with self.locks.for_customer(entry.customer_id):
            _, change = await self._build_change(entry_type, entry_id, label)
            if change is not None:
                await self.store.update_categories([change])
                self._category_revision += 1
                logger.info(
                    f"카테고리 변경: {entry_type.value} {entry_id} [{entry.category}] → [{label}]",
                    extra={"customer_id": entry.customer_id, "revision": self._category_revision},
                )
            return await self._fetch_entry(entry_type, entry_id)

    async def reassign_categories(
        self,
        customer_id: str,
        changes: list[CategoryReassignment],
    ) -> ReassignmentResult:
        """여러 항목의 카테고리를 한 번에 재지정 (한 잠금, 한 트랜잭션)

        모든 항목은 같은 고객에 속해야 함.
        """
        labels = [clean_label(c.category) for c in changes]

        await self._require_customer(customer_id)

        async with self.locks.for_customer(customer_id):
            pending: list[CategoryChange] = []
            for request, label in zip(changes, labels):
                owner, change = await self._build_change(request.entry_type, request.entry_id, label)
                if owner != customer_id:
                    raise ValidationError(
                        f"{request.entry_type.value} {request.entry_id} does not belong to {customer_id}"
                    )
                if change is not None:
                    pending.append(change)

            if pending:
                await self.store.update_categories(pending)
                self._category_revision += 1

            entries = [await self._fetch_entry(c.entry_type, c.entry_id) for c in changes]

        logger.info(
            f"카테고리 일괄 변경: {len(pending)}/{len(changes)}건",
            extra={"customer_id": customer_id, "revision": self._category_revision},
        )
        return ReassignmentResult(
            customer_id=customer_id,
            changed=len(pending),
            revision=self._category_revision,
            entries=entries,
        )

    async def list_categories(self) -> list[str]:
        """전체 카테고리 라벨 (자동완성용)"""
        return [label for _, label in await self.store.list_category_labels()]

    async def last_used_category(self, customer_id: str, product_id: str) -> str | None:
        """고객이 해당 상품에 마지막으로 사용한 카테고리"""
        await self._require_customer(customer_id)
        for debt in reversed(await self.store.list_debts(customer_id)):
            for item in debt.items:
                if item.product_id == product_id:
                    return item.category
        return None

    # -------------------------------------------------------------------------
    # 잔액 조회
    # -------------------------------------------------------------------------

    async def live_balance(self, customer_id: str) -> int:
        await self._require_customer(customer_id)
        return await self.reconstructor.live_balance(customer_id)

    async def as_of_balance(
        self,
        customer_id: str,
        as_of: date,
        category: str | None = None,
    ) -> Statement:
        await self._require_customer(customer_id)
        return await self.reconstructor.as_of_balance(customer_id, as_of, category)

    async def active_categories(self, customer_id: str) -> list[CategoryBalance]:
        await self._require_customer(customer_id)
        return await self.reconstructor.active_categories(customer_id)

    async def ledger_summary(self, today: date | None = None) -> LedgerSummary:
        return await self.reconstructor.ledger_summary(today or self.today())

    def today(self) -> date:
        """원장 타임존 기준 오늘"""
        return local_date(self.clock(), self.tz)
