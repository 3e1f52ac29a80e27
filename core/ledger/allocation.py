"""
상환 배분 엔진 (순수 함수)

FIFO 배분: 카테고리 내 미결 외상을 (created_at, debt_id) 오름차순으로 채움.
LIFO 역산: 배분 내역이 없는 상환을 삭제할 때 최근 외상부터 되돌림.

저장소 접근 없음. LedgerService가 결과를 한 트랜잭션으로 반영.

사용 예시:
```python
plan = plan_fifo_allocation(open_debts, 12000)
# plan.allocations → [Allocation(debt_id="d1", amount=10000), Allocation(debt_id="d2", amount=2000)]
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from core.ledger.models import Allocation, Debt, Repayment


def fifo_order(debts: Iterable[Debt]) -> list[Debt]:
    """배분 순서: 생성 시각 오름차순, 동률은 debt_id 오름차순"""
    return sorted(debts, key=lambda d: (d.created_at, d.debt_id))


@dataclass(frozen=True)
class AllocationPlan:
    """배분 계획

    Attributes:
        allocations: 외상별 적용 금액 (적용 순서)
        consumed: 실제 적용된 총액
        surplus: 미결 금액을 초과한 잔여 금액
    """

    allocations: tuple[Allocation, ...]
    consumed: int
    surplus: int


def plan_fifo_allocation(debts: Iterable[Debt], amount: int) -> AllocationPlan:
    """FIFO 배분 계획 수립

    Args:
        debts: 고객의 해당 카테고리 외상 (미결이 아닌 항목은 무시)
        amount: 상환 금액 (minor unit, 양수)

    Returns:
        AllocationPlan
    """
    left = amount
    allocations: list[Allocation] = []

    for debt in fifo_order(d for d in debts if d.is_open):
        if left <= 0:
            break
        applied = min(debt.remaining, left)
        allocations.append(Allocation(debt_id=debt.debt_id, amount=applied))
        left -= applied

    return AllocationPlan(
        allocations=tuple(allocations),
        consumed=amount - left,
        surplus=left,
    )


def plan_lifo_reversal(debts: Iterable[Debt], amount: int) -> list[Allocation]:
    """배분 내역이 없는 상환의 역산 계획 (휴리스틱)

    최근 생성된 외상부터 (created_at, debt_id 내림차순) paid_amount를 줄임.
    되돌릴 금액이 소진되거나 상환된 외상이 없으면 종료.

    실제 배분이 FIFO였으므로 여러 외상에 걸친 상환에서는
    정확한 역산과 결과가 다를 수 있음.

    Args:
        debts: 고객의 해당 카테고리 외상
        amount: 되돌릴 금액

    Returns:
        외상별 되돌릴 금액 목록
    """
    left = amount
    reversals: list[Allocation] = []

    for debt in reversed(fifo_order(debts)):
        if left <= 0:
            break
        if debt.paid_amount <= 0:
            continue
        undone = min(debt.paid_amount, left)
        reversals.append(Allocation(debt_id=debt.debt_id, amount=undone))
        left -= undone

    return reversals


def clamp_reversal(debts_by_id: dict[str, Debt], allocations: Iterable[Allocation]) -> list[Allocation]:
    """기록된 배분 내역을 현재 paid_amount 한도로 제한

    다른 경로(휴리스틱 역산 등)로 이미 줄어든 외상의 paid_amount가
    음수가 되지 않도록 보장.
    """
    reversals: list[Allocation] = []
    for allocation in allocations:
        debt = debts_by_id.get(allocation.debt_id)
        if debt is None:
            continue
        undone = min(allocation.amount, debt.paid_amount)
        if undone > 0:
            reversals.append(Allocation(debt_id=debt.debt_id, amount=undone))
    return reversals


@dataclass
class AllocationResult:
    """상환 배분 결과

    미결 외상이 없으면 no_open_debts=True이고 상환은 기록되지 않음 (에러 아님).
    """

    customer_id: str
    category: str
    requested: int
    repayment: Repayment | None = None
    allocations: list[Allocation] = field(default_factory=list)
    surplus: int = 0
    balance_after: int | None = None

    @property
    def consumed(self) -> int:
        return self.requested - self.surplus

    @property
    def applied(self) -> bool:
        return self.repayment is not None

    @property
    def no_open_debts(self) -> bool:
        return self.repayment is None

    @property
    def overpaid(self) -> bool:
        return self.repayment is not None and self.surplus > 0
