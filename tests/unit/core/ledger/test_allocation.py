"""
상환 배분 엔진 테스트

FIFO 배분 / LIFO 역산 / 역산 한도 검증 (순수 함수, DB 없음)
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given
from hypothesis import strategies as st

from core.ledger.allocation import (
    AllocationResult,
    clamp_reversal,
    fifo_order,
    plan_fifo_allocation,
    plan_lifo_reversal,
)
from core.ledger.models import Allocation, Debt, Repayment

BASE_TIME = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)


def make_debt(
    debt_id: str,
    amount: int,
    paid: int = 0,
    minutes: int = 0,
    category: str = "Rice",
) -> Debt:
    return Debt(
        debt_id=debt_id,
        customer_id="c1",
        amount=amount,
        paid_amount=paid,
        category=category,
        category_key=category.casefold(),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class TestFifoOrder:
    def test_oldest_first(self) -> None:
        debts = [make_debt("b", 100, minutes=5), make_debt("a", 100, minutes=10)]
        assert [d.debt_id for d in fifo_order(debts)] == ["b", "a"]

    def test_tie_broken_by_id(self) -> None:
        """같은 시각이면 debt_id 오름차순"""
        debts = [make_debt("d2", 100), make_debt("d1", 100)]
        assert [d.debt_id for d in fifo_order(debts)] == ["d1", "d2"]


class TestPlanFifoAllocation:
    """FIFO 배분 계획"""

    def test_fills_oldest_first(self) -> None:
        """D1 100 / D2 50에 120 상환 → D1 100, D2 20"""
        debts = [make_debt("d1", 10000, minutes=0), make_debt("d2", 5000, minutes=1)]

        plan = plan_fifo_allocation(debts, 12000)

        assert plan.allocations == (
            Allocation(debt_id="d1", amount=10000),
            Allocation(debt_id="d2", amount=2000),
        )
        assert plan.consumed == 12000
        assert plan.surplus == 0

    def test_partial_debt_uses_remaining(self) -> None:
        debts = [make_debt("d1", 10000, paid=7000)]

        plan = plan_fifo_allocation(debts, 5000)

        assert plan.allocations == (Allocation(debt_id="d1", amount=3000),)
        assert plan.surplus == 2000

    def test_skips_paid_debts(self) -> None:
        debts = [make_debt("d1", 10000, paid=10000), make_debt("d2", 5000, minutes=1)]

        plan = plan_fifo_allocation(debts, 1000)

        assert plan.allocations == (Allocation(debt_id="d2", amount=1000),)

    def test_stops_when_exhausted(self) -> None:
        """금액이 소진되면 뒤 외상은 건드리지 않음"""
        debts = [make_debt(f"d{i}", 1000, minutes=i) for i in range(5)]

        plan = plan_fifo_allocation(debts, 1500)

        assert [a.debt_id for a in plan.allocations] == ["d0", "d1"]
        assert plan.allocations[1].amount == 500

    def test_no_open_debts(self) -> None:
        plan = plan_fifo_allocation([], 5000)

        assert plan.allocations == ()
        assert plan.consumed == 0
        assert plan.surplus == 5000

    @given(
        amounts=st.lists(st.integers(min_value=1, max_value=100000), min_size=0, max_size=8),
        payment=st.integers(min_value=1, max_value=1000000),
    )
    def test_conservation(self, amounts: list[int], payment: int) -> None:
        """consumed + surplus = 요청 금액, 어떤 외상도 초과 상환되지 않음"""
        debts = [make_debt(f"d{i}", a, minutes=i) for i, a in enumerate(amounts)]

        plan = plan_fifo_allocation(debts, payment)

        assert plan.consumed + plan.surplus == payment
        assert sum(a.amount for a in plan.allocations) == plan.consumed
        assert plan.consumed == min(payment, sum(amounts))
        by_id = {d.debt_id: d for d in debts}
        for allocation in plan.allocations:
            assert 0 < allocation.amount <= by_id[allocation.debt_id].remaining


class TestPlanLifoReversal:
    """배분 내역 없는 상환의 역산 (휴리스틱)"""

    def test_newest_first(self) -> None:
        """D1 100(완납) / D2 50(30 상환)에서 120 역산 → D2 30, D1 90"""
        debts = [
            make_debt("d1", 10000, paid=10000, minutes=0),
            make_debt("d2", 5000, paid=3000, minutes=1),
        ]

        reversals = plan_lifo_reversal(debts, 12000)

        assert reversals == [
            Allocation(debt_id="d2", amount=3000),
            Allocation(debt_id="d1", amount=9000),
        ]

    def test_skips_unpaid(self) -> None:
        debts = [make_debt("d1", 10000, paid=4000), make_debt("d2", 5000, minutes=1)]

        assert plan_lifo_reversal(debts, 4000) == [Allocation(debt_id="d1", amount=4000)]

    def test_insufficient_paid(self) -> None:
        """되돌릴 상환액이 부족하면 가능한 만큼만"""
        debts = [make_debt("d1", 10000, paid=1000)]

        reversals = plan_lifo_reversal(debts, 5000)

        assert reversals == [Allocation(debt_id="d1", amount=1000)]


class TestClampReversal:
    def test_limits_to_current_paid(self) -> None:
        debts = {
            "d1": make_debt("d1", 10000, paid=2000),
            "d2": make_debt("d2", 5000, paid=5000),
        }
        recorded = [Allocation("d1", 10000), Allocation("d2", 2000)]

        assert clamp_reversal(debts, recorded) == [
            Allocation(debt_id="d1", amount=2000),
            Allocation(debt_id="d2", amount=2000),
        ]

    def test_drops_missing_and_zero(self) -> None:
        debts = {"d1": make_debt("d1", 10000, paid=0)}
        recorded = [Allocation("d1", 500), Allocation("gone", 500)]

        assert clamp_reversal(debts, recorded) == []


class TestAllocationResult:
    def _repayment(self) -> Repayment:
        return Repayment(
            repayment_id="r1",
            customer_id="c1",
            amount=5000,
            category="Rice",
            category_key="rice",
            timestamp=BASE_TIME,
        )

    def test_no_open_debts(self) -> None:
        result = AllocationResult(customer_id="c1", category="Rice", requested=5000, surplus=5000)

        assert result.no_open_debts is True
        assert result.applied is False
        assert result.overpaid is False
        assert result.consumed == 0

    def test_overpaid(self) -> None:
        result = AllocationResult(
            customer_id="c1",
            category="Rice",
            requested=7000,
            repayment=self._repayment(),
            surplus=2000,
        )

        assert result.applied is True
        assert result.overpaid is True
        assert result.consumed == 5000

    def test_exact(self) -> None:
        result = AllocationResult(
            customer_id="c1",
            category="Rice",
            requested=5000,
            repayment=self._repayment(),
        )

        assert result.overpaid is False
