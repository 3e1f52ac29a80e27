"""LedgerStore 통합 테스트"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from core.errors import StoreFailure
from core.ledger.models import Allocation, Customer, Debt, LineItem, Repayment
from core.ledger.store import CategoryChange, LedgerStore
from core.types import EntryType, RepaymentSource

BASE_TIME = datetime(2026, 3, 1, 1, 0, tzinfo=timezone.utc)


def make_customer(customer_id: str = "c1", name: str = "Maria") -> Customer:
    return Customer(customer_id=customer_id, name=name, outstanding_balance=0, created_at=BASE_TIME)


def make_debt(
    debt_id: str,
    amount: int,
    category: str = "Rice",
    minutes: int = 0,
    customer_id: str = "c1",
) -> Debt:
    return Debt(
        debt_id=debt_id,
        customer_id=customer_id,
        amount=amount,
        paid_amount=0,
        category=category,
        category_key=category.casefold(),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        items=[LineItem("p1", "Rice 5kg", 1, amount, category)],
    )


def make_repayment(
    repayment_id: str,
    amount: int,
    category: str = "Rice",
    minutes: int = 60,
) -> Repayment:
    return Repayment(
        repayment_id=repayment_id,
        customer_id="c1",
        amount=amount,
        category=category,
        category_key=category.casefold(),
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest_asyncio.fixture
async def seeded(store: LedgerStore) -> LedgerStore:
    """고객 1명 + Rice 외상 100/50"""
    await store.insert_customer(make_customer())
    await store.add_debts([make_debt("d1", 10000, minutes=0), make_debt("d2", 5000, minutes=1)])
    return store


class TestCustomers:
    """고객 저장/조회"""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, store: LedgerStore) -> None:
        await store.insert_customer(make_customer())

        customer = await store.get_customer("c1")

        assert customer is not None
        assert customer.name == "Maria"
        assert customer.created_at == BASE_TIME
        assert await store.get_customer("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_is_store_failure(self, store: LedgerStore) -> None:
        await store.insert_customer(make_customer())

        with pytest.raises(StoreFailure, match="insert_customer"):
            await store.insert_customer(make_customer())

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, store: LedgerStore) -> None:
        await store.insert_customer(make_customer("c1", "pedro"))
        await store.insert_customer(make_customer("c2", "Ana"))

        assert [c.name for c in await store.list_customers()] == ["Ana", "pedro"]


class TestDebts:
    """외상 저장/조회"""

    @pytest.mark.asyncio
    async def test_list_in_fifo_order(self, seeded: LedgerStore) -> None:
        debts = await seeded.list_debts("c1")

        assert [d.debt_id for d in debts] == ["d1", "d2"]
        assert debts[0].items[0].product_name == "Rice 5kg"

    @pytest.mark.asyncio
    async def test_list_by_category_key(self, seeded: LedgerStore) -> None:
        await seeded.add_debts([make_debt("d3", 2000, category="Sugar", minutes=2)])

        assert [d.debt_id for d in await seeded.list_debts("c1", "sugar")] == ["d3"]
        assert [d.debt_id for d in await seeded.list_open_debts("c1", "rice")] == ["d1", "d2"]

    @pytest.mark.asyncio
    async def test_delete_unpaid(self, seeded: LedgerStore) -> None:
        await seeded.delete_debt("d2")

        assert await seeded.get_debt("d2") is None

    @pytest.mark.asyncio
    async def test_delete_paid_refused(self, seeded: LedgerStore) -> None:
        """paid_amount > 0인 외상은 저장소 수준에서도 삭제 거부"""
        await seeded.add_repayment(make_repayment("r1", 1000), [Allocation("d1", 1000)])

        with pytest.raises(StoreFailure):
            await seeded.delete_debt("d1")
        assert await seeded.get_debt("d1") is not None


class TestRepayments:
    """상환 저장 + 배분 반영"""

    @pytest.mark.asyncio
    async def test_add_repayment_applies_allocations(self, seeded: LedgerStore) -> None:
        allocations = [Allocation("d1", 10000), Allocation("d2", 2000)]

        await seeded.add_repayment(make_repayment("r1", 12000), allocations)

        d1, d2 = await seeded.list_debts("c1")
        assert (d1.paid_amount, d2.paid_amount) == (10000, 2000)
        recorded = await seeded.get_allocations("r1")
        assert [(a.debt_id, a.amount, a.repayment_id) for a in recorded] == [
            ("d1", 10000, "r1"),
            ("d2", 2000, "r1"),
        ]

    @pytest.mark.asyncio
    async def test_over_allocation_rolls_back(self, seeded: LedgerStore) -> None:
        """한 건이라도 외상 금액을 넘으면 전체 롤백"""
        allocations = [Allocation("d1", 5000), Allocation("d2", 9000)]

        with pytest.raises(StoreFailure, match="add_repayment"):
            await seeded.add_repayment(make_repayment("r1", 14000), allocations)

        assert await seeded.get_repayment("r1") is None
        assert [d.paid_amount for d in await seeded.list_debts("c1")] == [0, 0]

    @pytest.mark.asyncio
    async def test_new_debts_in_same_transaction(self, store: LedgerStore) -> None:
        """POS 현금 판매: 외상 + 상환 한 번에"""
        await store.insert_customer(make_customer())
        debt = make_debt("d9", 3000)
        repayment = make_repayment("r9", 3000, category="POS Cash Sale")
        repayment.source = RepaymentSource.POS_CASH

        await store.add_repayment(repayment, [Allocation("d9", 3000)], new_debts=[debt])

        stored = await store.get_debt("d9")
        assert stored is not None and stored.paid_amount == 3000
        assert (await store.get_repayment("r9")).source == RepaymentSource.POS_CASH

    @pytest.mark.asyncio
    async def test_remove_repayment_reverses_and_cascades(self, seeded: LedgerStore) -> None:
        await seeded.add_repayment(make_repayment("r1", 12000), [Allocation("d1", 10000), Allocation("d2", 2000)])

        await seeded.remove_repayment("r1", [Allocation("d1", 10000), Allocation("d2", 2000)])

        assert await seeded.get_repayment("r1") is None
        assert await seeded.get_allocations("r1") == []
        assert [d.paid_amount for d in await seeded.list_debts("c1")] == [0, 0]

    @pytest.mark.asyncio
    async def test_remove_repayment_cannot_go_negative(self, seeded: LedgerStore) -> None:
        await seeded.add_repayment(make_repayment("r1", 1000), [Allocation("d1", 1000)])

        with pytest.raises(StoreFailure):
            await seeded.remove_repayment("r1", [Allocation("d1", 5000)])

        assert await seeded.get_repayment("r1") is not None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, seeded: LedgerStore) -> None:
        await seeded.add_repayment(make_repayment("r1", 1000, minutes=60), [Allocation("d1", 1000)])
        await seeded.add_repayment(make_repayment("r2", 1000, minutes=120), [Allocation("d1", 1000)])

        assert [r.repayment_id for r in await seeded.list_repayments("c1")] == ["r2", "r1"]


class TestCategories:
    @pytest.mark.asyncio
    async def test_update_categories(self, seeded: LedgerStore) -> None:
        await seeded.update_categories(
            [CategoryChange(EntryType.DEBT, "d2", "Sugar", "sugar", '[]')]
        )

        d2 = await seeded.get_debt("d2")
        assert (d2.category, d2.category_key, d2.items) == ("Sugar", "sugar", [])

    @pytest.mark.asyncio
    async def test_category_labels_one_per_key(self, seeded: LedgerStore) -> None:
        await seeded.add_debts([make_debt("d3", 100, category="RICE", minutes=5)])

        labels = await seeded.list_category_labels()

        assert labels == [("rice", "RICE")]

    @pytest.mark.asyncio
    async def test_category_balances(self, seeded: LedgerStore) -> None:
        await seeded.add_repayment(make_repayment("r1", 4000), [Allocation("d1", 4000)])

        rows = await seeded.list_category_balances("c1")

        assert rows == [
            {
                "category_key": "rice",
                "category": "Rice",
                "total_debits": 15000,
                "total_credits": 4000,
                "net_balance": 11000,
            }
        ]


class TestBalanceTotals:
    @pytest.mark.asyncio
    async def test_recalculate_balance(self, seeded: LedgerStore) -> None:
        await seeded.add_repayment(make_repayment("r1", 4000), [Allocation("d1", 4000)])

        assert await seeded.recalculate_balance("c1") == 11000
        assert (await seeded.get_customer("c1")).outstanding_balance == 11000

    @pytest.mark.asyncio
    async def test_totals_view(self, seeded: LedgerStore) -> None:
        await seeded.set_outstanding_balance("c1", 777)

        totals = await seeded.get_balance_totals("c1")

        assert totals.cached_balance == 777
        assert totals.total_debits == 15000
        assert totals.total_credits == 0
        assert totals.computed_balance == 15000

    @pytest.mark.asyncio
    async def test_sums_between(self, seeded: LedgerStore) -> None:
        start = BASE_TIME.isoformat(timespec="microseconds")
        end = (BASE_TIME + timedelta(minutes=1)).isoformat(timespec="microseconds")

        assert await seeded.sum_debts_between(start, end) == 10000

    @pytest.mark.asyncio
    async def test_cross_customer_totals_skip_rolled_back_rows(self, seeded: LedgerStore) -> None:
        """전체 고객 집계는 롤백될 미커밋 외상을 보지 않음"""
        in_tx = asyncio.Event()
        release = asyncio.Event()

        async def failing_update() -> None:
            async with seeded.db.transaction() as conn:
                await conn.execute(
                    "UPDATE debts SET amount = amount + 99900 WHERE debt_id = ?", ("d1",)
                )
                in_tx.set()
                await release.wait()
                raise ValueError("의도적 에러")

        writer = asyncio.create_task(failing_update())
        await in_tx.wait()
        reader = asyncio.create_task(seeded.list_balance_totals())
        await asyncio.sleep(0.01)
        release.set()

        with pytest.raises(ValueError):
            await writer
        totals = await reader

        assert [t.total_debits for t in totals] == [15000]
