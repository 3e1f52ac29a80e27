"""
Recalibrator 통합 테스트

캐시 잔액을 임의로 어긋나게 만든 뒤 재보정 동작 검증.
"""

import asyncio
from unittest.mock import patch

import pytest

from core.errors import AuditFailure, StoreFailure
from core.ledger.service import LedgerService
from core.ledger.store import LedgerStore
from jobs.reconciler.recalibrator import Recalibrator


@pytest.fixture
def recalibrator(store: LedgerStore, locks) -> Recalibrator:
    return Recalibrator(store, locks)


async def seed_customers(service: LedgerService, count: int) -> list[str]:
    """고객마다 Rice 외상 100, 상환 40"""
    ids = []
    for i in range(count):
        customer = await service.create_customer(f"Customer {i}")
        await service.create_debt(customer.customer_id, 10000, "Rice")
        await service.apply_repayment(customer.customer_id, "Rice", 4000)
        ids.append(customer.customer_id)
    return ids


class TestRecalibrateAll:
    """전체 재보정"""

    @pytest.mark.asyncio
    async def test_consistent_ledger_untouched(self, service: LedgerService, recalibrator: Recalibrator) -> None:
        await seed_customers(service, 3)

        report = await recalibrator.recalibrate_all()

        assert report.total == 3
        assert report.processed == 3
        assert report.adjusted_count == 0
        assert report.completed is True
        assert report.finished_at is not None

    @pytest.mark.asyncio
    async def test_corrupted_cache_repaired(
        self,
        service: LedgerService,
        store: LedgerStore,
        recalibrator: Recalibrator,
    ) -> None:
        ids = await seed_customers(service, 3)
        await store.set_outstanding_balance(ids[1], 123456)

        report = await recalibrator.recalibrate_all()

        assert report.adjusted_count == 1
        drift = report.drifts[0]
        assert (drift.customer_id, drift.cached, drift.computed) == (ids[1], 123456, 6000)
        assert (await service.get_customer(ids[1])).outstanding_balance == 6000

    @pytest.mark.asyncio
    async def test_idempotent(self, service: LedgerService, store: LedgerStore, recalibrator: Recalibrator) -> None:
        ids = await seed_customers(service, 2)
        await store.set_outstanding_balance(ids[0], 0)

        first = await recalibrator.recalibrate_all()
        second = await recalibrator.recalibrate_all()

        assert first.adjusted_count == 1
        assert second.adjusted_count == 0

    @pytest.mark.asyncio
    async def test_never_touches_entries(
        self,
        service: LedgerService,
        store: LedgerStore,
        recalibrator: Recalibrator,
    ) -> None:
        ids = await seed_customers(service, 1)
        debts_before = await service.list_debts(ids[0])
        repayments_before = await service.list_repayments(ids[0])
        await store.set_outstanding_balance(ids[0], 1)

        await recalibrator.recalibrate_all()

        assert await service.list_debts(ids[0]) == debts_before
        assert await service.list_repayments(ids[0]) == repayments_before

    @pytest.mark.asyncio
    async def test_empty_store(self, recalibrator: Recalibrator) -> None:
        report = await recalibrator.recalibrate_all()

        assert report.total == 0
        assert report.completed is True


class TestProgressAndCancel:
    """진행률 콜백 / 취소"""

    @pytest.mark.asyncio
    async def test_sync_callback(self, service: LedgerService, recalibrator: Recalibrator) -> None:
        await seed_customers(service, 2)
        calls: list[tuple[int, int]] = []

        await recalibrator.recalibrate_all(lambda done, total, _: calls.append((done, total)))

        assert calls == [(1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_async_callback(self, service: LedgerService, recalibrator: Recalibrator) -> None:
        await seed_customers(service, 2)
        messages: list[str] = []

        async def on_progress(done: int, total: int, message: str) -> None:
            messages.append(message)

        await recalibrator.recalibrate_all(on_progress)

        assert len(messages) == 2
        assert all(m.startswith("Checked") for m in messages)

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, service: LedgerService, recalibrator: Recalibrator) -> None:
        await seed_customers(service, 2)
        cancel = asyncio.Event()
        cancel.set()

        report = await recalibrator.recalibrate_all(cancel_event=cancel)

        assert report.cancelled is True
        assert report.processed == 0
        assert report.completed is False

    @pytest.mark.asyncio
    async def test_cancel_from_callback(self, service: LedgerService, recalibrator: Recalibrator) -> None:
        """첫 고객 처리 후 취소 → 나머지는 건너뜀"""
        await seed_customers(service, 3)
        cancel = asyncio.Event()

        report = await recalibrator.recalibrate_all(lambda *_: cancel.set(), cancel)

        assert report.cancelled is True
        assert report.processed == 1


class TestAuditFailure:
    """저장소 오류 시 부분 결과"""

    @pytest.mark.asyncio
    async def test_partial_report(
        self,
        service: LedgerService,
        store: LedgerStore,
        recalibrator: Recalibrator,
    ) -> None:
        ids = await seed_customers(service, 3)
        for customer_id in ids:
            await store.set_outstanding_balance(customer_id, 0)

        original = store.get_balance_totals
        calls = {"count": 0}

        async def fail_on_second(customer_id: str):
            calls["count"] += 1
            if calls["count"] == 2:
                raise StoreFailure("disk I/O error")
            return await original(customer_id)

        with patch.object(store, "get_balance_totals", side_effect=fail_on_second):
            with pytest.raises(AuditFailure) as exc_info:
                await recalibrator.recalibrate_all()

        report = exc_info.value.report
        assert report.total == 3
        assert report.processed == 1
        assert report.adjusted_count == 1
        assert report.finished_at is not None

        # 재실행하면 나머지 고객 보정
        rerun = await recalibrator.recalibrate_all()
        assert rerun.adjusted_count == 2

    @pytest.mark.asyncio
    async def test_list_failure(self, store: LedgerStore, recalibrator: Recalibrator) -> None:
        with patch.object(store, "list_customer_ids", side_effect=StoreFailure("locked")):
            with pytest.raises(AuditFailure, match="Failed to list customers"):
                await recalibrator.recalibrate_all()


class TestServiceRecovery:
    """재계산 최종 실패 후 재보정으로 복구"""

    @pytest.mark.asyncio
    async def test_recovers_after_recalc_exhaustion(
        self,
        service: LedgerService,
        store: LedgerStore,
        recalibrator: Recalibrator,
    ) -> None:
        customer = await service.create_customer("Maria")

        with patch.object(store, "recalculate_balance", side_effect=StoreFailure("locked")):
            with pytest.raises(StoreFailure):
                await service.create_debt(customer.customer_id, 10000, "Rice")

        report = await recalibrator.recalibrate_all()

        assert report.adjusted_count == 1
        assert (await service.get_customer(customer.customer_id)).outstanding_balance == 10000
