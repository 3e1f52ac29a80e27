"""
Recalibrator

전체 고객의 캐시 잔액을 이력 기반으로 다시 계산하여 불일치를 보정.
외상/상환 기록은 절대 변경하지 않음.

동작 방식:
1. 고객 목록 조회
2. 고객별로 잠금을 잡고 캐시 vs 이력 잔액 비교
3. 다를 때만 캐시 덮어쓰기
4. 고객마다 진행률 콜백 호출, 고객 사이에서 취소 여부 확인

중간에 저장소 오류가 나면 AuditFailure (부분 결과 포함).
이미 보정된 고객은 그대로 유지되며 다시 실행해도 안전함.
"""

import asyncio
import inspect
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Union

from core.errors import AuditFailure, StoreFailure
from core.ledger.locks import CustomerLocks
from core.ledger.store import LedgerStore
from core.utils.timezone import now_utc
from jobs.reconciler.drift import BalanceDrift, DriftDetector

logger = logging.getLogger(__name__)


# (processed, total, message) → None 또는 awaitable
ProgressCallback = Callable[[int, int, str], Union[None, Awaitable[None]]]


@dataclass
class RecalibrationReport:
    """재보정 결과

    Attributes:
        total: 대상 고객 수
        processed: 처리 완료 고객 수
        drifts: 보정된 고객별 drift
        cancelled: 취소로 중단되었는지 여부
    """

    total: int = 0
    processed: int = 0
    drifts: list[BalanceDrift] = field(default_factory=list)
    cancelled: bool = False
    started_at: datetime = field(default_factory=now_utc)
    finished_at: datetime | None = None

    @property
    def adjusted_count(self) -> int:
        """보정된 고객 수 (0이면 이미 일관됨)"""
        return len(self.drifts)

    @property
    def completed(self) -> bool:
        return not self.cancelled and self.processed == self.total


class Recalibrator:
    """잔액 재보정 작업

    Args:
        store: LedgerStore
        locks: 고객별 잠금 (LedgerService와 같은 인스턴스를 공유해야 함)
    """

    def __init__(self, store: LedgerStore, locks: CustomerLocks | None = None):
        self.store = store
        self.locks = locks or CustomerLocks()
        self.drift_detector = DriftDetector()

    async def _recalibrate_one(self, customer_id: str) -> BalanceDrift | None:
        """고객 한 명 재보정 (잠금 하에서 비교 후 필요 시 덮어쓰기)"""
        async with self.locks.for_customer(customer_id):
            totals = await self.store.get_balance_totals(customer_id)
            if totals is None:
                return None

            drift = self.drift_detector.detect_balance_drift(totals)
            if drift is not None:
                await self.store.set_outstanding_balance(customer_id, drift.computed)
            return drift

    async def _report_progress(
        self,
        callback: ProgressCallback | None,
        processed: int,
        total: int,
        message: str,
    ) -> None:
        if callback is None:
            return
        result = callback(processed, total, message)
        if inspect.isawaitable(result):
            await result

    async def recalibrate_all(
        self,
        progress_callback: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> RecalibrationReport:
        """전체 고객 재보정

        Args:
            progress_callback: (processed, total, message) 진행률 콜백 (sync/async 모두 허용)
            cancel_event: set되면 다음 고객으로 넘어가기 전에 중단

        Returns:
            RecalibrationReport

        Raises:
            AuditFailure: 저장소 오류로 중단 (report에 부분 결과)
        """
        report = RecalibrationReport()

        try:
            customer_ids = await self.store.list_customer_ids()
        except (StoreFailure, sqlite3.Error) as e:
            report.finished_at = now_utc()
            raise AuditFailure(f"Failed to list customers: {e}", report) from e

        report.total = len(customer_ids)
        logger.info(f"재보정 시작: 고객 {report.total}명")

        for customer_id in customer_ids:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.info(
                    f"재보정 취소: {report.processed}/{report.total} 처리됨",
                    extra={"adjusted_count": report.adjusted_count},
                )
                break

            try:
                drift = await self._recalibrate_one(customer_id)
            except (StoreFailure, sqlite3.Error) as e:
                report.finished_at = now_utc()
                logger.error(
                    f"재보정 중단: {customer_id}",
                    extra={"processed": report.processed, "error": str(e)},
                )
                raise AuditFailure(
                    f"Recalibration aborted at customer {customer_id}: {e}", report
                ) from e

            report.processed += 1
            if drift is not None:
                report.drifts.append(drift)
                message = f"Adjusted {drift.customer_name}"
            else:
                message = f"Checked {customer_id}"

            await self._report_progress(
                progress_callback, report.processed, report.total, message
            )
            # 다른 작업(취소 포함)이 끼어들 수 있도록 양보
            await asyncio.sleep(0)

        report.finished_at = now_utc()
        if not report.cancelled:
            logger.info(
                f"재보정 완료: {report.processed}명 처리, {report.adjusted_count}명 보정",
                extra={"adjusted_count": report.adjusted_count},
            )
        return report
