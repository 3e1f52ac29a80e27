"""
Drift Detector

고객 캐시 잔액(outstanding_balance)과 이력 기반 잔액 비교하여 불일치 감지
"""

import logging
from dataclasses import dataclass

from core.ledger.store import BalanceTotals
from core.money import format_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDrift:
    """잔액 Drift 정보

    Attributes:
        customer_id: 고객 ID
        customer_name: 고객 이름
        cached: 저장된 캐시 잔액
        computed: 이력(Σ외상 − Σ상환)으로 다시 계산한 잔액
    """

    customer_id: str
    customer_name: str
    cached: int
    computed: int

    @property
    def delta(self) -> int:
        """보정량 (computed − cached)"""
        return self.computed - self.cached

    @property
    def description(self) -> str:
        return (
            f"Balance mismatch for {self.customer_name}: "
            f"cached {format_money(self.cached)}, computed {format_money(self.computed)}"
        )


class DriftDetector:
    """Drift 감지기

    캐시 잔액과 이력 기반 잔액을 비교. 원장 자체는 읽기만 함.
    """

    def detect_balance_drift(self, totals: BalanceTotals) -> BalanceDrift | None:
        """잔액 drift 감지

        Args:
            totals: 고객 잔액 집계

        Returns:
            BalanceDrift 또는 None (일치 시)
        """
        computed = totals.computed_balance
        if totals.cached_balance == computed:
            return None

        drift = BalanceDrift(
            customer_id=totals.customer_id,
            customer_name=totals.name,
            cached=totals.cached_balance,
            computed=computed,
        )
        logger.warning(
            drift.description,
            extra={"customer_id": totals.customer_id, "delta": drift.delta},
        )
        return drift

    def detect_all(self, all_totals: list[BalanceTotals]) -> list[BalanceDrift]:
        """여러 고객 일괄 감지 (보정 없이 점검만)"""
        drifts = []
        for totals in all_totals:
            drift = self.detect_balance_drift(totals)
            if drift is not None:
                drifts.append(drift)
        return drifts
