"""
재보정 API 라우트

POST /api/audit/recalibrate - 전체 고객 캐시 잔액 재보정
GET  /api/audit/drift       - 보정 없이 drift 점검
"""

import logging

from fastapi import APIRouter, Depends

from jobs.reconciler.drift import DriftDetector
from jobs.reconciler.recalibrator import Recalibrator
from web.dependencies import get_recalibrator
from web.models.responses import DriftResponse, RecalibrationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audit", tags=["Audit"])


@router.post("/recalibrate", response_model=RecalibrationResponse)
async def recalibrate(
    recalibrator: Recalibrator = Depends(get_recalibrator),
) -> RecalibrationResponse:
    """전체 재보정 (실패 시 500 + 부분 결과)"""

    def on_progress(processed: int, total: int, message: str) -> None:
        logger.debug(f"재보정 진행 [{processed}/{total}] {message}")

    report = await recalibrator.recalibrate_all(progress_callback=on_progress)
    return RecalibrationResponse.from_domain(report)


@router.get("/drift", response_model=list[DriftResponse])
async def check_drift(
    recalibrator: Recalibrator = Depends(get_recalibrator),
) -> list[DriftResponse]:
    """캐시 잔액 drift 점검 (읽기 전용)"""
    drifts = DriftDetector().detect_all(await recalibrator.store.list_balance_totals())
    return [DriftResponse.from_domain(d) for d in drifts]
