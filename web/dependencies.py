"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.

LedgerService/Recalibrator는 lifespan에서 한 번 생성되어 app.state에 보관.
고객별 잠금과 DB 연결을 프로세스 전체가 공유해야 하므로 요청마다 만들지 않음.
"""

from fastapi import HTTPException, Request

from core.ledger.service import LedgerService
from jobs.reconciler.recalibrator import Recalibrator


def get_ledger_service(request: Request) -> LedgerService:
    """원장 서비스 반환

    Raises:
        HTTPException: lifespan 초기화 전 (503)
    """
    service = getattr(request.app.state, "ledger_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ledger service is not ready")
    return service


def get_recalibrator(request: Request) -> Recalibrator:
    """재보정 작업 반환"""
    recalibrator = getattr(request.app.state, "recalibrator", None)
    if recalibrator is None:
        raise HTTPException(status_code=503, detail="Recalibrator is not ready")
    return recalibrator
