"""
원장 항목 API 라우트

외상/상환 단건 조회, 삭제, 카테고리 변경.
"""

from fastapi import APIRouter, Depends

from core.ledger.service import CategoryReassignment, LedgerService
from core.types import EntryType
from web.dependencies import get_ledger_service
from web.models.requests import CategoryBulkUpdateRequest, CategoryUpdateRequest
from web.models.responses import (
    DebtResponse,
    ReassignmentResponse,
    RepaymentResponse,
    RepaymentReversalResponse,
)

router = APIRouter(prefix="/api", tags=["Entries"])


@router.get("/debts/{debt_id}", response_model=DebtResponse)
async def get_debt(
    debt_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> DebtResponse:
    return DebtResponse.from_domain(await service.get_debt(debt_id))


@router.delete("/debts/{debt_id}", response_model=DebtResponse)
async def delete_debt(
    debt_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> DebtResponse:
    """외상 삭제 (상환이 적용된 외상은 409)"""
    return DebtResponse.from_domain(await service.delete_debt(debt_id))


@router.patch("/debts/{debt_id}/category", response_model=DebtResponse)
async def reassign_debt_category(
    debt_id: str,
    body: CategoryUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> DebtResponse:
    """외상 카테고리 변경 (품목 카테고리도 함께 변경)"""
    debt = await service.reassign_category(debt_id, EntryType.DEBT, body.category)
    return DebtResponse.from_domain(debt)


@router.get("/repayments/{repayment_id}", response_model=RepaymentResponse)
async def get_repayment(
    repayment_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> RepaymentResponse:
    return RepaymentResponse.from_domain(await service.get_repayment(repayment_id))


@router.delete("/repayments/{repayment_id}", response_model=RepaymentReversalResponse)
async def delete_repayment(
    repayment_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> RepaymentReversalResponse:
    """상환 삭제 (배분 역산)"""
    return RepaymentReversalResponse.from_domain(await service.delete_repayment(repayment_id))


@router.patch("/repayments/{repayment_id}/category", response_model=RepaymentResponse)
async def reassign_repayment_category(
    repayment_id: str,
    body: CategoryUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> RepaymentResponse:
    repayment = await service.reassign_category(repayment_id, EntryType.REPAYMENT, body.category)
    return RepaymentResponse.from_domain(repayment)


@router.post("/customers/{customer_id}/categories/reassign", response_model=ReassignmentResponse)
async def reassign_categories(
    customer_id: str,
    body: CategoryBulkUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ReassignmentResponse:
    """여러 항목 카테고리 일괄 변경"""
    result = await service.reassign_categories(
        customer_id,
        [
            CategoryReassignment(
                entry_type=change.entry_type,
                entry_id=change.entry_id,
                category=change.category,
            )
            for change in body.changes
        ],
    )
    return ReassignmentResponse.from_domain(result)
