"""
주문 / POS API 라우트

주문 확정(카테고리별 외상 생성), POS 현금 판매.
"""

from fastapi import APIRouter, Depends

from core.ledger.service import LedgerService
from web.dependencies import get_ledger_service
from web.models.requests import CashSaleRequest, OrderConfirmRequest
from web.models.responses import CashSaleResponse, DebtResponse

router = APIRouter(prefix="/api/customers/{customer_id}", tags=["Orders"])


@router.post("/orders", response_model=list[DebtResponse], status_code=201)
async def confirm_order(
    customer_id: str,
    body: OrderConfirmRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> list[DebtResponse]:
    """주문 확정 → 카테고리별 외상"""
    debts = await service.confirm_order(
        customer_id,
        body.order_id,
        [item.to_domain() for item in body.items],
        category_map=body.category_map,
    )
    return [DebtResponse.from_domain(d) for d in debts]


@router.post("/cash-sales", response_model=CashSaleResponse, status_code=201)
async def record_cash_sale(
    customer_id: str,
    body: CashSaleRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> CashSaleResponse:
    """POS 현금 판매 (완납 외상 + 상환)"""
    result = await service.record_cash_sale(
        customer_id,
        [item.to_domain() for item in body.items],
        category_map=body.category_map,
    )
    return CashSaleResponse.from_domain(result)
