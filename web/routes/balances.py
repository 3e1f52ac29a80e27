"""
잔액 조회 API 라우트

현재 잔액, 특정일 명세서, 활성 카테고리, 카테고리 목록, 요약.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from core.ledger.service import LedgerService
from web.dependencies import get_ledger_service
from web.models.responses import (
    BalanceResponse,
    CategoryBalanceResponse,
    LastCategoryResponse,
    StatementResponse,
    SummaryResponse,
    money,
)

router = APIRouter(prefix="/api", tags=["Balances"])


@router.get("/customers/{customer_id}/balance", response_model=BalanceResponse)
async def get_balance(
    customer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> BalanceResponse:
    """현재 잔액 (이력 기반 + 캐시)"""
    customer = await service.get_customer(customer_id)
    live = await service.live_balance(customer_id)
    return BalanceResponse(
        customer_id=customer_id,
        live_balance=money(live),
        cached_balance=money(customer.outstanding_balance),
    )


@router.get("/customers/{customer_id}/statement", response_model=StatementResponse)
async def get_statement(
    customer_id: str,
    as_of: date | None = Query(default=None, description="대상일 (YYYY-MM-DD, 기본: 오늘)"),
    category: str | None = Query(default=None, description="카테고리 필터"),
    service: LedgerService = Depends(get_ledger_service),
) -> StatementResponse:
    """특정일 기준 명세서"""
    statement = await service.as_of_balance(customer_id, as_of or service.today(), category)
    return StatementResponse.from_domain(statement)


@router.get(
    "/customers/{customer_id}/categories/active",
    response_model=list[CategoryBalanceResponse],
)
async def get_active_categories(
    customer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[CategoryBalanceResponse]:
    """순잔액이 남은 카테고리"""
    return [
        CategoryBalanceResponse.from_domain(c)
        for c in await service.active_categories(customer_id)
    ]


@router.get("/customers/{customer_id}/last-category", response_model=LastCategoryResponse)
async def get_last_used_category(
    customer_id: str,
    product_id: str = Query(..., description="상품 ID"),
    service: LedgerService = Depends(get_ledger_service),
) -> LastCategoryResponse:
    """상품에 마지막으로 사용한 카테고리"""
    category = await service.last_used_category(customer_id, product_id)
    return LastCategoryResponse(product_id=product_id, category=category)


@router.get("/categories", response_model=list[str])
async def list_categories(
    service: LedgerService = Depends(get_ledger_service),
) -> list[str]:
    """카테고리 자동완성 목록"""
    return await service.list_categories()


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    day: date | None = Query(default=None, description="기준일 (기본: 오늘)"),
    service: LedgerService = Depends(get_ledger_service),
) -> SummaryResponse:
    """대시보드 요약"""
    return SummaryResponse.from_domain(await service.ledger_summary(day))
