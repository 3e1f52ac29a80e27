"""
고객 API 라우트

고객 생성/조회 및 고객별 외상·상환 기록.
"""

from fastapi import APIRouter, Depends

from core.ledger.service import LedgerService
from core.money import to_minor
from web.dependencies import get_ledger_service
from web.models.requests import (
    CustomerCreateRequest,
    DebtCreateRequest,
    RepaymentCreateRequest,
)
from web.models.responses import (
    CustomerResponse,
    DebtResponse,
    RepaymentResponse,
    RepaymentResultResponse,
)

router = APIRouter(prefix="/api/customers", tags=["Customers"])


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    body: CustomerCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> CustomerResponse:
    """고객 생성"""
    customer = await service.create_customer(
        name=body.name,
        phone=body.phone,
        email=body.email,
        address=body.address,
    )
    return CustomerResponse.from_domain(customer)


@router.get("", response_model=list[CustomerResponse])
async def list_customers(
    service: LedgerService = Depends(get_ledger_service),
) -> list[CustomerResponse]:
    """고객 목록"""
    return [CustomerResponse.from_domain(c) for c in await service.list_customers()]


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> CustomerResponse:
    """고객 조회"""
    return CustomerResponse.from_domain(await service.get_customer(customer_id))


@router.get("/{customer_id}/debts", response_model=list[DebtResponse])
async def list_debts(
    customer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[DebtResponse]:
    """고객 외상 목록 (생성 순)"""
    return [DebtResponse.from_domain(d) for d in await service.list_debts(customer_id)]


@router.post("/{customer_id}/debts", response_model=DebtResponse, status_code=201)
async def create_debt(
    customer_id: str,
    body: DebtCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> DebtResponse:
    """외상 기록"""
    debt = await service.create_debt(
        customer_id,
        to_minor(body.amount),
        body.category,
        items=[item.to_domain() for item in body.items],
        notes=body.notes,
        adjustment=body.adjustment,
    )
    return DebtResponse.from_domain(debt)


@router.get("/{customer_id}/repayments", response_model=list[RepaymentResponse])
async def list_repayments(
    customer_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[RepaymentResponse]:
    """고객 상환 목록 (최신순)"""
    return [RepaymentResponse.from_domain(r) for r in await service.list_repayments(customer_id)]


@router.post("/{customer_id}/repayments", response_model=RepaymentResultResponse)
async def apply_repayment(
    customer_id: str,
    body: RepaymentCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> RepaymentResultResponse:
    """카테고리 상환 (FIFO 배분)

    미결 외상이 없으면 200 + applied=false.
    """
    result = await service.apply_repayment(
        customer_id,
        body.category,
        to_minor(body.amount),
        method=body.method,
    )
    return RepaymentResultResponse.from_domain(result)
