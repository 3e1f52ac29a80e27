"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화.
금액은 문자열(major unit, 소수 2자리)로 반환.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from core.ledger.allocation import AllocationResult
from core.ledger.balance import CategoryBalance, LedgerSummary, Statement
from core.ledger.models import Allocation, Customer, Debt, LineItem, Repayment
from core.ledger.service import CashSaleResult, ReassignmentResult, RepaymentReversal
from core.money import from_minor
from jobs.reconciler.drift import BalanceDrift
from jobs.reconciler.recalibrator import RecalibrationReport


def money(minor: int) -> str:
    """minor unit → 응답용 문자열 ("150.50")"""
    return str(from_minor(minor))


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    mode: str = Field(..., description="실행 모드 (sandbox/production)")
    version: str = Field(..., description="API 버전")


class ErrorResponse(BaseModel):
    """에러 응답"""

    error: str = Field(..., description="에러 종류")
    detail: str = Field(..., description="에러 메시지")
    extra: dict[str, Any] | None = Field(default=None, description="추가 정보")


class CustomerResponse(BaseModel):
    """고객 응답"""

    customer_id: str
    name: str
    phone: str | None
    email: str | None
    address: str | None
    outstanding_balance: str = Field(..., description="캐시 잔액 (PHP)")
    created_at: datetime

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            customer_id=customer.customer_id,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            address=customer.address,
            outstanding_balance=money(customer.outstanding_balance),
            created_at=customer.created_at,
        )


class LineItemResponse(BaseModel):
    """주문 품목 응답"""

    product_id: str
    product_name: str
    quantity: int
    price: str
    category: str

    @classmethod
    def from_domain(cls, item: LineItem) -> "LineItemResponse":
        return cls(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            price=money(item.price),
            category=item.category,
        )


class DebtResponse(BaseModel):
    """외상 응답"""

    debt_id: str
    customer_id: str
    amount: str
    paid_amount: str
    remaining: str
    status: str
    category: str
    created_at: datetime
    order_id: str | None
    notes: str | None
    items: list[LineItemResponse]

    @classmethod
    def from_domain(cls, debt: Debt) -> "DebtResponse":
        return cls(
            debt_id=debt.debt_id,
            customer_id=debt.customer_id,
            amount=money(debt.amount),
            paid_amount=money(debt.paid_amount),
            remaining=money(debt.remaining),
            status=debt.status.value,
            category=debt.category,
            created_at=debt.created_at,
            order_id=debt.order_id,
            notes=debt.notes,
            items=[LineItemResponse.from_domain(item) for item in debt.items],
        )


class RepaymentResponse(BaseModel):
    """상환 응답"""

    repayment_id: str
    customer_id: str
    amount: str
    category: str
    timestamp: datetime
    method: str
    source: str

    @classmethod
    def from_domain(cls, repayment: Repayment) -> "RepaymentResponse":
        return cls(
            repayment_id=repayment.repayment_id,
            customer_id=repayment.customer_id,
            amount=money(repayment.amount),
            category=repayment.category,
            timestamp=repayment.timestamp,
            method=repayment.method.value,
            source=repayment.source.value,
        )


class AllocationResponse(BaseModel):
    """외상별 배분/역산 금액"""

    debt_id: str
    amount: str

    @classmethod
    def from_domain(cls, allocation: Allocation) -> "AllocationResponse":
        return cls(debt_id=allocation.debt_id, amount=money(allocation.amount))


class RepaymentResultResponse(BaseModel):
    """상환 배분 결과 응답

    applied=false면 미결 외상이 없어 아무것도 기록되지 않은 것 (에러 아님).
    """

    applied: bool
    no_open_debts: bool
    overpaid: bool
    requested: str
    consumed: str
    surplus: str
    category: str
    repayment: RepaymentResponse | None
    allocations: list[AllocationResponse]
    balance_after: str | None

    @classmethod
    def from_domain(cls, result: AllocationResult) -> "RepaymentResultResponse":
        return cls(
            applied=result.applied,
            no_open_debts=result.no_open_debts,
            overpaid=result.overpaid,
            requested=money(result.requested),
            consumed=money(result.consumed),
            surplus=money(result.surplus),
            category=result.category,
            repayment=RepaymentResponse.from_domain(result.repayment) if result.repayment else None,
            allocations=[AllocationResponse.from_domain(a) for a in result.allocations],
            balance_after=money(result.balance_after) if result.balance_after is not None else None,
        )


class RepaymentReversalResponse(BaseModel):
    """상환 삭제 결과 응답"""

    repayment: RepaymentResponse
    reversals: list[AllocationResponse]
    exact: bool = Field(..., description="배분 내역 기반 정확한 역산 여부")
    unapplied: str
    balance_after: str

    @classmethod
    def from_domain(cls, result: RepaymentReversal) -> "RepaymentReversalResponse":
        return cls(
            repayment=RepaymentResponse.from_domain(result.repayment),
            reversals=[AllocationResponse.from_domain(a) for a in result.reversals],
            exact=result.exact,
            unapplied=money(result.unapplied),
            balance_after=money(result.balance_after),
        )


class CashSaleResponse(BaseModel):
    """POS 현금 판매 응답"""

    debts: list[DebtResponse]
    repayment: RepaymentResponse
    balance_after: str

    @classmethod
    def from_domain(cls, result: CashSaleResult) -> "CashSaleResponse":
        return cls(
            debts=[DebtResponse.from_domain(d) for d in result.debts],
            repayment=RepaymentResponse.from_domain(result.repayment),
            balance_after=money(result.balance_after),
        )


class ReassignmentResponse(BaseModel):
    """일괄 카테고리 변경 응답"""

    customer_id: str
    changed: int
    revision: int

    @classmethod
    def from_domain(cls, result: ReassignmentResult) -> "ReassignmentResponse":
        return cls(
            customer_id=result.customer_id,
            changed=result.changed,
            revision=result.revision,
        )


class BalanceResponse(BaseModel):
    """현재 잔액 응답"""

    customer_id: str
    live_balance: str = Field(..., description="이력 기반 잔액")
    cached_balance: str = Field(..., description="캐시 잔액")


class StatementLineResponse(BaseModel):
    entry_id: str
    entry_type: str
    timestamp: datetime
    debit: str
    credit: str
    running_balance: str


class CategoryStatementResponse(BaseModel):
    category: str
    opening: str
    closing: str
    lines: list[StatementLineResponse]


class StatementResponse(BaseModel):
    """특정일 명세서 응답"""

    customer_id: str
    as_of: date
    opening: str
    closing: str
    categories: list[CategoryStatementResponse]

    @classmethod
    def from_domain(cls, statement: Statement) -> "StatementResponse":
        return cls(
            customer_id=statement.customer_id,
            as_of=statement.as_of,
            opening=money(statement.opening),
            closing=money(statement.closing),
            categories=[
                CategoryStatementResponse(
                    category=cat.category,
                    opening=money(cat.opening),
                    closing=money(cat.closing),
                    lines=[
                        StatementLineResponse(
                            entry_id=line.entry_id,
                            entry_type=line.entry_type.value,
                            timestamp=line.timestamp,
                            debit=money(line.debit),
                            credit=money(line.credit),
                            running_balance=money(line.running_balance),
                        )
                        for line in cat.lines
                    ],
                )
                for cat in statement.categories
            ],
        )


class CategoryBalanceResponse(BaseModel):
    """활성 카테고리 응답"""

    category: str
    open_amount: str

    @classmethod
    def from_domain(cls, balance: CategoryBalance) -> "CategoryBalanceResponse":
        return cls(category=balance.category, open_amount=money(balance.open_amount))


class LastCategoryResponse(BaseModel):
    product_id: str
    category: str | None


class SummaryResponse(BaseModel):
    """대시보드 요약 응답"""

    day: date
    total_outstanding: str
    today_debt: str
    today_income: str
    month_income: str

    @classmethod
    def from_domain(cls, summary: LedgerSummary) -> "SummaryResponse":
        return cls(
            day=summary.day,
            total_outstanding=money(summary.total_outstanding),
            today_debt=money(summary.today_debt),
            today_income=money(summary.today_income),
            month_income=money(summary.month_income),
        )


class DriftResponse(BaseModel):
    """캐시 잔액 drift"""

    customer_id: str
    customer_name: str
    cached: str
    computed: str

    @classmethod
    def from_domain(cls, drift: BalanceDrift) -> "DriftResponse":
        return cls(
            customer_id=drift.customer_id,
            customer_name=drift.customer_name,
            cached=money(drift.cached),
            computed=money(drift.computed),
        )


class RecalibrationResponse(BaseModel):
    """재보정 결과 응답"""

    adjusted_count: int = Field(..., description="보정된 고객 수 (0이면 일관됨)")
    processed: int
    total: int
    cancelled: bool
    drifts: list[DriftResponse]

    @classmethod
    def from_domain(cls, report: RecalibrationReport) -> "RecalibrationResponse":
        return cls(
            adjusted_count=report.adjusted_count,
            processed=report.processed,
            total=report.total,
            cancelled=report.cancelled,
            drifts=[DriftResponse.from_domain(d) for d in report.drifts],
        )
