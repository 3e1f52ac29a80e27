"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    CashSaleRequest,
    CategoryBulkUpdateRequest,
    CategoryChangeRequest,
    CategoryUpdateRequest,
    CustomerCreateRequest,
    DebtCreateRequest,
    LineItemRequest,
    OrderConfirmRequest,
    RepaymentCreateRequest,
)
from web.models.responses import (
    BalanceResponse,
    CashSaleResponse,
    CategoryBalanceResponse,
    CustomerResponse,
    DebtResponse,
    DriftResponse,
    ErrorResponse,
    HealthResponse,
    LastCategoryResponse,
    ReassignmentResponse,
    RecalibrationResponse,
    RepaymentResponse,
    RepaymentResultResponse,
    RepaymentReversalResponse,
    StatementResponse,
    SummaryResponse,
)

__all__ = [
    # Requests
    "CustomerCreateRequest",
    "DebtCreateRequest",
    "RepaymentCreateRequest",
    "CategoryUpdateRequest",
    "CategoryChangeRequest",
    "CategoryBulkUpdateRequest",
    "OrderConfirmRequest",
    "CashSaleRequest",
    "LineItemRequest",
    # Responses
    "HealthResponse",
    "ErrorResponse",
    "CustomerResponse",
    "DebtResponse",
    "RepaymentResponse",
    "RepaymentResultResponse",
    "RepaymentReversalResponse",
    "CashSaleResponse",
    "ReassignmentResponse",
    "BalanceResponse",
    "StatementResponse",
    "CategoryBalanceResponse",
    "LastCategoryResponse",
    "SummaryResponse",
    "DriftResponse",
    "RecalibrationResponse",
]
