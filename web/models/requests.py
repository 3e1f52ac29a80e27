"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증.
금액은 Decimal(major unit, 예: "150.50")로 받고 라우트에서 minor unit으로 변환.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from core.ledger.models import LineItem
from core.money import to_minor
from core.types import EntryType, PaymentMethod


class CustomerCreateRequest(BaseModel):
    """고객 생성 요청"""

    name: str = Field(..., min_length=1, description="고객 이름")
    phone: str | None = Field(default=None, description="전화번호")
    email: str | None = Field(default=None, description="이메일")
    address: str | None = Field(default=None, description="주소")


class LineItemRequest(BaseModel):
    """주문 품목"""

    product_id: str = Field(..., description="상품 ID")
    product_name: str = Field(..., description="상품 이름")
    quantity: int = Field(..., gt=0, description="수량")
    price: Decimal = Field(..., ge=0, description="단가 (PHP)")
    category: str = Field(..., description="카테고리")

    def to_domain(self) -> LineItem:
        return LineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            price=to_minor(self.price),
            category=self.category,
        )


class DebtCreateRequest(BaseModel):
    """외상 기록 요청"""

    amount: Decimal = Field(..., description="금액 (PHP)")
    category: str = Field(..., description="카테고리")
    notes: str | None = Field(default=None, description="메모")
    items: list[LineItemRequest] = Field(default_factory=list, description="표시용 품목")
    adjustment: bool = Field(default=False, description="0원 조정 항목 여부")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"amount": "150.00", "category": "Rice", "notes": "2 sacks"},
            ]
        }
    }


class RepaymentCreateRequest(BaseModel):
    """상환 요청 (카테고리 내 FIFO 배분)"""

    category: str = Field(..., description="상환 대상 카테고리")
    amount: Decimal = Field(..., description="상환 금액 (PHP)")
    method: PaymentMethod = Field(default=PaymentMethod.CASH, description="상환 수단")


class CategoryUpdateRequest(BaseModel):
    """카테고리 변경 요청"""

    category: str = Field(..., description="새 카테고리")


class CategoryChangeRequest(BaseModel):
    """일괄 카테고리 변경 한 건"""

    entry_type: EntryType = Field(..., description="DEBT 또는 REPAYMENT")
    entry_id: str = Field(..., description="항목 ID")
    category: str = Field(..., description="새 카테고리")


class CategoryBulkUpdateRequest(BaseModel):
    """일괄 카테고리 변경 요청"""

    changes: list[CategoryChangeRequest] = Field(..., min_length=1)


class OrderConfirmRequest(BaseModel):
    """주문 확정 요청 (카테고리별 외상 생성)"""

    order_id: str = Field(..., min_length=1, description="주문 ID")
    items: list[LineItemRequest] = Field(..., min_length=1)
    category_map: dict[str, str] = Field(
        default_factory=dict,
        description="product_id → 카테고리 재지정",
    )


class CashSaleRequest(BaseModel):
    """POS 현금 판매 요청"""

    items: list[LineItemRequest] = Field(..., min_length=1)
    category_map: dict[str, str] = Field(default_factory=dict)
