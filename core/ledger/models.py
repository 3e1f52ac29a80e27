"""
원장 데이터 모델

Customer / Debt / Repayment / Allocation 및 표시용 LineItem.
금액은 모두 정수 minor unit (centavo).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.types import DebtStatus, EntryType, PaymentMethod, RepaymentSource
from core.utils.timezone import parse_iso


@dataclass(frozen=True)
class LineItem:
    """주문 품목 (표시 전용, 잔액 계산에 사용하지 않음)"""

    product_id: str
    product_name: str
    quantity: int
    price: int
    category: str

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        return cls(
            product_id=str(data["product_id"]),
            product_name=str(data["product_name"]),
            quantity=int(data["quantity"]),
            price=int(data["price"]),
            category=str(data["category"]),
        )


def items_to_json(items: list[LineItem]) -> str:
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


def items_from_json(raw: str | None) -> list[LineItem]:
    if not raw:
        return []
    return [LineItem.from_dict(d) for d in json.loads(raw)]


@dataclass
class Customer:
    """고객

    outstanding_balance는 엔진만 갱신하는 파생 캐시.
    """

    customer_id: str
    name: str
    outstanding_balance: int
    created_at: datetime
    phone: str | None = None
    email: str | None = None
    address: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Customer":
        """DB 행에서 생성"""
        return cls(
            customer_id=row["customer_id"],
            name=row["name"],
            outstanding_balance=int(row["outstanding_balance"]),
            created_at=parse_iso(row["created_at"]),
            phone=row.get("phone"),
            email=row.get("email"),
            address=row.get("address"),
        )


@dataclass
class Debt:
    """외상 (차변)

    amount, created_at은 불변. paid_amount와 category만 변경됨.
    status는 paid_amount로부터 파생.
    """

    debt_id: str
    customer_id: str
    amount: int
    paid_amount: int
    category: str
    category_key: str
    created_at: datetime
    order_id: str | None = None
    items: list[LineItem] = field(default_factory=list)
    notes: str | None = None

    entry_type = EntryType.DEBT

    @property
    def status(self) -> DebtStatus:
        return DebtStatus.derive(self.amount, self.paid_amount)

    @property
    def remaining(self) -> int:
        """미상환 잔액"""
        return self.amount - self.paid_amount

    @property
    def is_open(self) -> bool:
        return self.paid_amount < self.amount

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Debt":
        """DB 행에서 생성"""
        return cls(
            debt_id=row["debt_id"],
            customer_id=row["customer_id"],
            amount=int(row["amount"]),
            paid_amount=int(row["paid_amount"]),
            category=row["category"],
            category_key=row["category_key"],
            created_at=parse_iso(row["created_at"]),
            order_id=row.get("order_id"),
            items=items_from_json(row.get("items_json")),
            notes=row.get("notes"),
        )


@dataclass
class Repayment:
    """상환 (대변)

    amount, timestamp는 불변. category만 변경됨.
    """

    repayment_id: str
    customer_id: str
    amount: int
    category: str
    category_key: str
    timestamp: datetime
    method: PaymentMethod = PaymentMethod.CASH
    source: RepaymentSource = RepaymentSource.ALLOCATION

    entry_type = EntryType.REPAYMENT

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Repayment":
        """DB 행에서 생성"""
        return cls(
            repayment_id=row["repayment_id"],
            customer_id=row["customer_id"],
            amount=int(row["amount"]),
            category=row["category"],
            category_key=row["category_key"],
            timestamp=parse_iso(row["ts"]),
            method=PaymentMethod(row["method"]),
            source=RepaymentSource(row["source"]),
        )


@dataclass(frozen=True)
class Allocation:
    """상환 배분 내역 한 건 (상환 → 외상)"""

    debt_id: str
    amount: int
    repayment_id: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Allocation":
        return cls(
            debt_id=row["debt_id"],
            amount=int(row["amount"]),
            repayment_id=row["repayment_id"],
        )
