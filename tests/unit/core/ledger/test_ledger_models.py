"""원장 데이터 모델 테스트"""

from datetime import datetime, timezone

from core.ledger.models import (
    Allocation,
    Customer,
    Debt,
    LineItem,
    Repayment,
    items_from_json,
    items_to_json,
)
from core.types import DebtStatus, EntryType, PaymentMethod, RepaymentSource


class TestLineItem:
    def test_subtotal(self) -> None:
        item = LineItem("p1", "Rice 5kg", 3, 25000, "Rice")
        assert item.subtotal == 75000

    def test_json_round_trip_keeps_unicode(self) -> None:
        items = [LineItem("p1", "Ñora", 1, 100, "Spices")]

        raw = items_to_json(items)

        assert "Ñora" in raw
        assert items_from_json(raw) == items

    def test_empty_json(self) -> None:
        assert items_from_json(None) == []
        assert items_from_json("") == []


class TestDebt:
    def _debt(self, paid: int) -> Debt:
        return Debt(
            debt_id="d1",
            customer_id="c1",
            amount=10000,
            paid_amount=paid,
            category="Rice",
            category_key="rice",
            created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        )

    def test_derived_fields(self) -> None:
        debt = self._debt(4000)

        assert debt.status == DebtStatus.PARTIAL
        assert debt.remaining == 6000
        assert debt.is_open is True
        assert debt.entry_type == EntryType.DEBT

    def test_paid(self) -> None:
        debt = self._debt(10000)

        assert debt.status == DebtStatus.PAID
        assert debt.is_open is False

    def test_from_row(self) -> None:
        row = {
            "debt_id": "d1",
            "customer_id": "c1",
            "amount": 500,
            "paid_amount": 0,
            "category": "Rice",
            "category_key": "rice",
            "created_at": "2026-03-01T00:00:00.000000+00:00",
            "order_id": "o1",
            "items_json": '[{"product_id": "p1", "product_name": "Rice", "quantity": 1, "price": 500, "category": "Rice"}]',
            "notes": None,
        }

        debt = Debt.from_row(row)

        assert debt.created_at == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert debt.items[0].product_id == "p1"
        assert debt.order_id == "o1"


class TestRepayment:
    def test_from_row(self) -> None:
        row = {
            "repayment_id": "r1",
            "customer_id": "c1",
            "amount": 300,
            "category": "POS Cash Sale",
            "category_key": "pos cash sale",
            "ts": "2026-03-01T01:00:00.000000+00:00",
            "method": "ONLINE",
            "source": "POS_CASH",
        }

        repayment = Repayment.from_row(row)

        assert repayment.method == PaymentMethod.ONLINE
        assert repayment.source == RepaymentSource.POS_CASH
        assert repayment.entry_type == EntryType.REPAYMENT


class TestCustomer:
    def test_optional_contact_fields(self) -> None:
        customer = Customer.from_row(
            {
                "customer_id": "c1",
                "name": "Maria",
                "outstanding_balance": 0,
                "created_at": "2026-03-01T00:00:00.000000+00:00",
            }
        )

        assert customer.phone is None
        assert customer.address is None


class TestAllocation:
    def test_frozen_equality(self) -> None:
        assert Allocation("d1", 100) == Allocation(debt_id="d1", amount=100, repayment_id=None)
