"""
카테고리별 외상 원장 시스템

고객별 외상(차변)과 상환(대변)을 카테고리 단위로 기록하고,
상환은 카테고리 내 가장 오래된 외상부터(FIFO) 배분.

사용 예시:
```python
from core.ledger import LedgerService, LedgerStore, init_ledger_schema

await init_ledger_schema(db)
service = LedgerService(LedgerStore(db))

customer = await service.create_customer("Maria")
await service.create_debt(customer.customer_id, 10000, "Rice")
result = await service.apply_repayment(customer.customer_id, "Rice", 4000)

# 잔액 조회
balance = await service.live_balance(customer.customer_id)
statement = await service.as_of_balance(customer.customer_id, date(2026, 3, 1))
```
"""

from core.ledger.allocation import (
    AllocationPlan,
    AllocationResult,
    plan_fifo_allocation,
    plan_lifo_reversal,
)
from core.ledger.balance import (
    BalanceReconstructor,
    CategoryBalance,
    CategoryStatement,
    LedgerSummary,
    Statement,
    StatementLine,
)
from core.ledger.events import LedgerEvent, NotificationDispatcher
from core.ledger.locks import CustomerLocks
from core.ledger.models import Allocation, Customer, Debt, LineItem, Repayment
from core.ledger.schema import init_ledger_schema
from core.ledger.service import (
    CashSaleResult,
    CategoryReassignment,
    LedgerService,
    ReassignmentResult,
    RepaymentReversal,
)
from core.ledger.store import BalanceTotals, LedgerStore

__all__ = [
    # 핵심 클래스
    "LedgerService",
    "LedgerStore",
    "BalanceReconstructor",
    "CustomerLocks",
    "NotificationDispatcher",
    "init_ledger_schema",
    # 모델
    "Customer",
    "Debt",
    "Repayment",
    "Allocation",
    "LineItem",
    "LedgerEvent",
    # 결과 타입
    "AllocationPlan",
    "AllocationResult",
    "RepaymentReversal",
    "CashSaleResult",
    "CategoryReassignment",
    "ReassignmentResult",
    "Statement",
    "StatementLine",
    "CategoryStatement",
    "CategoryBalance",
    "LedgerSummary",
    "BalanceTotals",
    # 함수
    "plan_fifo_allocation",
    "plan_lifo_reversal",
]
