"""
원장 예외 정의

모든 원장 관련 예외는 LedgerError를 상속.
- ValidationError / NotFound: 저장소 변경 전에 거부 (복구 가능)
- StoreFailure: 영속 저장소 쓰기 실패
- AuditFailure: 재보정 작업 중단 (부분 진행 결과 포함)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from jobs.reconciler.recalibrator import RecalibrationReport


class LedgerError(Exception):
    """원장 예외 베이스"""

    pass


class ValidationError(LedgerError):
    """입력 검증 실패 (음수 금액, 필수 필드 누락 등)"""

    pass


class InvalidAmount(ValidationError):
    """금액이 허용 범위를 벗어남"""

    pass


class OverpaymentError(ValidationError):
    """초과 상환 거부 (overpayment_policy=reject)

    Attributes:
        requested: 요청 금액 (minor unit)
        open_amount: 해당 카테고리 미결 금액 (minor unit)
    """

    def __init__(self, requested: int, open_amount: int):
        self.requested = requested
        self.open_amount = open_amount
        super().__init__(
            f"Repayment {requested} exceeds open amount {open_amount}"
        )


class NotFound(LedgerError):
    """고객/외상/상환 ID가 존재하지 않음"""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class DebtHasPayments(LedgerError):
    """상환이 적용된 외상은 삭제 불가

    상환 기록을 먼저 삭제해야 함.
    """

    def __init__(self, debt_id: str, paid_amount: int):
        self.debt_id = debt_id
        self.paid_amount = paid_amount
        super().__init__(
            f"Debt {debt_id} has {paid_amount} applied; delete its repayments first"
        )


class StoreFailure(LedgerError):
    """영속 저장소 실패

    Attributes:
        ledger_committed: 원장 쓰기는 커밋되었고 잔액 재계산만 실패한 경우 True.
            이 경우 재보정 작업으로 복구 가능.
    """

    def __init__(self, message: str, ledger_committed: bool = False):
        self.ledger_committed = ledger_committed
        super().__init__(message)


class AuditFailure(LedgerError):
    """재보정 작업 실패

    이미 보정된 고객은 유지되며, 다시 실행해도 안전함.

    Attributes:
        report: 실패 시점까지의 부분 결과
    """

    def __init__(self, message: str, report: "RecalibrationReport | Any"):
        self.report = report
        super().__init__(message)
