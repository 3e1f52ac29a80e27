"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class RunMode(str, Enum):
    """실행 모드 (실운영 / 샌드박스)"""

    PRODUCTION = "production"
    SANDBOX = "sandbox"


class DebtStatus(str, Enum):
    """외상(Debt) 상태

    paid_amount로부터 파생되며 직접 설정하지 않음.
    """

    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"

    @classmethod
    def derive(cls, amount: int, paid_amount: int) -> "DebtStatus":
        """금액과 상환액으로 상태 계산 (minor unit)"""
        if paid_amount <= 0:
            return cls.UNPAID
        if paid_amount >= amount:
            return cls.PAID
        return cls.PARTIAL


class EntryType(str, Enum):
    """원장 항목 종류"""

    DEBT = "DEBT"
    REPAYMENT = "REPAYMENT"


class PaymentMethod(str, Enum):
    """상환 수단"""

    CASH = "CASH"
    ONLINE = "ONLINE"


class RepaymentSource(str, Enum):
    """상환 기록 출처

    ALLOCATION: 카테고리 상환 (FIFO 배분)
    POS_CASH: POS 현금 판매 (같은 거래의 완납 외상에 배분)
    """

    ALLOCATION = "ALLOCATION"
    POS_CASH = "POS_CASH"


class LedgerEventKind(str, Enum):
    """알림 이벤트 종류"""

    DEBT = "DEBT"
    REPAYMENT = "REPAYMENT"
    DELETION = "DELETION"


class OverpaymentPolicy(str, Enum):
    """초과 상환 처리 정책

    FLAG: 미결 금액만큼만 기록하고 초과분을 결과에 표시
    REJECT: 초과 상환 요청 자체를 거부
    """

    FLAG = "flag"
    REJECT = "reject"
