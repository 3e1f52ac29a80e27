"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class INotifier(Protocol):
    """알림 서비스 인터페이스

    외상/상환/삭제 알림, 재보정 결과 등을 외부 서비스로 전송.
    전송 실패는 반환값(False)으로만 알리며 원장 변경을 되돌리지 않음.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        Args:
            message: 알림 메시지
            level: 알림 레벨 (INFO, WARNING, ERROR, CRITICAL)
            extra: 추가 데이터 (선택)

        Returns:
            전송 성공 여부
        """
        ...

    async def send_ledger_event(
        self,
        customer_id: str,
        kind: str,
        amount: str,
        category: str,
        customer_name: str | None = None,
    ) -> bool:
        """원장 이벤트 알림 전송 (포맷팅된 메시지)

        Args:
            customer_id: 고객 ID
            kind: 이벤트 종류 (DEBT, REPAYMENT, DELETION)
            amount: 표시용 금액 문자열 (예: "₱150.00")
            category: 카테고리 라벨
            customer_name: 고객 이름 (선택)

        Returns:
            전송 성공 여부
        """
        ...
