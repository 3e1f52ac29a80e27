"""
Mock 알림 서비스

테스트용 Mock Notifier.
INotifier Protocol 준수.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass
class NotificationRecord:
    """알림 기록"""

    message: str
    level: str
    extra: dict[str, Any] | None
    timestamp: datetime
    sent: bool


class MockNotifier:
    """Mock 알림 서비스

    INotifier Protocol 구현.
    발송된 모든 알림을 기록하여 테스트에서 검증 가능.

    사용 예시:
    ```python
    notifier = MockNotifier()

    await notifier.send_ledger_event("c-1", "DEBT", "₱100.00", "Rice")

    # 발송 기록 확인
    assert notifier.message_count == 1
    assert notifier.last_notification.extra["kind"] == "DEBT"
    ```
    """

    def __init__(self, should_fail: bool = False, should_raise: bool = False):
        """
        Args:
            should_fail: True면 모든 발송 실패 (False 반환)
            should_raise: True면 발송 시 예외 발생 (장애 격리 테스트용)
        """
        self.should_fail = should_fail
        self.should_raise = should_raise
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송"""
        if self.should_raise:
            raise ConnectionError("mock notifier unavailable")

        record = NotificationRecord(
            message=message,
            level=level,
            extra=extra,
            timestamp=datetime.now(timezone.utc),
            sent=not self.should_fail,
        )

        self.notifications.append(record)

        return not self.should_fail

    async def send_ledger_event(
        self,
        customer_id: str,
        kind: str,
        amount: str,
        category: str,
        customer_name: str | None = None,
    ) -> bool:
        """원장 이벤트 알림 전송"""
        message = f"[{kind}] {customer_name or customer_id} {amount} ({category})"

        return await self.send(
            message=message,
            level="INFO",
            extra={
                "customer_id": customer_id,
                "kind": kind,
                "amount": amount,
                "category": category,
            },
        )

    # -------------------------------------------------------------------------
    # 테스트 헬퍼 메서드
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """알림 기록 초기화"""
        self.notifications.clear()

    def get_by_kind(self, kind: str) -> list[NotificationRecord]:
        """특정 원장 이벤트 종류의 알림 조회"""
        return [
            n for n in self.notifications
            if n.extra is not None and n.extra.get("kind") == kind
        ]

    @property
    def last_notification(self) -> NotificationRecord | None:
        """마지막 알림 조회"""
        return self.notifications[-1] if self.notifications else None

    @property
    def message_count(self) -> int:
        """전체 알림 수"""
        return len(self.notifications)

    @property
    def sent_count(self) -> int:
        """성공적으로 발송된 알림 수"""
        return sum(1 for n in self.notifications if n.sent)
