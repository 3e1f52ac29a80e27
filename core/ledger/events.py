"""
원장 이벤트 알림

변경이 커밋된 뒤 LedgerEvent를 INotifier로 전달.
전달은 fire-and-forget: 백그라운드 Task로 예약하고, 실패는 로그만 남김.
알림 실패가 원장 변경을 되돌리거나 호출자에게 전파되지 않음.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from core.money import format_money
from core.types import LedgerEventKind
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.interfaces import INotifier
    from core.config.loader import NotificationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    """원장 변경 알림 이벤트

    Attributes:
        customer_id: 고객 ID
        kind: DEBT / REPAYMENT / DELETION
        amount: 금액 (minor unit)
        category: 카테고리 라벨
        customer_name: 고객 이름 (알림 표시용)
    """

    customer_id: str
    kind: LedgerEventKind
    amount: int
    category: str
    customer_name: str | None = None
    created_at: datetime = field(default_factory=now_utc)

    @classmethod
    def create(
        cls,
        customer_id: str,
        kind: LedgerEventKind,
        amount: int,
        category: str,
        customer_name: str | None = None,
    ) -> "LedgerEvent":
        """이벤트 생성 팩토리"""
        return cls(
            customer_id=customer_id,
            kind=kind,
            amount=amount,
            category=category,
            customer_name=customer_name,
        )


class NotificationDispatcher:
    """원장 이벤트 알림 디스패처

    Args:
        notifier: INotifier 구현체 (None이면 알림 비활성화)
        config: 종류별 on/off 설정 (None이면 모두 활성)
    """

    def __init__(
        self,
        notifier: INotifier | None = None,
        config: NotificationConfig | None = None,
    ):
        self.notifier = notifier
        self.config = config
        self._pending: set[asyncio.Task[None]] = set()

    def is_enabled(self, kind: LedgerEventKind) -> bool:
        if self.notifier is None:
            return False
        if self.config is None:
            return True
        if kind == LedgerEventKind.DEBT:
            return self.config.on_debt
        if kind == LedgerEventKind.REPAYMENT:
            return self.config.on_payment
        return self.config.on_deletion

    def dispatch(self, event: LedgerEvent) -> bool:
        """이벤트 전달 예약 (즉시 반환)

        Returns:
            예약 여부 (비활성화된 종류면 False)
        """
        if not self.is_enabled(event.kind):
            return False

        task = asyncio.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _deliver(self, event: LedgerEvent) -> None:
        if self.notifier is None:
            return
        try:
            sent = await self.notifier.send_ledger_event(
                customer_id=event.customer_id,
                kind=event.kind.value,
                amount=format_money(event.amount),
                category=event.category,
                customer_name=event.customer_name,
            )
        except Exception as e:
            logger.warning(
                f"원장 알림 전송 예외: {e}",
                extra={"customer_id": event.customer_id, "kind": event.kind.value},
            )
            return

        if not sent:
            logger.warning(
                "원장 알림 전송 실패",
                extra={"customer_id": event.customer_id, "kind": event.kind.value},
            )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """예약된 알림이 모두 끝날 때까지 대기 (종료/테스트용)"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
