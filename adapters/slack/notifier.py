"""
Slack 알림 서비스

Slack Webhook을 통해 알림을 전송.
INotifier Protocol 준수.
"""

import logging
from typing import Any

import httpx

from core.utils.timezone import format_local, now_utc

logger = logging.getLogger(__name__)


# 레벨별 이모지 매핑
LEVEL_EMOJI = {
    "INFO": ":white_check_mark:",
    "WARNING": ":warning:",
    "ERROR": ":x:",
    "CRITICAL": ":rotating_light:",
}

# 레벨별 색상 매핑 (Slack attachment color)
LEVEL_COLOR = {
    "INFO": "#36A64F",      # 녹색
    "WARNING": "#FFA500",   # 주황색
    "ERROR": "#FF0000",     # 빨간색
    "CRITICAL": "#8B0000",  # 진한 빨간색
}

# 원장 이벤트별 제목/색상
EVENT_STYLE = {
    "DEBT": (":receipt:", "새 외상 기록", "#FF6B6B"),
    "REPAYMENT": (":moneybag:", "상환 접수", "#36A64F"),
    "DELETION": (":wastebasket:", "원장 항목 삭제", "#808080"),
}


def _field(title: str, value: Any) -> dict[str, Any]:
    return {"title": title, "value": str(value), "short": True}


class SlackNotifier:
    """Slack 알림 서비스

    INotifier Protocol 구현.
    Slack Webhook URL을 통해 메시지 전송.

    사용 예시:
    ```python
    notifier = SlackNotifier(webhook_url="https://hooks.slack.com/...")

    await notifier.send("재보정 완료", level="INFO")
    await notifier.send_ledger_event(
        customer_id="c-1",
        kind="REPAYMENT",
        amount="₱120.00",
        category="Rice",
    )
    ```
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "LedgerConnect",
        timeout: float = 10.0,
    ):
        """
        Args:
            webhook_url: Slack Incoming Webhook URL
            channel: 채널 오버라이드 (기본값은 Webhook 설정 사용)
            username: 메시지 발송자 이름
            timeout: HTTP 요청 타임아웃 (초)
        """
        if not webhook_url:
            raise ValueError("webhook_url은 필수입니다")

        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout

        # httpx 비동기 클라이언트 (재사용)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 반환 (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

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
            extra: 추가 데이터 (attachment fields로 표시)

        Returns:
            전송 성공 여부
        """
        emoji = LEVEL_EMOJI.get(level, ":bell:")
        attachment: dict[str, Any] = {
            "color": LEVEL_COLOR.get(level, "#808080"),
            "text": f"{emoji} *[{level}]* {message}",
        }
        if extra:
            attachment["fields"] = [_field(key, value) for key, value in extra.items()]

        return await self._send_payload(self._build_payload(attachment, fallback=message))

    async def send_ledger_event(
        self,
        customer_id: str,
        kind: str,
        amount: str,
        category: str,
        customer_name: str | None = None,
    ) -> bool:
        """원장 이벤트 알림 전송

        Args:
            customer_id: 고객 ID
            kind: DEBT / REPAYMENT / DELETION
            amount: 표시용 금액
            category: 카테고리 라벨
            customer_name: 고객 이름 (선택)

        Returns:
            전송 성공 여부
        """
        emoji, title, color = EVENT_STYLE.get(kind, (":bell:", kind, "#808080"))

        who = customer_name or customer_id
        attachment = {
            "color": color,
            "title": f"{emoji} {title}",
            "fields": [
                _field("고객", who),
                _field("금액", amount),
                _field("카테고리", category),
            ],
        }

        # 모바일 푸시 미리보기용 한 줄 요약
        fallback = f"{title}: {who} {amount} [{category}]"
        return await self._send_payload(self._build_payload(attachment, fallback=fallback))

    def _build_payload(self, attachment: dict[str, Any], fallback: str) -> dict[str, Any]:
        """공통 payload (발송자, 채널, 푸터)"""
        attachment = {
            **attachment,
            "fallback": fallback,
            "footer": f"LedgerConnect | {self._format_timestamp()}",
        }
        payload: dict[str, Any] = {"username": self.username, "attachments": [attachment]}
        if self.channel:
            payload["channel"] = self.channel
        return payload

    async def _send_payload(self, payload: dict[str, Any]) -> bool:
        """Slack Webhook으로 페이로드 전송

        Args:
            payload: Slack 메시지 페이로드

        Returns:
            전송 성공 여부
        """
        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)

            if response.status_code == 200:
                logger.debug("Slack 알림 전송 성공")
                return True
            else:
                logger.warning(
                    "Slack 알림 전송 실패: status=%s, body=%s",
                    response.status_code,
                    response.text,
                )
                return False

        except httpx.TimeoutException:
            logger.error("Slack 알림 전송 타임아웃")
            return False
        except httpx.HTTPError as e:
            logger.error("Slack 알림 전송 HTTP 에러: %s", e)
            return False

    def _format_timestamp(self) -> str:
        """현재 시간을 PHT로 포맷"""
        return format_local(now_utc(), "%Y-%m-%d %H:%M:%S PHT")

    # -------------------------------------------------------------------------
    # Context Manager 지원
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SlackNotifier":
        """async with 진입"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """async with 종료 시 클라이언트 정리"""
        await self.close()
