"""
설정 로더

settings.yaml 로드 및 원장/알림 설정 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths
from core.types import OverpaymentPolicy, RunMode


@dataclass(frozen=True)
class LedgerConfig:
    """원장 엔진 설정

    Attributes:
        overpayment_policy: 미결 금액 초과 상환 처리 방식 (flag / reject)
        recalc_max_attempts: 잔액 재계산 최대 시도 횟수
        recalc_retry_delay_sec: 재계산 재시도 간격 (초)
        timezone_offset_hours: 일자 구분 기준 타임존 (UTC 오프셋)
    """

    overpayment_policy: OverpaymentPolicy = OverpaymentPolicy(Defaults.OVERPAYMENT_POLICY)
    recalc_max_attempts: int = Defaults.RECALC_MAX_ATTEMPTS
    recalc_retry_delay_sec: float = Defaults.RECALC_RETRY_DELAY_SEC
    timezone_offset_hours: int = Defaults.TIMEZONE_OFFSET_HOURS


@dataclass(frozen=True)
class NotificationConfig:
    """알림 설정

    webhook URL이 비어 있으면 알림 비활성화.
    """

    slack_webhook_url: str = ""
    on_debt: bool = True
    on_payment: bool = True
    on_deletion: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.slack_webhook_url)


@dataclass(frozen=True)
class AppConfig:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    mode: RunMode = RunMode.SANDBOX
    database: Path | None = None
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)


class SettingsLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """하위 섹션 추출 (없으면 빈 dict)"""
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml의 '{name}' 섹션은 매핑이어야 합니다")
    return value


def _parse_ledger(raw: dict[str, Any]) -> LedgerConfig:
    policy_str = raw.get("overpayment_policy", Defaults.OVERPAYMENT_POLICY)
    try:
        policy = OverpaymentPolicy(policy_str)
    except ValueError as e:
        valid = [p.value for p in OverpaymentPolicy]
        raise SettingsLoadError(
            f"유효하지 않은 overpayment_policy입니다: '{policy_str}'. 유효한 값: {valid}"
        ) from e

    try:
        max_attempts = int(raw.get("recalc_max_attempts", Defaults.RECALC_MAX_ATTEMPTS))
        retry_delay = float(raw.get("recalc_retry_delay_sec", Defaults.RECALC_RETRY_DELAY_SEC))
        tz_offset = int(raw.get("timezone_offset_hours", Defaults.TIMEZONE_OFFSET_HOURS))
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"ledger 섹션 값 형식 오류: {e}") from e

    if max_attempts < 1:
        raise SettingsLoadError("recalc_max_attempts는 1 이상이어야 합니다")
    if retry_delay < 0:
        raise SettingsLoadError("recalc_retry_delay_sec는 0 이상이어야 합니다")
    if not -12 <= tz_offset <= 14:
        raise SettingsLoadError(f"timezone_offset_hours 범위 초과: {tz_offset}")

    return LedgerConfig(
        overpayment_policy=policy,
        recalc_max_attempts=max_attempts,
        recalc_retry_delay_sec=retry_delay,
        timezone_offset_hours=tz_offset,
    )


def _parse_notifications(raw: dict[str, Any]) -> NotificationConfig:
    return NotificationConfig(
        slack_webhook_url=str(raw.get("slack_webhook_url") or ""),
        on_debt=bool(raw.get("on_debt", True)),
        on_payment=bool(raw.get("on_payment", True)),
        on_deletion=bool(raw.get("on_deletion", True)),
    )


def load_settings(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    파일이 없으면 기본값(sandbox 모드)으로 동작.

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 형식이 잘못되었거나 값이 유효하지 않은 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        return AppConfig()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return AppConfig()
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    # mode 검증
    mode_str = data.get("mode", RunMode.SANDBOX.value)
    try:
        mode = RunMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in RunMode]
        raise SettingsLoadError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    database = data.get("database")

    return AppConfig(
        mode=mode,
        database=Path(database) if database else None,
        ledger=_parse_ledger(_section(data, "ledger")),
        notifications=_parse_notifications(_section(data, "notifications")),
    )


def get_db_path(config: AppConfig) -> Path:
    """모드에 따른 DB 경로 반환

    database가 명시되어 있으면 그 경로를 우선 사용.

    Args:
        config: AppConfig 인스턴스

    Returns:
        DB 파일 경로 (Path 타입)
    """
    if config.database is not None:
        return config.database
    if config.mode == RunMode.PRODUCTION:
        return Paths.PROD_DB
    return Paths.SANDBOX_DB


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_settings(settings_path)

    @property
    def config(self) -> AppConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def mode(self) -> RunMode:
        """현재 실행 모드"""
        return self.config.mode

    @property
    def ledger(self) -> LedgerConfig:
        """원장 엔진 설정"""
        return self.config.ledger

    @property
    def notifications(self) -> NotificationConfig:
        """알림 설정"""
        return self.config.notifications

    @property
    def db_path(self) -> Path:
        """현재 모드의 DB 경로"""
        return get_db_path(self.config)

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
