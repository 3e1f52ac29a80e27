"""
타임존 유틸리티

내부 저장: UTC | 외부 표시 및 날짜 구분: 로컬 시간(PHT) 원칙 준수를 위한 헬퍼 함수
"""

from datetime import date, datetime, timedelta, timezone, tzinfo

from core.constants import Defaults

# PHT 타임존 (UTC+8)
PHT = timezone(timedelta(hours=Defaults.TIMEZONE_OFFSET_HOURS), "PHT")


def make_tz(offset_hours: int) -> timezone:
    """UTC 오프셋(시간)으로 고정 타임존 생성"""
    if offset_hours == Defaults.TIMEZONE_OFFSET_HOURS:
        return PHT
    return timezone(timedelta(hours=offset_hours))


def ensure_utc(dt: datetime) -> datetime:
    """datetime을 UTC로 정규화 (naive면 UTC로 간주)"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz: tzinfo = PHT) -> datetime:
    """UTC datetime을 로컬 시간으로 변환

    Args:
        dt: datetime 객체 (UTC 권장, naive면 UTC로 간주)
        tz: 대상 타임존 (기본: PHT)

    Example:
        >>> utc_dt = datetime(2026, 2, 20, 16, 30, 0, tzinfo=timezone.utc)
        >>> to_local(utc_dt).day
        21  # 다음날 00:30
    """
    return ensure_utc(dt).astimezone(tz)


def local_date(dt: datetime, tz: tzinfo = PHT) -> date:
    """로컬 달력 날짜 반환 (명세서의 일자 구분 기준)"""
    return to_local(dt, tz).date()


def format_local(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S", tz: tzinfo = PHT) -> str:
    """UTC datetime을 로컬 시간 문자열로 포맷"""
    return to_local(dt, tz).strftime(fmt)


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.
    """
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """DB 저장용 UTC ISO 문자열 (마이크로초 고정, 사전순 = 시간순)"""
    return ensure_utc(dt).isoformat(timespec="microseconds")


def parse_iso(value: str) -> datetime:
    """DB에 저장된 ISO 문자열을 UTC datetime으로 변환"""
    return ensure_utc(datetime.fromisoformat(value))
