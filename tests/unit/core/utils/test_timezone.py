"""
core/utils/timezone.py 테스트

UTC 저장 / PHT 날짜 구분 헬퍼 검증
"""

from datetime import date, datetime, timedelta, timezone

from core.utils.timezone import (
    PHT,
    ensure_utc,
    format_local,
    local_date,
    make_tz,
    parse_iso,
    to_iso,
    to_local,
)


class TestLocalConversion:
    """로컬 시간 변환"""

    def test_to_local_crosses_midnight(self) -> None:
        """UTC 16:30은 PHT 다음날 00:30"""
        utc_dt = datetime(2026, 2, 20, 16, 30, tzinfo=timezone.utc)

        local = to_local(utc_dt)

        assert local.day == 21
        assert local.hour == 0
        assert local.utcoffset() == timedelta(hours=8)

    def test_local_date(self) -> None:
        assert local_date(datetime(2026, 2, 20, 15, 59, tzinfo=timezone.utc)) == date(2026, 2, 20)
        assert local_date(datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc)) == date(2026, 2, 21)

    def test_naive_treated_as_utc(self) -> None:
        naive = datetime(2026, 1, 1, 0, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc

    def test_format_local(self) -> None:
        utc_dt = datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert format_local(utc_dt, "%H:%M") == "08:00"


class TestMakeTz:
    def test_default_offset_returns_pht(self) -> None:
        assert make_tz(8) is PHT

    def test_other_offset(self) -> None:
        tz = make_tz(-5)
        assert datetime(2026, 1, 1, tzinfo=tz).utcoffset() == timedelta(hours=-5)


class TestIso:
    """DB 저장용 ISO 문자열"""

    def test_fixed_microseconds(self) -> None:
        """마이크로초가 0이어도 자릿수 고정"""
        value = to_iso(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        assert value == "2026-01-01T12:00:00.000000+00:00"

    def test_lexicographic_order_matches_time_order(self) -> None:
        earlier = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(microseconds=1)
        assert to_iso(earlier) < to_iso(later)

    def test_local_input_normalized(self) -> None:
        local = datetime(2026, 1, 1, 8, 0, tzinfo=PHT)
        assert to_iso(local) == "2026-01-01T00:00:00.000000+00:00"

    def test_parse(self) -> None:
        dt = datetime(2026, 3, 5, 1, 2, 3, 456789, tzinfo=timezone.utc)
        assert parse_iso(to_iso(dt)) == dt
