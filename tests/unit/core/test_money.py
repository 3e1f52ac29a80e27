"""
core/money.py 테스트

minor unit 변환과 표시 포맷 검증
"""

from decimal import Decimal

import pytest

from core.errors import InvalidAmount
from core.money import format_money, from_minor, to_minor


class TestToMinor:
    """to_minor 테스트"""

    def test_decimal(self) -> None:
        assert to_minor(Decimal("150.50")) == 15050

    def test_string(self) -> None:
        assert to_minor("0.01") == 1

    def test_integer_major_unit(self) -> None:
        """정수는 major unit으로 해석"""
        assert to_minor(120) == 12000

    def test_trailing_zeros(self) -> None:
        assert to_minor("12.300") == 1230

    def test_too_many_decimal_places(self) -> None:
        """센타보 이하 자릿수 거부"""
        with pytest.raises(InvalidAmount, match="decimal places"):
            to_minor("1.005")

    def test_float_rejected(self) -> None:
        with pytest.raises(InvalidAmount, match="float"):
            to_minor(1.5)  # type: ignore[arg-type]

    def test_not_a_number(self) -> None:
        with pytest.raises(InvalidAmount):
            to_minor("abc")

    def test_infinite(self) -> None:
        with pytest.raises(InvalidAmount):
            to_minor(Decimal("Infinity"))

    def test_negative_passes_through(self) -> None:
        """부호 검증은 서비스 계층 책임"""
        assert to_minor("-5.00") == -500


class TestFromMinor:
    """from_minor 테스트"""

    def test_two_decimal_places(self) -> None:
        assert from_minor(15050) == Decimal("150.50")
        assert str(from_minor(15050)) == "150.50"

    def test_zero(self) -> None:
        assert str(from_minor(0)) == "0.00"


class TestFormatMoney:
    """format_money 테스트"""

    def test_thousands_separator(self) -> None:
        assert format_money(123450) == "₱1,234.50"

    def test_negative(self) -> None:
        assert format_money(-500) == "-₱5.00"
