"""
금액 유틸리티

내부 계산: 정수 minor unit (centavo) | 외부 입출력: Decimal
부동소수점 누적 오차를 막기 위해 엔진 내부에서는 float를 사용하지 않음.
"""

from decimal import Decimal, InvalidOperation

from core.constants import Defaults
from core.errors import InvalidAmount

MINOR_FACTOR = 10 ** Defaults.MINOR_UNIT_DIGITS
_QUANT = Decimal(1).scaleb(-Defaults.MINOR_UNIT_DIGITS)  # Decimal("0.01")


def to_minor(value: Decimal | str | int) -> int:
    """금액을 minor unit 정수로 변환

    Args:
        value: Decimal, 문자열 또는 정수 (major unit 기준)

    Returns:
        minor unit 정수 (예: Decimal("12.34") → 1234)

    Raises:
        InvalidAmount: 숫자가 아니거나 소수점 이하 자릿수가 초과된 경우

    Example:
        >>> to_minor("150.50")
        15050
    """
    if isinstance(value, float):
        raise InvalidAmount("float amounts are not accepted; use Decimal or str")

    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation as e:
        raise InvalidAmount(f"Not a number: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmount(f"Not a finite amount: {value!r}")

    if amount != amount.quantize(_QUANT):
        raise InvalidAmount(
            f"Too many decimal places (max {Defaults.MINOR_UNIT_DIGITS}): {value}"
        )

    return int(amount * MINOR_FACTOR)


def from_minor(minor: int) -> Decimal:
    """minor unit 정수를 Decimal로 변환

    Example:
        >>> from_minor(15050)
        Decimal('150.50')
    """
    return (Decimal(minor) / MINOR_FACTOR).quantize(_QUANT)


def format_money(minor: int) -> str:
    """표시용 금액 문자열

    Example:
        >>> format_money(123450)
        '₱1,234.50'
    """
    sign = "-" if minor < 0 else ""
    return f"{sign}{Defaults.CURRENCY_SYMBOL}{abs(from_minor(minor)):,.2f}"
