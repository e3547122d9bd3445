"""
금액 계산 헬퍼

모든 금액은 Decimal로 다루며, 소수점 둘째 자리에서 반올림(ROUND_HALF_UP)합니다.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """float 오차를 피하기 위해 문자열을 거쳐 Decimal로 변환"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    """소수점 2자리 반올림 (half-up)"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_paise(amount: Number) -> int:
    """루피 금액을 게이트웨이 최소 단위(paise)로 변환"""
    return int((round_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_paise(paise: int) -> Decimal:
    """게이트웨이 최소 단위(paise)를 루피 금액으로 변환"""
    return round_money(Decimal(paise) / 100)
