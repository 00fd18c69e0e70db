"""
Money helpers - amounts are integers in minor currency units
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Tuple, Union

Rate = Union[Decimal, str, int]


def to_decimal(value: Rate) -> Decimal:
    """Convert a rate or percentage to Decimal without float artifacts"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def compute_fee(amount: int, rate: Rate) -> Tuple[int, int]:
    """
    Split a gross amount into (fee, net).

    fee = floor(amount * rate), net = amount - fee.
    10000 at 0.01 -> (100, 9900); 999 at 0.01 -> (9, 990).
    """
    fee = int((Decimal(amount) * to_decimal(rate)).to_integral_value(rounding=ROUND_FLOOR))
    return fee, amount - fee
