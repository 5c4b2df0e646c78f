from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from signal_edge.schemas.common import AMOUNT_SCALE, Currency
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import BadRequestException
from signal_edge.utils.validation import to_decimal


def safe_number(value: Any) -> Decimal:
    """Parse a finite number or raise BadRequestException."""
    try:
        return to_decimal(value)
    except ValueError:
        raise BadRequestException("Invalid number", code=ErrorCode.INVALID_INPUT)


def quantize(value: Decimal, currency: Currency) -> Decimal:
    exp = Decimal(1).scaleb(-AMOUNT_SCALE[currency])
    return value.quantize(exp, rounding=ROUND_HALF_UP)


def calc_withdrawal_fee(amount: Any, pct: Any, currency: Currency | str) -> Decimal:
    """Percentage fee on a withdrawal, rounded to the currency's precision."""
    cur = Currency(currency)
    fee = safe_number(amount) * safe_number(pct) / Decimal(100)
    return quantize(fee, cur)
