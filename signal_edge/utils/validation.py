from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from signal_edge.schemas.common import AMOUNT_SCALE, Currency, MAX_AMOUNT
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import BadRequestException


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a request validator: valid, or invalid with a human-readable reason.

    Validators never raise for bad input; handlers decide how to surface the message.
    """

    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.message is None

    @classmethod
    def valid(cls) -> "ValidationOutcome":
        return _VALID

    @classmethod
    def invalid(cls, message: str) -> "ValidationOutcome":
        return cls(message=message)


_VALID = ValidationOutcome()


def ensure_valid(outcome: ValidationOutcome, code: ErrorCode = ErrorCode.INVALID_INPUT) -> None:
    """Turn a failed outcome into a 400 for handlers that short-circuit on it."""
    if not outcome.ok:
        raise BadRequestException(outcome.message, code=code)


def _is_missing(body: Mapping[str, Any], field: str) -> bool:
    if field not in body:
        return True
    value = body[field]
    return value is None or value == ""


def validate_required_fields(body: Optional[Mapping[str, Any]], required: Iterable[str]) -> ValidationOutcome:
    """All ``required`` names must be present and not None/empty-string.

    Reports every missing field in one comma-joined message.
    """
    payload: Mapping[str, Any] = body if isinstance(body, Mapping) else {}
    missing = [field for field in required if _is_missing(payload, field)]
    if missing:
        return ValidationOutcome.invalid(f"Missing required fields: {', '.join(missing)}")
    return ValidationOutcome.valid()


def validate_enum(value: Any, allowed: Iterable[str], field_name: str) -> ValidationOutcome:
    allowed_values = [a.value if isinstance(a, Currency) else str(a) for a in allowed]
    if isinstance(value, Currency):
        value = value.value
    if value not in allowed_values:
        return ValidationOutcome.invalid(f"{field_name} must be one of: {', '.join(allowed_values)}")
    return ValidationOutcome.valid()


def _bound_label(bound: Decimal) -> str:
    # 999999999.99 -> 999,999,999.99
    int_part, _, frac_part = format(bound, "f").partition(".")
    grouped = f"{int(int_part):,}"
    return f"{grouped}.{frac_part}" if frac_part else grouped


def validate_amount(amount: Any, currency: Currency | str) -> ValidationOutcome:
    """Validate a monetary amount given as text (numbers are accepted and stringified).

    Failure modes, checked in order:
    - currency outside {USD, USDT}
    - empty or missing amount
    - not a finite number > 0 once rounded to the currency scale
    - above the currency's upper bound
    """
    currency_check = validate_enum(currency, [c.value for c in Currency], "currency")
    if not currency_check.ok:
        return currency_check
    cur = Currency(currency.value if isinstance(currency, Currency) else currency)

    if amount is None:
        return ValidationOutcome.invalid("Amount is required")
    text = amount if isinstance(amount, str) else str(amount)
    text = text.strip()
    if not text:
        return ValidationOutcome.invalid("Amount is required")

    try:
        value = Decimal(text)
    except (InvalidOperation, ValueError):
        return ValidationOutcome.invalid("Amount must be greater than 0")
    if not value.is_finite() or value <= 0:
        return ValidationOutcome.invalid("Amount must be greater than 0")
    # Stored at the currency scale; anything that rounds to zero is not an amount.
    if value < 1 and value.quantize(Decimal(1).scaleb(-AMOUNT_SCALE[cur]), rounding=ROUND_HALF_UP) <= 0:
        return ValidationOutcome.invalid("Amount must be greater than 0")

    bound = MAX_AMOUNT[cur]
    if value > bound:
        return ValidationOutcome.invalid(f"{cur.value} amount cannot exceed {_bound_label(bound)}")

    return ValidationOutcome.valid()


def to_decimal(value: Any) -> Decimal:
    """Convert int/float/str/Decimal to Decimal.

    Floats go through their shortest repr so 10.005 stays 10.005 instead of the
    binary approximation 10.00499999...
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount: {value!r}") from exc
    else:
        raise ValueError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


_CENT = Decimal("0.01")
_MICRO = Decimal("0.000001")


def round_usd(value: Any) -> Decimal:
    """Round half up to the nearest cent."""
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def round_usdt(value: Any) -> str:
    """Round half up to 6 decimal places; fixed-point string, zero padded."""
    return format(to_decimal(value).quantize(_MICRO, rounding=ROUND_HALF_UP), "f")
