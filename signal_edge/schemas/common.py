from decimal import Decimal
from enum import Enum


class Currency(str, Enum):
    USD = "USD"
    USDT = "USDT"


# Inclusive upper bounds accepted by validate_amount.
MAX_AMOUNT: dict[Currency, Decimal] = {
    Currency.USD: Decimal("999999999.99"),
    Currency.USDT: Decimal("999999.999999"),
}

# Decimal places used when an amount is normalized for storage/display.
AMOUNT_SCALE: dict[Currency, int] = {
    Currency.USD: 2,
    Currency.USDT: 6,
}

