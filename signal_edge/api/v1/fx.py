from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Request

from signal_edge.api import deps
from signal_edge.schemas.common import Currency
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.validation import (
    ensure_valid,
    round_usd,
    round_usdt,
    to_decimal,
    validate_amount,
    validate_enum,
    validate_required_fields,
)


router = APIRouter()

_CURRENCIES = [c.value for c in Currency]

# Fixed until a real FX source is wired in.
FX_RATE = Decimal("1.0")


@router.post("/fx_quote")
async def fx_quote(request: Request):
    """Quote a conversion between the supported currencies. No authentication."""
    body = await deps.read_json_body(request)

    ensure_valid(validate_required_fields(body, ("from_currency", "to_currency", "amount")), ErrorCode.MISSING_FIELDS)
    ensure_valid(validate_enum(body["from_currency"], _CURRENCIES, "from_currency"), ErrorCode.INVALID_CURRENCY)
    ensure_valid(validate_enum(body["to_currency"], _CURRENCIES, "to_currency"), ErrorCode.INVALID_CURRENCY)
    ensure_valid(validate_amount(body["amount"], body["from_currency"]), ErrorCode.INVALID_AMOUNT)

    to_currency = Currency(body["to_currency"])
    converted = to_decimal(body["amount"]) * FX_RATE
    converted_amount = round_usd(converted) if to_currency is Currency.USD else round_usdt(converted)

    return deps.respond(
        request,
        {
            "ok": True,
            "from_currency": body["from_currency"],
            "to_currency": to_currency.value,
            "amount": body["amount"],
            "rate": FX_RATE,
            "converted_amount": converted_amount,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
