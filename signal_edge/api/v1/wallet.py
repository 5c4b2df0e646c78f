from fastapi import APIRouter, Request

from signal_edge.api import deps
from signal_edge.core.wallet.service import WalletService
from signal_edge.schemas.common import Currency
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.validation import (
    ensure_valid,
    to_decimal,
    validate_amount,
    validate_enum,
    validate_required_fields,
)

router = APIRouter()


def _wallet(request: Request, client) -> WalletService:
    settings = deps.get_settings(request)
    return WalletService(client, default_daily_cap=settings.WITHDRAWAL_DEFAULT_DAILY_CAP)


@router.post("/withdraw_create_request")
async def withdraw_create_request(request: Request):
    """
    Create a pending withdrawal and reserve the funds (amount + fee) in the ledger.
    """
    body = await deps.read_json_body(request)

    ensure_valid(validate_required_fields(body, ("currency", "amount", "method_id")), ErrorCode.MISSING_FIELDS)
    ensure_valid(validate_enum(body["currency"], [c.value for c in Currency], "currency"), ErrorCode.INVALID_CURRENCY)
    ensure_valid(validate_amount(body["amount"], body["currency"]), ErrorCode.INVALID_AMOUNT)

    currency = Currency(body["currency"])
    amount = to_decimal(body["amount"])

    auth = await deps.authenticate(request)
    async with deps.service_client(request) as client:
        withdrawal = await _wallet(request, client).create_withdrawal(
            auth.user_id, currency, amount, body["method_id"]
        )
    return deps.respond(request, {"ok": True, "withdrawal": withdrawal})


@router.post("/convert_usdt_to_usd")
async def convert_usdt_to_usd(request: Request):
    """
    Convert USDT to USD at the fixed rate, applying markup and fees from app_settings.
    """
    body = await deps.read_json_body(request)

    ensure_valid(validate_required_fields(body, ("usdt_amount",)), ErrorCode.MISSING_FIELDS)
    ensure_valid(validate_amount(body["usdt_amount"], Currency.USDT), ErrorCode.INVALID_AMOUNT)

    usdt_amount = to_decimal(body["usdt_amount"])

    auth = await deps.authenticate(request)
    async with deps.service_client(request) as client:
        conversion = await _wallet(request, client).convert_usdt_to_usd(auth.user_id, usdt_amount)
    return deps.respond(request, {"ok": True, "conversion": conversion})
