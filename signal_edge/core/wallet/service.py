import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from signal_edge.core.money import calc_withdrawal_fee, quantize
from signal_edge.core.provider.client import ProviderClient
from signal_edge.schemas.common import Currency
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import BadRequestException
from signal_edge.utils.observability import log_duration
from signal_edge.utils.validation import round_usd, to_decimal

logger = logging.getLogger(__name__)

# app_settings is a single-row table.
_APP_SETTINGS_ID = 1

_OPEN_WITHDRAWAL_STATUSES = ("pending", "approved")


def _setting(row: Optional[dict[str, Any]], key: str, default: str = "0") -> Decimal:
    value = (row or {}).get(key)
    if value is None or value == "":
        return Decimal(default)
    try:
        return to_decimal(value)
    except ValueError:
        return Decimal(default)


def _money_str(value: Decimal, currency: Currency) -> str:
    return format(quantize(value, currency), "f")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConversionQuote:
    usdt_amount: Decimal
    fx_rate: Decimal
    markup_pct: Decimal
    fee_fixed_usd: Decimal
    fee_pct: Decimal
    usd_gross: Decimal
    usd_net: Decimal


def quote_usdt_to_usd(
    usdt_amount: Decimal,
    *,
    fee_fixed_usd: Decimal,
    fee_pct: Decimal,
    markup_pct: Decimal,
    fx_rate: Decimal = Decimal(1),
) -> ConversionQuote:
    """Gross = amount * rate; markup is taken off gross, then fixed + percentage fee.

    Net never goes below zero.
    """
    usd_gross = usdt_amount * fx_rate
    after_markup = usd_gross * (1 - markup_pct / 100)
    fee = fee_fixed_usd + (fee_pct / 100) * after_markup
    usd_net = max(Decimal(0), after_markup - fee)
    return ConversionQuote(
        usdt_amount=usdt_amount,
        fx_rate=fx_rate,
        markup_pct=markup_pct,
        fee_fixed_usd=fee_fixed_usd,
        fee_pct=fee_pct,
        usd_gross=round_usd(usd_gross),
        usd_net=round_usd(usd_net),
    )


class WalletService:
    """Wallet writes on behalf of an authenticated user.

    Runs with the service client, so every query is explicitly scoped to ``user_id``.
    """

    def __init__(self, client: ProviderClient, *, default_daily_cap: Decimal = Decimal("10000")):
        self.client = client
        self.default_daily_cap = default_daily_cap

    async def _balance(self, user_id: str, currency: Currency) -> Optional[Decimal]:
        row = await self.client.select_one(
            "wallet_balances",
            "balance",
            filters=[("user_id", "eq", user_id), ("currency", "eq", currency.value)],
        )
        if row is None or row.get("balance") is None:
            return None
        return to_decimal(row["balance"])

    async def _app_settings(self, columns: str) -> Optional[dict[str, Any]]:
        return await self.client.select_one("app_settings", columns, filters=[("id", "eq", _APP_SETTINGS_ID)])

    async def _withdrawn_today(self, user_id: str, currency: Currency, now: datetime) -> Decimal:
        rows = await self.client.select(
            "withdrawals",
            "amount",
            filters=[
                ("user_id", "eq", user_id),
                ("currency", "eq", currency.value),
                ("created_at", "gte", now.date().isoformat()),
                ("status", "in", list(_OPEN_WITHDRAWAL_STATUSES)),
            ],
        )
        total = Decimal(0)
        for row in rows:
            total += to_decimal(row.get("amount") or 0)
        return total

    async def create_withdrawal(
        self,
        user_id: str,
        currency: Currency,
        amount: Decimal,
        method_id: Any,
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        moment = now or _utc_now()

        method = await self.client.select_one(
            "withdrawal_methods",
            "id,method",
            filters=[("user_id", "eq", user_id), ("id", "eq", method_id)],
        )
        if method is None:
            raise BadRequestException("Withdrawal method not found", code=ErrorCode.INVALID_METHOD)

        cfg = await self._app_settings("withdrawal_fee_pct,withdrawal_daily_cap_usd,withdrawal_daily_cap_usdt")
        fee_pct = _setting(cfg, "withdrawal_fee_pct")
        cap_key = "withdrawal_daily_cap_usd" if currency is Currency.USD else "withdrawal_daily_cap_usdt"
        daily_cap = _setting(cfg, cap_key, default=str(self.default_daily_cap))

        fee = calc_withdrawal_fee(amount, fee_pct, currency)
        total_debit = quantize(amount + fee, currency)

        withdrawn = await self._withdrawn_today(user_id, currency, moment)
        if withdrawn + total_debit > daily_cap:
            logger.info(
                "wallet.withdraw_cap_exceeded user_id=%s currency=%s today=%s requested=%s cap=%s",
                user_id, currency.value, withdrawn, total_debit, daily_cap,
            )
            raise BadRequestException("Daily withdrawal limit exceeded", code=ErrorCode.DAILY_CAP_EXCEEDED)

        balance = await self._balance(user_id, currency)
        if balance is None or balance < total_debit:
            raise BadRequestException("Insufficient balance", code=ErrorCode.INSUFFICIENT_BALANCE)

        with log_duration(logger, "wallet.create_withdrawal", user_id=user_id, currency=currency.value):
            withdrawal = await self.client.insert(
                "withdrawals",
                {
                    "user_id": user_id,
                    "currency": currency.value,
                    "amount": _money_str(amount, currency),
                    "fee_amount": _money_str(fee, currency),
                    "method": method.get("method"),
                    "method_id": method_id,
                    "status": "pending",
                    "created_at": moment.isoformat(),
                },
            )
            # Debit right away so the funds are reserved while the request is pending.
            await self.client.insert(
                "wallet_ledger",
                {
                    "user_id": user_id,
                    "currency": currency.value,
                    "amount": _money_str(-total_debit, currency),
                    "reason": "withdrawal",
                    "ref_table": "withdrawals",
                    "ref_id": withdrawal.get("id"),
                    "created_at": moment.isoformat(),
                },
            )

        return {
            "id": withdrawal.get("id"),
            "status": withdrawal.get("status"),
            "currency": withdrawal.get("currency"),
            "amount": withdrawal.get("amount"),
            "fee_amount": withdrawal.get("fee_amount"),
            "method": withdrawal.get("method"),
            "created_at": withdrawal.get("created_at"),
        }

    async def convert_usdt_to_usd(
        self,
        user_id: str,
        usdt_amount: Decimal,
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        moment = now or _utc_now()

        balance = await self._balance(user_id, Currency.USDT)
        if balance is None or balance < usdt_amount:
            raise BadRequestException("Insufficient USDT balance", code=ErrorCode.INSUFFICIENT_BALANCE)

        cfg = await self._app_settings("conversion_fee_fixed_usd,conversion_fee_pct,fx_markup_pct")
        quote = quote_usdt_to_usd(
            usdt_amount,
            fee_fixed_usd=_setting(cfg, "conversion_fee_fixed_usd"),
            fee_pct=_setting(cfg, "conversion_fee_pct"),
            markup_pct=_setting(cfg, "fx_markup_pct"),
        )

        with log_duration(logger, "wallet.convert_usdt_to_usd", user_id=user_id):
            conversion = await self.client.insert(
                "conversions",
                {
                    "user_id": user_id,
                    "usdt_amount": _money_str(quote.usdt_amount, Currency.USDT),
                    "fx_rate": str(quote.fx_rate),
                    "markup_pct": str(quote.markup_pct),
                    "fee_fixed_usd": _money_str(quote.fee_fixed_usd, Currency.USD),
                    "fee_pct": str(quote.fee_pct),
                    "usd_gross": _money_str(quote.usd_gross, Currency.USD),
                    "usd_net": _money_str(quote.usd_net, Currency.USD),
                    "status": "completed",
                    "created_at": moment.isoformat(),
                },
            )
            ref_id = conversion.get("id")
            await self.client.insert(
                "wallet_ledger",
                {
                    "user_id": user_id,
                    "currency": Currency.USDT.value,
                    "amount": _money_str(-quote.usdt_amount, Currency.USDT),
                    "reason": "conversion",
                    "ref_table": "conversions",
                    "ref_id": ref_id,
                    "created_at": moment.isoformat(),
                },
            )
            await self.client.insert(
                "wallet_ledger",
                {
                    "user_id": user_id,
                    "currency": Currency.USD.value,
                    "amount": _money_str(quote.usd_net, Currency.USD),
                    "reason": "conversion",
                    "ref_table": "conversions",
                    "ref_id": ref_id,
                    "created_at": moment.isoformat(),
                },
            )

        return {
            key: conversion.get(key)
            for key in (
                "id",
                "usdt_amount",
                "fx_rate",
                "markup_pct",
                "fee_fixed_usd",
                "fee_pct",
                "usd_gross",
                "usd_net",
                "status",
            )
        }
