from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest
from httpx import AsyncClient

from signal_edge.main import create_app


WITHDRAW_URL = "/functions/v1/withdraw_create_request"
CONVERT_URL = "/functions/v1/convert_usdt_to_usd"


@pytest.fixture
def wallet(fake_provider, user_id):
    fake_provider.seed(
        "app_settings",
        {
            "id": 1,
            "withdrawal_fee_pct": "1.5",
            "withdrawal_daily_cap_usd": "1000",
            "withdrawal_daily_cap_usdt": "500",
            "conversion_fee_fixed_usd": "1",
            "conversion_fee_pct": "2",
            "fx_markup_pct": "0.5",
        },
    )
    fake_provider.seed("withdrawal_methods", {"id": "m-1", "user_id": user_id, "method": "bank_transfer"})
    fake_provider.seed(
        "wallet_balances",
        {"user_id": user_id, "currency": "USD", "balance": "2000"},
        {"user_id": user_id, "currency": "USDT", "balance": "150"},
    )
    return fake_provider


# =============================================================================
# withdraw_create_request
# =============================================================================
@pytest.mark.asyncio
async def test_withdraw_creates_pending_request_and_debits_ledger(client: AsyncClient, wallet, auth_headers, user_id):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USD", "amount": 100, "method_id": "m-1"},
        headers=auth_headers,
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["ok"] is True
    withdrawal = body["withdrawal"]
    assert withdrawal["status"] == "pending"
    assert withdrawal["currency"] == "USD"
    assert withdrawal["amount"] == "100.00"
    assert withdrawal["fee_amount"] == "1.50"
    assert withdrawal["method"] == "bank_transfer"

    [ledger] = wallet.rows("wallet_ledger")
    assert ledger["user_id"] == user_id
    assert ledger["amount"] == "-101.50"
    assert ledger["reason"] == "withdrawal"
    assert ledger["ref_id"] == withdrawal["id"]


@pytest.mark.asyncio
async def test_withdraw_validates_before_authenticating(client: AsyncClient, wallet):
    resp = await client.post(WITHDRAW_URL, json={"currency": "USD"})

    assert resp.status_code == 400
    assert resp.json() == {
        "ok": False,
        "error": "MISSING_FIELDS",
        "detail": "Missing required fields: amount, method_id",
    }
    assert wallet.requests == []


@pytest.mark.asyncio
async def test_withdraw_rejects_unknown_currency(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "BTC", "amount": "1", "method_id": "m-1"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_CURRENCY"


@pytest.mark.asyncio
async def test_withdraw_rejects_amount_over_usdt_bound(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USDT", "amount": "1000000", "method_id": "m-1"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "ok": False,
        "error": "INVALID_AMOUNT",
        "detail": "USDT amount cannot exceed 999,999.999999",
    }


@pytest.mark.asyncio
async def test_withdraw_unknown_method(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USD", "amount": "10", "method_id": "m-404"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_METHOD"
    assert wallet.rows("withdrawals") == []


@pytest.mark.asyncio
async def test_withdraw_daily_cap_counts_open_requests_only(client: AsyncClient, wallet, auth_headers, user_id):
    today = datetime.now(timezone.utc).isoformat()
    wallet.seed(
        "withdrawals",
        {"user_id": user_id, "currency": "USD", "amount": "900.00", "status": "pending", "created_at": today},
        {"user_id": user_id, "currency": "USD", "amount": "500.00", "status": "rejected", "created_at": today},
    )

    # 900 open + 101.50 requested > 1000 cap
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USD", "amount": "100", "method_id": "m-1"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "DAILY_CAP_EXCEEDED", "detail": "Daily withdrawal limit exceeded"}

    # 900 open + 50.75 requested fits
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USD", "amount": "50", "method_id": "m-1"},
        headers=auth_headers,
    )
    assert resp.status_code == 200, resp.text


@pytest.mark.asyncio
async def test_withdraw_falls_back_to_configured_daily_cap(
    settings, fake_provider, provider_transport, auth_headers, user_id
):
    fake_provider.seed("app_settings", {"id": 1, "withdrawal_fee_pct": "0"})
    fake_provider.seed("withdrawal_methods", {"id": "m-1", "user_id": user_id, "method": "bank_transfer"})
    fake_provider.seed("wallet_balances", {"user_id": user_id, "currency": "USD", "balance": "2000"})
    capped = settings.model_copy(update={"WITHDRAWAL_DEFAULT_DAILY_CAP": Decimal("100")})
    app = create_app(capped, provider_transport=provider_transport)

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        over = await c.post(
            WITHDRAW_URL, json={"currency": "USD", "amount": "100.01", "method_id": "m-1"}, headers=auth_headers
        )
        at_cap = await c.post(
            WITHDRAW_URL, json={"currency": "USD", "amount": "100", "method_id": "m-1"}, headers=auth_headers
        )

    assert over.status_code == 400
    assert over.json()["error"] == "DAILY_CAP_EXCEEDED"
    assert at_cap.status_code == 200, at_cap.text


@pytest.mark.asyncio
async def test_withdraw_insufficient_balance(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USDT", "amount": "149", "method_id": "m-1"},
        headers=auth_headers,
    )

    # 149 + 2.235 fee > 150 available
    assert resp.status_code == 400
    assert resp.json()["error"] == "INSUFFICIENT_BALANCE"
    assert wallet.rows("withdrawals") == []
    assert wallet.rows("wallet_ledger") == []


@pytest.mark.asyncio
async def test_withdraw_rejects_amount_below_cent(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(
        WITHDRAW_URL,
        json={"currency": "USD", "amount": "0.001", "method_id": "m-1"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "INVALID_AMOUNT", "detail": "Amount must be greater than 0"}
    assert wallet.requests == []
    assert wallet.rows("withdrawals") == []
    assert wallet.rows("wallet_ledger") == []


# =============================================================================
# convert_usdt_to_usd
# =============================================================================
@pytest.mark.asyncio
async def test_convert_applies_markup_and_fees(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(CONVERT_URL, json={"usdt_amount": "100"}, headers=auth_headers)

    assert resp.status_code == 200, resp.text
    conversion = resp.json()["conversion"]
    assert conversion["usdt_amount"] == "100.000000"
    assert conversion["usd_gross"] == "100.00"
    # 100 * (1 - 0.5%) = 99.50; fee 1 + 2% of 99.50 = 2.99
    assert conversion["usd_net"] == "96.51"
    assert conversion["status"] == "completed"

    ledger = wallet.rows("wallet_ledger")
    assert {(row["currency"], row["amount"]) for row in ledger} == {("USDT", "-100.000000"), ("USD", "96.51")}
    assert all(row["ref_id"] == conversion["id"] for row in ledger)


@pytest.mark.asyncio
async def test_convert_insufficient_usdt(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(CONVERT_URL, json={"usdt_amount": "150.000001"}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "INSUFFICIENT_BALANCE", "detail": "Insufficient USDT balance"}
    assert wallet.rows("conversions") == []


@pytest.mark.asyncio
async def test_convert_requires_amount_before_auth(client: AsyncClient, wallet):
    resp = await client.post(CONVERT_URL, json={})

    assert resp.status_code == 400
    assert resp.json()["error"] == "MISSING_FIELDS"
    assert wallet.requests == []


@pytest.mark.asyncio
async def test_convert_requires_auth_after_validation(client: AsyncClient, wallet):
    resp = await client.post(CONVERT_URL, json={"usdt_amount": "10"})

    assert resp.status_code == 401
    assert resp.json()["error"] == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_convert_rejects_amount_below_usdt_precision(client: AsyncClient, wallet, auth_headers):
    resp = await client.post(CONVERT_URL, json={"usdt_amount": "0.0000001"}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "INVALID_AMOUNT", "detail": "Amount must be greater than 0"}
    assert wallet.requests == []
    assert wallet.rows("conversions") == []
    assert wallet.rows("wallet_ledger") == []
