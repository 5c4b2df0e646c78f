import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from signal_edge.core.provider.client import ProviderClient
from signal_edge.utils.observability import log_duration
from signal_edge.utils.validation import to_decimal

logger = logging.getLogger(__name__)

SIGNAL_COLUMNS = (
    "id,title,category,risk_rating,description,price_usdt,access_days,type,pdf_path,is_active,created_at"
)


def _price(value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        return Decimal(0)


class SignalService:
    def __init__(self, client: ProviderClient):
        self.client = client

    async def list_active(self) -> list[dict[str, Any]]:
        """Active signals, newest first, with ``price_usdt`` as a number (0 when unparseable)."""
        with log_duration(logger, "signals.list_active"):
            rows = await self.client.select(
                "signals",
                SIGNAL_COLUMNS,
                filters=[("is_active", "eq", True)],
                order="created_at",
                descending=True,
            )
        return [{**row, "price_usdt": _price(row.get("price_usdt"))} for row in rows]

    async def check_access(self, user_id: str, signal_id: str, *, now: Optional[datetime] = None) -> dict[str, Any]:
        moment = (now or datetime.now(timezone.utc)).isoformat()
        row = await self.client.select_one(
            "signal_access",
            "expires_at",
            filters=[
                ("user_id", "eq", user_id),
                ("signal_id", "eq", signal_id),
                ("expires_at", "gt", moment),
            ],
        )
        return {
            "has_access": row is not None,
            "expires_at": row.get("expires_at") if row else None,
        }
