from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from signal_edge.core.provider.client import ProviderClient
from signal_edge.utils.exceptions import ProviderException


logger = logging.getLogger(__name__)


# Tables the signal-purchase flow has been seen under.
SIGNAL_TABLE_CANDIDATES: tuple[str, ...] = (
    "signal_purchases",
    "signal_purchase",
    "signals",
    "trading_signals",
    "user_signals",
    "signal_subscriptions",
    "purchases",
    "user_purchases",
    "transactions",
)


@dataclass(frozen=True)
class TableCheck:
    table: str
    exists: bool
    sample_rows: int = 0
    error: Optional[str] = None


async def check_table(client: ProviderClient, table: str) -> TableCheck:
    """Check whether ``table`` is reachable by fetching at most one row."""
    try:
        rows = await client.select(table, "*", limit=1)
    except ProviderException as exc:
        logger.info("admin.table_check table=%s exists=false error=%s", table, exc.detail)
        return TableCheck(table=table, exists=False, error=exc.detail)
    logger.info("admin.table_check table=%s exists=true rows=%d", table, len(rows))
    return TableCheck(table=table, exists=True, sample_rows=len(rows))


async def check_tables(client: ProviderClient, tables: Iterable[str] = SIGNAL_TABLE_CANDIDATES) -> list[TableCheck]:
    results: list[TableCheck] = []
    for table in tables:
        results.append(await check_table(client, table))
    return results
