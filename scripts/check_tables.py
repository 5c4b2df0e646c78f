import argparse
import asyncio
import sys

from signal_edge.config import load_settings
from signal_edge.core.admin.tables import SIGNAL_TABLE_CANDIDATES, check_tables
from signal_edge.core.provider.factory import create_service_client
from signal_edge.utils.observability import configure_logging


async def _run(tables: list[str]) -> int:
    settings = load_settings()
    configure_logging(settings.LOG_LEVEL)

    async with create_service_client(settings) as client:
        results = await check_tables(client, tables)

    print("provider:", settings.provider_url)
    for r in results:
        if r.exists:
            print(f"  found    {r.table} (sample rows: {r.sample_rows})")
        else:
            print(f"  missing  {r.table} ({r.error})")

    found = sum(1 for r in results if r.exists)
    print(f"{found}/{len(results)} tables reachable")
    return 0 if found else 1


def main() -> None:
    p = argparse.ArgumentParser(description="Check which tables the provider exposes to the service identity")
    p.add_argument(
        "tables",
        nargs="*",
        help="Table names to check (default: known signal/purchase tables)",
    )
    args = p.parse_args()

    tables = list(args.tables) or list(SIGNAL_TABLE_CANDIDATES)
    sys.exit(asyncio.run(_run(tables)))


if __name__ == "__main__":
    main()
