from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from signal_edge.utils.request_id import request_id_var


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup with a stable key=value friendly format."""
    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(resolved)


def mask_token(value: str | None, keep: int = 12) -> str:
    """Short prefix of a credential for logs; never the full value."""
    if not value:
        return "None"
    if len(value) <= keep:
        return "***"
    return value[:keep] + "..."


@contextmanager
def log_duration(logger: Any, operation: str, **fields: object) -> Iterator[None]:
    """Log duration of an operation at debug level as ``op=... duration_ms=...``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        rid = request_id_var.get()
        if rid and "request_id" not in fields:
            fields = {"request_id": rid, **fields}
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        if extras:
            logger.debug("op=%s duration_ms=%.2f %s", operation, elapsed_ms, extras)
        else:
            logger.debug("op=%s duration_ms=%.2f", operation, elapsed_ms)
