from __future__ import annotations

import os
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import Response

from signal_edge.api import deps
from signal_edge.utils.exceptions import NotFoundException
from signal_edge.utils.metrics import render_metrics


router = APIRouter()

_START_TIME = time.time()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _best_effort_version() -> str:
    v = (os.getenv("SIGNAL_EDGE_VERSION") or os.getenv("APP_VERSION") or "").strip()
    return v or "dev"


@router.get("/health")
async def health_check(request: Request):
    settings = deps.get_settings(request)
    return deps.respond(
        request,
        {
            "ok": True,
            "status": "ok",
            "version": _best_effort_version(),
            "environment": settings.ENV,
            "uptime_seconds": int(max(0.0, time.time() - _START_TIME)),
            "timestamp": _utc_now_iso(),
        },
        settings=settings,
    )


@router.get("/healthz")
async def healthz_check(request: Request):
    return deps.respond(request, {"ok": True, "status": "ok"})


@router.get("/metrics")
async def metrics(request: Request):
    if not deps.get_settings(request).METRICS_ENABLED:
        raise NotFoundException("Metrics disabled")
    body, content_type = render_metrics()
    return Response(content=body, media_type=content_type)
