from __future__ import annotations

import logging
import time
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from signal_edge.api.router import api_router
from signal_edge.config import Settings, load_settings
from signal_edge.utils.cors import DEFAULT_DEV_ORIGINS, cors_headers
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import ConfigurationError, EdgeException
from signal_edge.utils.http import err, json_response, preflight, request_origin
from signal_edge.utils.observability import configure_logging


logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"

_HTTP_STATUS_CODES: dict[int, ErrorCode] = {
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
}


def _dev_origins(request: Request):
    settings = getattr(request.app.state, "settings", None)
    return settings.cors_dev_origins if settings is not None else DEFAULT_DEV_ORIGINS


async def request_id_middleware(request: Request, call_next):
    from signal_edge.utils.request_id import new_request_id, request_id_var, validate_request_id

    incoming_rid = request.headers.get("X-Request-ID")
    rid = validate_request_id(incoming_rid) or new_request_id()
    token = request_id_var.set(rid)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = rid
    return response


async def envelope_middleware(request: Request, call_next):
    """Preflight short-circuit, CORS on every response, and the single catch-all.

    ``OPTIONS`` is answered here, before routing, so no dependency (auth, provider
    client) runs for a preflight. Anything unexpected raised below becomes a 500
    ``SERVER_ERROR`` envelope that still carries the CORS headers.
    """
    dev_origins = _dev_origins(request)
    pre = preflight(request, dev_origins)
    if pre is not None:
        return pre

    origin = request_origin(request)
    try:
        response = await call_next(request)
    except ConfigurationError as exc:
        logger.error("request.misconfigured path=%s error=%s", request.url.path, exc)
        _count_error(ErrorCode.SERVER_MISCONFIG.value)
        return err(ErrorCode.SERVER_MISCONFIG, 500, str(exc), origin, dev_origins)
    except Exception as exc:
        logger.exception("request.unhandled_error method=%s path=%s", request.method, request.url.path)
        _count_error(ErrorCode.SERVER_ERROR.value)
        return err(ErrorCode.SERVER_ERROR, 500, str(exc) or exc.__class__.__name__, origin, dev_origins)

    for name, value in cors_headers(origin, dev_origins).items():
        response.headers[name] = value
    return response


def _route_label(request: Request) -> str:
    """Route template for metric labels, or a fixed label when nothing matched.

    Routes included under a prefix report their template with or without it
    depending on the FastAPI version; function routes always get the prefix back.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if not isinstance(template, str) or not template:
        return "__unmatched__"
    prefix = FUNCTIONS_PREFIX + "/"
    if request.url.path.startswith(prefix) and not template.startswith(prefix):
        return FUNCTIONS_PREFIX + template
    return template


async def metrics_middleware(request: Request, call_next):
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and not settings.METRICS_ENABLED:
        return await call_next(request)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed_s = time.perf_counter() - start

    from signal_edge.utils.metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL

    path_label = _route_label(request)

    HTTP_REQUESTS_TOTAL.labels(method=request.method, path=path_label, status=str(response.status_code)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, path=path_label).observe(elapsed_s)
    return response


def _count_error(code: str) -> None:
    from signal_edge.utils.metrics import ENVELOPE_ERRORS_TOTAL

    ENVELOPE_ERRORS_TOTAL.labels(code=code).inc()


async def edge_exception_handler(request: Request, exc: EdgeException):
    if exc.status_code >= 500:
        logger.error("request.edge_error code=%s path=%s detail=%s", exc.code, request.url.path, exc.detail)
    else:
        logger.info("request.rejected code=%s status=%s path=%s", exc.code, exc.status_code, request.url.path)
    _count_error(exc.code)
    return json_response(exc.to_dict(), exc.status_code, request_origin(request), _dev_origins(request))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for e in exc.errors():
        loc = ".".join(str(part) for part in e.get("loc", ()) if part not in ("body", "query"))
        problems.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    code = ErrorCode.INVALID_JSON if any(e.get("type") == "json_invalid" for e in exc.errors()) else ErrorCode.INVALID_INPUT
    _count_error(code.value)
    return err(code, 400, "; ".join(problems) or None, request_origin(request), _dev_origins(request))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.BAD_REQUEST if exc.status_code < 500 else ErrorCode.SERVER_ERROR)
    _count_error(code.value)
    detail = exc.detail if isinstance(exc.detail, str) else None
    response = err(code, exc.status_code, detail, request_origin(request), _dev_origins(request))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def create_app(
    settings: Optional[Settings] = None,
    *,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application.

    ``settings`` is created once here (from the environment unless given) and shared
    by reference through ``app.state``. ``provider_transport`` replaces the network
    transport of every provider client (tests use ``httpx.MockTransport``).
    """
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Signal Edge Functions", debug=settings.DEBUG)
    app.state.settings = settings
    app.state.provider_transport = provider_transport

    app.include_router(api_router, prefix=FUNCTIONS_PREFIX)

    app.add_exception_handler(EdgeException, edge_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Registration order: the last one added is the outermost. Metrics sits outside
    # the envelope so preflights and catch-all 500s are counted too.
    app.middleware("http")(envelope_middleware)
    app.middleware("http")(metrics_middleware)
    app.middleware("http")(request_id_middleware)

    logger.info("app.created env=%s provider_url=%s", settings.ENV, settings.provider_url)
    return app
