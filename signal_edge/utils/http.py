from __future__ import annotations

from typing import Any, Iterable, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from starlette.requests import Request

from signal_edge.utils.cors import DEFAULT_DEV_ORIGINS, cors_headers
from signal_edge.utils.error_codes import ErrorCode


def request_origin(request: Request) -> Optional[str]:
    return request.headers.get("origin") or None


def preflight(request: Request, dev_origins: Iterable[str] = DEFAULT_DEV_ORIGINS) -> Optional[Response]:
    """Answer a CORS preflight.

    Returns a 204 response for ``OPTIONS`` and ``None`` for every other method, in
    which case the caller carries on with normal processing.
    """
    if request.method != "OPTIONS":
        return None
    return Response(status_code=204, headers=cors_headers(request_origin(request), dev_origins))


def json_response(
    data: Any,
    status_code: int = 200,
    origin: Optional[str] = None,
    dev_origins: Iterable[str] = DEFAULT_DEV_ORIGINS,
) -> JSONResponse:
    headers = cors_headers(origin, dev_origins)
    headers["content-type"] = "application/json"
    return JSONResponse(content=jsonable_encoder(data), status_code=status_code, headers=headers)


def err(
    code: ErrorCode | str,
    status_code: int = 400,
    detail: Optional[str] = None,
    origin: Optional[str] = None,
    dev_origins: Iterable[str] = DEFAULT_DEV_ORIGINS,
) -> JSONResponse:
    body: dict[str, Any] = {"ok": False, "error": code.value if isinstance(code, ErrorCode) else str(code)}
    if detail:
        body["detail"] = detail
    return json_response(body, status_code=status_code, origin=origin, dev_origins=dev_origins)
