import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from signal_edge.config import Settings
from signal_edge.core.auth.service import AuthContext, require_bearer, require_user
from signal_edge.core.provider.client import ProviderClient
from signal_edge.core.provider.factory import create_server_client, create_service_client
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import BadRequestException
from signal_edge.utils.http import json_response, request_origin


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _transport(request: Request):
    return getattr(request.app.state, "provider_transport", None)


@asynccontextmanager
async def server_client(request: Request) -> AsyncIterator[ProviderClient]:
    """Caller-scoped client for this request.

    The Authorization header is checked before the client exists, so a missing or
    malformed header never reaches the provider.
    """
    authorization = require_bearer(request.headers.get("authorization"))
    client = create_server_client(get_settings(request), authorization, transport=_transport(request))
    try:
        yield client
    finally:
        await client.aclose()


@asynccontextmanager
async def service_client(request: Request) -> AsyncIterator[ProviderClient]:
    client = create_service_client(get_settings(request), transport=_transport(request))
    try:
        yield client
    finally:
        await client.aclose()


async def authenticate(request: Request) -> AuthContext:
    async with server_client(request) as client:
        return await require_user(client)


async def get_current_user(request: Request) -> AuthContext:
    return await authenticate(request)


async def get_service_client(request: Request) -> AsyncGenerator[ProviderClient, None]:
    async with service_client(request) as client:
        yield client


async def read_json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        raise BadRequestException("Invalid JSON in request body", code=ErrorCode.INVALID_JSON)
    if not isinstance(payload, dict):
        raise BadRequestException("Request body must be a JSON object", code=ErrorCode.INVALID_JSON)
    return payload


def respond(request: Request, data: Any, status_code: int = 200, settings: Optional[Settings] = None) -> JSONResponse:
    cfg = settings or get_settings(request)
    return json_response(data, status_code=status_code, origin=request_origin(request), dev_origins=cfg.cors_dev_origins)
