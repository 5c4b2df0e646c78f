from __future__ import annotations

import logging
from typing import Any, Literal, Optional, Sequence

import httpx

from signal_edge.utils.exceptions import ProviderException
from signal_edge.utils.metrics import PROVIDER_CALLS_TOTAL
from signal_edge.utils.observability import log_duration


logger = logging.getLogger(__name__)

Identity = Literal["caller", "service"]

# (column, operator, value), e.g. ("user_id", "eq", uid) or ("status", "in", ["pending", "approved"])
Filter = tuple[str, str, Any]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def build_filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
    """Translate filters into PostgREST query parameters."""
    params: list[tuple[str, str]] = []
    for column, op, value in filters:
        if op == "in":
            values = ",".join(_format_value(v) for v in value)
            params.append((column, f"in.({values})"))
        elif op == "is":
            params.append((column, f"is.{_format_value(value)}"))
        else:
            params.append((column, f"{op}.{_format_value(value)}"))
    return params


def _error_message(response: httpx.Response) -> tuple[str, Optional[str]]:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or f"HTTP {response.status_code}"), None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("msg") or payload.get("error_description") or payload.get("error")
        code = payload.get("code")
        return str(message or f"HTTP {response.status_code}"), (str(code) if code is not None else None)
    return f"HTTP {response.status_code}", None


class ProviderClient:
    """Request-scoped handle to the database/auth provider.

    Wraps one ``httpx.AsyncClient``; construct it per request and close it when the
    request ends. Nothing is persisted between requests.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        authorization: str,
        identity: Identity,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.identity = identity
        self.persist_session = False
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "apikey": api_key,
                "Authorization": authorization,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        with log_duration(logger, f"provider.{operation}", identity=self.identity, url=url):
            try:
                response = await self._http.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                PROVIDER_CALLS_TOTAL.labels(operation=operation, result="transport_error").inc()
                raise ProviderException(f"Provider request failed: {exc}") from exc
        PROVIDER_CALLS_TOTAL.labels(operation=operation, result=str(response.status_code)).inc()
        return response

    async def get_user(self) -> Optional[dict[str, Any]]:
        """User bound to the forwarded token, or None when the token is rejected."""
        response = await self._request("get_user", "GET", "/auth/v1/user")
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            message, code = _error_message(response)
            raise ProviderException(message, provider_code=code)
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        return payload

    async def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(build_filter_params(filters))
        if order:
            params.append(("order", f"{order}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(int(limit))))

        response = await self._request("select", "GET", f"/rest/v1/{table}", params=params)
        if response.is_error:
            message, code = _error_message(response)
            logger.warning("provider.select_failed table=%s status=%s code=%s", table, response.status_code, code)
            raise ProviderException(message, provider_code=code)
        rows = response.json()
        return rows if isinstance(rows, list) else [rows]

    async def select_one(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Sequence[Filter] = (),
    ) -> Optional[dict[str, Any]]:
        rows = await self.select(table, columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "insert",
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        if response.is_error:
            message, code = _error_message(response)
            logger.warning("provider.insert_failed table=%s status=%s code=%s", table, response.status_code, code)
            raise ProviderException(message, provider_code=code)
        payload = response.json()
        if isinstance(payload, list):
            if not payload:
                raise ProviderException(f"Insert into {table} returned no row")
            return payload[0]
        return payload
