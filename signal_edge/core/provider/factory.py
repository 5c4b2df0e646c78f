from __future__ import annotations

import logging
from typing import Optional

import httpx

from signal_edge.config import Settings
from signal_edge.core.provider.client import ProviderClient
from signal_edge.utils.exceptions import ConfigurationError, UnauthorizedException


logger = logging.getLogger(__name__)


def _require_config(settings: Settings) -> tuple[str, str]:
    url = settings.provider_url
    key = (settings.SUPABASE_SERVICE_ROLE_KEY or "").strip()
    missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_SERVICE_ROLE_KEY", key)) if not value]
    if missing:
        raise ConfigurationError(f"Missing provider configuration: {', '.join(missing)}")
    return url, key


def create_server_client(
    settings: Settings,
    authorization_header: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderClient:
    """Client acting as the caller.

    The caller's Authorization header is forwarded as-is so row-level security on
    the provider applies to the caller's own identity.
    """
    url, key = _require_config(settings)
    if not authorization_header:
        raise UnauthorizedException()
    logger.debug("provider.client_created identity=caller")
    return ProviderClient(
        base_url=url,
        api_key=key,
        authorization=authorization_header,
        identity="caller",
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        transport=transport,
    )


def create_service_client(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderClient:
    """Client with the privileged service identity; bypasses row-level security.

    Never hand it to code that acts on behalf of an untrusted caller without
    scoping queries to that caller explicitly.
    """
    url, key = _require_config(settings)
    logger.debug("provider.client_created identity=service")
    return ProviderClient(
        base_url=url,
        api_key=key,
        authorization=f"Bearer {key}",
        identity="service",
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        transport=transport,
    )
