from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from signal_edge.core.provider.client import ProviderClient
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import ForbiddenException, UnauthorizedException
from signal_edge.utils.observability import mask_token


logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    user: dict[str, Any]
    profile: dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return str(self.profile.get("user_id") or self.user.get("id"))

    @property
    def role(self) -> str:
        return str(self.profile.get("role") or "user")


def require_bearer(value: Optional[str]) -> str:
    """Validate a raw Authorization header before any provider call.

    Missing header -> UNAUTHENTICATED, anything but ``Bearer <token>`` -> INVALID_JWT_FORMAT.
    """
    if not value:
        logger.info("auth.missing_header")
        raise UnauthorizedException()
    if not value.startswith(_BEARER_PREFIX) or not value[len(_BEARER_PREFIX):].strip():
        logger.info("auth.invalid_header_format header=%s", mask_token(value))
        raise UnauthorizedException(code=ErrorCode.INVALID_JWT_FORMAT)
    return value


async def require_user(client: ProviderClient) -> AuthContext:
    """Resolve the caller behind a server client and load their profile.

    The provider is the only source of truth for token validity.
    """
    user = await client.get_user()
    if user is None:
        raise UnauthorizedException("Invalid or expired token")

    profile = await client.select_one(
        "profiles",
        "user_id,role,created_at",
        filters=[("user_id", "eq", user["id"])],
    )
    if profile is None:
        logger.warning("auth.profile_missing user_id=%s", user["id"])
        raise ForbiddenException(code=ErrorCode.PROFILE_NOT_FOUND)

    return AuthContext(user=user, profile=profile)
