from __future__ import annotations


_USER_PERMISSIONS: tuple[str, ...] = (
    "profile:read",
    "profile:write",
    "balances:read",
    "positions:read",
    "deposits:create",
    "deposits:read",
    "withdrawals:create",
    "withdrawals:read",
    "conversions:create",
    "conversions:read",
    "signals:read",
    "signals:purchase",
    "history:read",
)

_SUPPORT_PERMISSIONS: tuple[str, ...] = (
    "users:read",
    "users:approve_kyc",
    "deposits:read",
    "deposits:approve",
    "withdrawals:read",
    "conversions:read",
    "settings:read",
    "rates:read",
    "fees:read",
    "audit:read",
    "reports:read",
    "backoffice:access",
)

_SUPERADMIN_PERMISSIONS: tuple[str, ...] = (
    # users
    "users:read",
    "users:write",
    "users:delete",
    "users:verify_email",
    "users:approve_kyc",
    "users:freeze",
    "users:adjust_balances",
    "users:override_tier",
    # money
    "deposits:approve",
    "deposits:reject",
    "withdrawals:approve",
    "withdrawals:reject",
    "conversions:read",
    "conversions:write",
    # settings
    "settings:read",
    "settings:write",
    "rates:read",
    "rates:write",
    "fees:read",
    "fees:write",
    # audit
    "audit:read",
    "audit:write",
    "reports:read",
    "system:monitor",
    "backoffice:access",
)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "user": _USER_PERMISSIONS,
    "support": _SUPPORT_PERMISSIONS,
    "superadmin": _SUPERADMIN_PERMISSIONS,
}


def permissions_for_role(role: str | None) -> list[str]:
    """Unknown or empty roles get the plain user permissions."""
    return list(ROLE_PERMISSIONS.get((role or "user").strip().lower(), _USER_PERMISSIONS))
