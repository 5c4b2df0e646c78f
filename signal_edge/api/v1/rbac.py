from fastapi import APIRouter, Depends, Request

from signal_edge.api import deps
from signal_edge.core.auth.service import AuthContext
from signal_edge.core.rbac import permissions_for_role

router = APIRouter()


@router.get("/rbac_me")
async def rbac_me(request: Request, auth: AuthContext = Depends(deps.get_current_user)):
    role = auth.role
    profile = auth.profile
    return deps.respond(
        request,
        {
            "ok": True,
            "user_id": auth.user_id,
            "role": role,
            "permissions": permissions_for_role(role),
            "profile": {
                "user_id": auth.user_id,
                "role": role,
                "created_at": profile.get("created_at"),
                "email_verified": bool(profile.get("email_verified", False)),
                "kyc_status": profile.get("kyc_status") or "not_submitted",
                "is_frozen": bool(profile.get("is_frozen", False)),
                "is_growth_paused": bool(profile.get("is_growth_paused", False)),
            },
        },
    )
