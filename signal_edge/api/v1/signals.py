from typing import Optional

from fastapi import APIRouter, Depends, Request

from signal_edge.api import deps
from signal_edge.core.auth.service import AuthContext
from signal_edge.core.provider.client import ProviderClient
from signal_edge.core.signals.service import SignalService
from signal_edge.utils.error_codes import ErrorCode
from signal_edge.utils.exceptions import BadRequestException

router = APIRouter()


@router.get("/signals_list")
async def signals_list(
    request: Request,
    auth: AuthContext = Depends(deps.get_current_user),
    client: ProviderClient = Depends(deps.get_service_client),
):
    """
    Active signals, newest first.
    """
    signals = await SignalService(client).list_active()
    return deps.respond(request, {"ok": True, "signals": signals})


@router.get("/signal_access_check")
async def signal_access_check(request: Request, signal_id: Optional[str] = None):
    """
    Whether the caller holds unexpired access to ``signal_id``.
    """
    if not (signal_id or "").strip():
        raise BadRequestException("signal_id parameter required", code=ErrorCode.BAD_REQUEST)

    auth = await deps.authenticate(request)
    async with deps.service_client(request) as client:
        result = await SignalService(client).check_access(auth.user_id, signal_id.strip())
    return deps.respond(request, {"ok": True, **result})
