from fastapi import APIRouter

from signal_edge.api.v1 import fx, health, rbac, signals, wallet

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(fx.router, tags=["FX"])
api_router.include_router(signals.router, tags=["Signals"])
api_router.include_router(rbac.router, tags=["RBAC"])
api_router.include_router(wallet.router, tags=["Wallet"])
