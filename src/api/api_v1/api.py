from fastapi import APIRouter

from api.api_v1.endpoints import (
    alerts,
    healthz,
    snapshots,
    summary,
    vaults,
    wallet,
)

api_router = APIRouter()

# Group routes by adding tags parameter
api_router.include_router(vaults.router, tags=["Vaults"])
api_router.include_router(summary.router, prefix="/summary", tags=["Portfolio"])
api_router.include_router(wallet.router, prefix="/wallet", tags=["Portfolio"])
api_router.include_router(snapshots.router, prefix="/snapshots", tags=["Snapshots"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
api_router.include_router(healthz.router, prefix="/healthz", tags=["Others"])
api_router.redirect_slashes = False
