"""
Web Push configuration endpoint
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from mcm_alerts.api.deps import get_backend
from mcm_alerts.services.backend import AlertBackend

router = APIRouter()


@router.get("/vapid-public-key")
async def get_vapid_public_key(backend: AlertBackend = Depends(get_backend)) -> Any:
    """applicationServerKey for PushManager.subscribe()"""
    public_key = backend.push_service.public_key
    if not public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Web Push is not configured. Set VAPID_PRIVATE_KEY.",
        )
    return {"publicKey": public_key}
