"""
Push Subscription Endpoints
Register, list and remove browser push subscriptions.
"""
from typing import Any, List
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from mcm_alerts.api.deps import get_backend
from mcm_alerts.core.exceptions import InvalidPayload, StoreFailure
from mcm_alerts.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionRegistered,
    SubscriptionResponse,
    UnsubscribeRequest,
)
from mcm_alerts.services.backend import AlertBackend

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=SubscriptionRegistered,
    status_code=status.HTTP_201_CREATED,
)
async def register_subscription(
    request: Request,
    response: Response,
    body: SubscriptionCreate,
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    """
    Register a PushSubscription from the browser.
    
    Returns 201 for a new endpoint and 200 when the endpoint was already
    registered (its keys are refreshed).
    """
    keys = body.keys.model_dump() if body.keys else None
    user_agent = body.user_agent or request.headers.get("user-agent")
    try:
        result = await backend.registry.register(body.endpoint, keys, user_agent)
    except InvalidPayload as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store subscription",
        )
    
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return SubscriptionRegistered(
        id=result.id,
        created=result.created,
        message="Subscription created" if result.created else "Already subscribed",
    )


@router.get("", response_model=List[SubscriptionResponse])
async def list_subscriptions(backend: AlertBackend = Depends(get_backend)) -> Any:
    try:
        return await backend.registry.list()
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list subscriptions",
        )


@router.post("/unsubscribe", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe(
    body: UnsubscribeRequest,
    backend: AlertBackend = Depends(get_backend),
) -> Response:
    """Remove the subscription for an endpoint (idempotent)"""
    try:
        await backend.registry.remove_by_endpoint(body.endpoint)
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove subscription",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: UUID,
    backend: AlertBackend = Depends(get_backend),
) -> Response:
    try:
        await backend.registry.remove(subscription_id)
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove subscription",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
