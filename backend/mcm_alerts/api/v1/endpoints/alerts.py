"""
Alert trigger endpoint: publish a canned alert by type and priority
"""
from typing import Any
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from mcm_alerts.api.deps import get_backend
from mcm_alerts.api.v1.endpoints.events import build_dispatch_response
from mcm_alerts.core.exceptions import StoreFailure, ValidationError
from mcm_alerts.schemas.notification import DispatchResponse, EventCreate, TriggerAlertRequest
from mcm_alerts.services.alert_templates import render_alert
from mcm_alerts.services.backend import AlertBackend

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/trigger", response_model=DispatchResponse)
async def trigger_alert(
    body: TriggerAlertRequest,
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    title, message = render_alert(body.type, body.priority)
    logger.info(f"Triggering {body.priority.value} {body.type} alert")
    try:
        event, report = await backend.publish_alert(
            EventCreate(
                title=title,
                body=message,
                type=body.type,
                priority=body.priority,
                metadata={**body.metadata, "triggered": True},
            )
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store event",
        )
    return build_dispatch_response(event.id, report)
