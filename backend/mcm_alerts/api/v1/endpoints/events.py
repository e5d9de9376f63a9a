"""
Alert Event Endpoints
Publish, list, stream, poll and acknowledge alerts.
"""
from typing import Any, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from mcm_alerts.api.deps import get_backend
from mcm_alerts.core.exceptions import StoreFailure, ValidationError
from mcm_alerts.core.sse import sse_event_stream
from mcm_alerts.core.timezone import parse_since
from mcm_alerts.schemas.notification import (
    AcknowledgeAllResponse,
    AcknowledgeRequest,
    DispatchResponse,
    EventCreate,
    EventResponse,
    EventStats,
    PollResponse,
)
from mcm_alerts.services.backend import AlertBackend
from mcm_alerts.services.dispatcher import DispatchReport

logger = logging.getLogger(__name__)

router = APIRouter()


def build_dispatch_response(event_id: int, report: DispatchReport) -> DispatchResponse:
    return DispatchResponse(
        event_id=event_id,
        total=report.total,
        success=report.success,
        failed=report.failed,
        per_recipient=[
            {
                "subscription_id": outcome.subscription_id,
                "success": outcome.success,
                "error_code": outcome.error_code,
                "timestamp": outcome.timestamp,
            }
            for outcome in report.per_recipient
        ],
    )


@router.post("", response_model=DispatchResponse)
async def create_event(
    body: EventCreate,
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    """
    Publish an alert: persist it, stream it to realtime clients and push it
    to every registered (or targeted) subscription.
    """
    try:
        event, report = await backend.publish_alert(body)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store event",
        )
    return build_dispatch_response(event.id, report)


@router.get("", response_model=List[EventResponse])
async def list_events(
    limit: Optional[int] = Query(None, ge=1),
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    """Most recent events, newest first"""
    settings = backend.settings
    limit = min(limit or settings.recent_events_limit, settings.max_events_limit)
    try:
        return await backend.store.list_recent(limit)
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch events",
        )


@router.put("", response_model=AcknowledgeAllResponse)
async def acknowledge_all(
    body: AcknowledgeRequest,
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    if not body.acknowledge_all:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Set acknowledgeAll to true to acknowledge every event",
        )
    count = await backend.store.acknowledge_all()
    return AcknowledgeAllResponse(acknowledged=count)


@router.get("/stream")
async def stream_events(backend: AlertBackend = Depends(get_backend)) -> StreamingResponse:
    """Server-sent events: "subscribed" once, then one "notification" per new event"""
    return StreamingResponse(
        sse_event_stream(backend.change_feed, backend.settings.stream_heartbeat_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/poll", response_model=PollResponse)
async def poll_events(
    since: Optional[str] = Query(None, description="ISO-8601 timestamp or epoch milliseconds"),
    backend: AlertBackend = Depends(get_backend),
) -> Any:
    """Events created strictly after the cursor, oldest first"""
    try:
        cursor = parse_since(since)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid since parameter")
    try:
        events = await backend.store.list_since(cursor, limit=backend.settings.max_events_limit)
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch events",
        )
    if events:
        cursor = events[-1].created_at
    return PollResponse(
        events=[EventResponse.model_validate(event) for event in events],
        cursor=cursor,
    )


@router.get("/stats", response_model=EventStats)
async def event_stats(backend: AlertBackend = Depends(get_backend)) -> Any:
    try:
        return EventStats(**await backend.store.stats())
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute stats",
        )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int, backend: AlertBackend = Depends(get_backend)) -> Any:
    event = await backend.store.get(event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.put("/{event_id}", response_model=EventResponse)
async def acknowledge_event(event_id: int, backend: AlertBackend = Depends(get_backend)) -> Any:
    """Acknowledge one event. Acknowledging twice is harmless."""
    try:
        event = await backend.store.acknowledge(event_id)
    except StoreFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to acknowledge event",
        )
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event
