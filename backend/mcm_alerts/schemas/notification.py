"""
Alert event schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, Field, field_validator

from mcm_alerts.core.priority import Priority
from mcm_alerts.schemas.base import CamelModel


class EventCreate(CamelModel):
    """
    Producer request to publish an alert.
    
    The body may be sent as "body" or "message".
    """
    title: Optional[str] = None
    body: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("body", "message"),
    )
    type: str = "alert"
    priority: Priority = Priority.MEDIUM
    metadata: Dict[str, Any] = Field(default_factory=dict)
    target_subscription_ids: Optional[List[UUID]] = Field(
        None,
        validation_alias=AliasChoices("targetSubscriptionIds", "target_subscription_ids"),
    )
    
    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: Any) -> Priority:
        return Priority.parse(value)
    
    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return "alert"
        return str(value).strip()
    
    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, value: Any) -> Dict[str, Any]:
        return value or {}


class EventResponse(CamelModel):
    id: int
    title: str
    body: str
    type: str
    priority: Priority
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta_data", "metadata"),
    )
    acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    sent_count: int = 0
    failed_count: int = 0
    created_at: datetime


class DeliveryOutcomeResponse(CamelModel):
    subscription_id: UUID
    success: bool
    error_code: Optional[str] = None
    timestamp: datetime


class DispatchResponse(CamelModel):
    event_id: int
    total: int
    success: int
    failed: int
    per_recipient: List[DeliveryOutcomeResponse] = []


class AcknowledgeRequest(CamelModel):
    acknowledge_all: bool = False


class AcknowledgeAllResponse(CamelModel):
    acknowledged: int


class PollResponse(CamelModel):
    events: List[EventResponse]
    cursor: Optional[datetime] = None


class EventStats(CamelModel):
    total: int
    unacknowledged: int
    by_type: Dict[str, int]
    by_priority: Dict[str, int]


class TriggerAlertRequest(CamelModel):
    """Canned alert from the trigger page"""
    type: str = "alert"
    priority: Priority = Priority.MEDIUM
    metadata: Dict[str, Any] = Field(default_factory=dict)
    
    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: Any) -> Priority:
        return Priority.parse(value)
