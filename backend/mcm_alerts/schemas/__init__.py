"""
Schemas module initialization
"""
from mcm_alerts.schemas.base import CamelModel
from mcm_alerts.schemas.subscription import (
    SubscriptionKeys,
    SubscriptionCreate,
    SubscriptionRegistered,
    SubscriptionResponse,
    UnsubscribeRequest,
)
from mcm_alerts.schemas.notification import (
    EventCreate,
    EventResponse,
    DeliveryOutcomeResponse,
    DispatchResponse,
    AcknowledgeRequest,
    AcknowledgeAllResponse,
    PollResponse,
    EventStats,
    TriggerAlertRequest,
)

__all__ = [
    "CamelModel",
    "SubscriptionKeys",
    "SubscriptionCreate",
    "SubscriptionRegistered",
    "SubscriptionResponse",
    "UnsubscribeRequest",
    "EventCreate",
    "EventResponse",
    "DeliveryOutcomeResponse",
    "DispatchResponse",
    "AcknowledgeRequest",
    "AcknowledgeAllResponse",
    "PollResponse",
    "EventStats",
    "TriggerAlertRequest",
]
