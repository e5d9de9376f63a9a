"""
Push subscription schemas
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from mcm_alerts.schemas.base import CamelModel


class SubscriptionKeys(CamelModel):
    """Keys from PushSubscription.toJSON()"""
    p256dh: Optional[str] = None
    auth: Optional[str] = None


class SubscriptionCreate(CamelModel):
    """Registration body; validity is checked by the registry"""
    endpoint: Optional[str] = None
    keys: Optional[SubscriptionKeys] = None
    user_agent: Optional[str] = Field(None, max_length=500)


class SubscriptionRegistered(CamelModel):
    id: UUID
    created: bool
    message: str


class SubscriptionResponse(CamelModel):
    id: UUID
    endpoint: str
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UnsubscribeRequest(CamelModel):
    endpoint: str = Field(..., min_length=1)
