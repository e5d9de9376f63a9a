"""
Push Subscription Model - For Web Push Notifications
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mcm_alerts.db.database import Base
from mcm_alerts.core.timezone import utc_now


class PushSubscription(Base):
    """
    A browser push subscription.
    One row per push endpoint; re-registering the same endpoint refreshes it.
    """
    
    __tablename__ = "push_subscriptions"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    
    # The push subscription endpoint (unique per device/browser)
    endpoint: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
        index=True
    )
    
    # Keys from the push subscription
    p256dh_key: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Public key for encryption"
    )
    auth_key: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Auth secret for encryption"
    )
    
    user_agent: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Browser/device info"
    )
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    
    def get_subscription_info(self) -> dict:
        """Get subscription info for pywebpush"""
        return {
            "endpoint": self.endpoint,
            "keys": {
                "p256dh": self.p256dh_key,
                "auth": self.auth_key
            }
        }
    
    def __repr__(self) -> str:
        return f"<PushSubscription id={self.id} endpoint={self.endpoint[:40]}>"
