"""
Alert Event Model
Every alert posted by a producer, fanned out to subscribers and streamed to clients
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Enum as SQLEnum, Integer, JSON, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from mcm_alerts.core.priority import Priority
from mcm_alerts.core.timezone import utc_now
from mcm_alerts.db.database import Base


class AlertEvent(Base):
    """
    An alert notification.
    Ordered by created_at, ties broken by id. Acknowledgment is one-way.
    """
    
    __tablename__ = "notifications"
    
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True
    )
    
    # Content
    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Alert title"
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Alert body"
    )
    
    type: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="alert",
        index=True,
        comment="Free-form tag (alert, emergency, system, price_change, custom)"
    )
    priority: Mapped[Priority] = mapped_column(
        SQLEnum(
            Priority,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=Priority.MEDIUM
    )
    
    # "metadata" is reserved on declarative classes
    meta_data: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=dict
    )
    
    # Acknowledgment
    acknowledged: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    
    # Delivery stats
    sent_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )
    failed_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<AlertEvent id={self.id} priority={self.priority} title={self.title}>"
