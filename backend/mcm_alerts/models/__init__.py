"""
Models module initialization
"""
from mcm_alerts.models.push_subscription import PushSubscription
from mcm_alerts.models.notification import AlertEvent

__all__ = [
    "PushSubscription",
    "AlertEvent",
]
