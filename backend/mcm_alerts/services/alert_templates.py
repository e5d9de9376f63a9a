"""
Canned alert texts used by the trigger endpoint
"""
from typing import Dict, Tuple

from mcm_alerts.core.priority import Priority

DEFAULT_TITLE = "MCM Alert"
DEFAULT_MESSAGE = "New notification from MCM Alerts system."

ALERT_TITLES: Dict[str, Dict[Priority, str]] = {
    "emergency": {
        Priority.HIGH: "🚨 CRITICAL EMERGENCY",
        Priority.MEDIUM: "⚠️ Emergency Alert",
        Priority.LOW: "🔔 Emergency Notice",
    },
    "alert": {
        Priority.HIGH: "🔴 HIGH PRIORITY ALERT",
        Priority.MEDIUM: "🟡 System Alert",
        Priority.LOW: "🟢 General Alert",
    },
    "system": {
        Priority.HIGH: "⚡ Critical System Issue",
        Priority.MEDIUM: "🔧 System Update",
        Priority.LOW: "📋 System Notice",
    },
    "price_change": {
        Priority.HIGH: "📈 Major Price Movement",
        Priority.MEDIUM: "💰 Price Alert",
        Priority.LOW: "📊 Price Update",
    },
}

ALERT_MESSAGES: Dict[str, Dict[Priority, str]] = {
    "emergency": {
        Priority.HIGH: "IMMEDIATE ACTION REQUIRED - Critical system failure detected!",
        Priority.MEDIUM: "Emergency situation detected. Please review immediately.",
        Priority.LOW: "Emergency notice posted. Review when possible.",
    },
    "alert": {
        Priority.HIGH: "Critical alert requiring immediate attention!",
        Priority.MEDIUM: "Important alert notification.",
        Priority.LOW: "General alert notification for your review.",
    },
    "system": {
        Priority.HIGH: "Critical system issue affecting operations!",
        Priority.MEDIUM: "System update completed successfully.",
        Priority.LOW: "Routine system maintenance notification.",
    },
    "price_change": {
        Priority.HIGH: "Significant price movement detected - review positions!",
        Priority.MEDIUM: "Notable price change in monitored items.",
        Priority.LOW: "Minor price adjustment recorded.",
    },
}


def render_alert(type: str, priority: Priority) -> Tuple[str, str]:
    """Title and message for a canned alert; unknown types get the defaults"""
    level = Priority.parse(priority)
    title = ALERT_TITLES.get(type, {}).get(level, DEFAULT_TITLE)
    message = ALERT_MESSAGES.get(type, {}).get(level, DEFAULT_MESSAGE)
    return title, message
