#!/usr/bin/env python3
"""
Send a test alert to every registered push subscription.
This goes through the same path as POST /events: persist, stream, fan out.
Usage: python scripts/send_test_notification.py [low|medium|high]
"""
import asyncio
import sys
import os

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcm_alerts.core.config import settings
from mcm_alerts.schemas.notification import EventCreate
from mcm_alerts.services.backend import AlertBackend


async def send_test_notification(priority: str):
    print("=" * 70)
    print("MCM Alerts - Test Notification")
    print("=" * 70)
    
    if not settings.is_push_configured:
        print("\n[ERROR] VAPID keys not configured!")
        print("Run scripts/generate_vapid_keys.py and set VAPID_PRIVATE_KEY in your .env file")
        return
    
    backend = AlertBackend.from_settings(settings)
    await backend.start()
    try:
        subscriptions = await backend.registry.list()
        print(f"\n[INFO] {len(subscriptions)} subscription(s) registered")
        
        event, report = await backend.publish_alert(
            EventCreate(
                title="Test Notification",
                body="This is a test notification from MCM Alerts",
                type="test",
                priority=priority,
                metadata={"test": True},
            )
        )
        
        for outcome in report.per_recipient:
            marker = "[OK]" if outcome.success else f"[FAIL {outcome.error_code}]"
            print(f"  {marker} {outcome.subscription_id}")
        
        print("\n" + "=" * 70)
        print("SUMMARY")
        print("=" * 70)
        print(f"  Event id: {event.id} ({event.priority.value})")
        print(f"  Notifications sent: {report.success}")
        print(f"  Notifications failed: {report.failed}")
        print("=" * 70)
    finally:
        await backend.stop()


if __name__ == "__main__":
    asyncio.run(send_test_notification(sys.argv[1] if len(sys.argv) > 1 else "medium"))
