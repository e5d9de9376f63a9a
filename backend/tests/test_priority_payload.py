"""
Tests for priority normalisation, delivery profiles and push payloads
"""
import json
from datetime import datetime, timezone

import pytest

from mcm_alerts.core.priority import PRIORITY_PROFILES, Priority, profile_for
from mcm_alerts.services.alert_templates import DEFAULT_MESSAGE, DEFAULT_TITLE, render_alert
from mcm_alerts.services.payload import build_push_payload, event_tag


class TestPriority:
    
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("high", Priority.HIGH),
            ("HIGH", Priority.HIGH),
            ("urgent", Priority.HIGH),
            ("normal", Priority.MEDIUM),
            ("low", Priority.LOW),
            (None, Priority.MEDIUM),
            ("whatever", Priority.MEDIUM),
            (Priority.LOW, Priority.LOW),
        ],
    )
    def test_parse(self, raw, expected):
        assert Priority.parse(raw) is expected
    
    def test_profiles_match_delivery_table(self):
        high = PRIORITY_PROFILES[Priority.HIGH]
        assert high.require_interaction is True
        assert high.vibrate_list() == [300, 100, 300, 100, 300]
        assert high.ttl == 86400
        assert high.urgency == "high"
        
        medium = PRIORITY_PROFILES[Priority.MEDIUM]
        assert medium.require_interaction is False
        assert medium.vibrate_list() == [200, 100, 200]
        assert medium.ttl == 3600
        assert medium.urgency == "normal"
        
        low = PRIORITY_PROFILES[Priority.LOW]
        assert low.require_interaction is False
        assert low.vibrate_list() == [100]
        assert low.ttl == 3600
        assert low.urgency == "normal"
    
    def test_every_priority_has_a_profile(self):
        for priority in Priority:
            assert profile_for(priority) is PRIORITY_PROFILES[priority]


class TestPushPayload:
    
    def test_high_priority_payload(self):
        created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        payload = build_push_payload(
            event_id=42,
            title="Site down",
            body="example.com returned 503",
            type="system",
            priority="high",
            metadata={"site": "example.com"},
            created_at=created,
        )
        
        assert payload.tag == "mcm-42"
        assert payload.require_interaction is True
        assert payload.vibrate == [300, 100, 300, 100, 300]
        assert payload.ttl == 86400
        assert payload.urgency == "high"
        assert [action["action"] for action in payload.actions] == ["acknowledge", "view"]
        assert payload.data["eventId"] == 42
        assert payload.data["priority"] == "high"
        assert payload.data["metadata"] == {"site": "example.com"}
        assert payload.data["createdAt"] == created.isoformat()
    
    def test_message_document_is_json(self):
        payload = build_push_payload(event_id=7, title="t", body="b", priority="low")
        message = json.loads(payload.to_json())
        
        assert message["title"] == "t"
        assert message["body"] == "b"
        assert message["tag"] == "mcm-7"
        assert message["requireInteraction"] is False
        assert message["vibrate"] == [100]
        assert [action["action"] for action in message["actions"]] == ["view", "dismiss"]
        # TTL and urgency travel as headers, not in the document
        assert "ttl" not in message
    
    def test_url_defaults_and_metadata_override(self):
        default = build_push_payload(event_id=1, title="t", body="b")
        linked = build_push_payload(event_id=1, title="t", body="b", metadata={"url": "/events/1"})
        
        assert default.data["url"] == "/"
        assert linked.data["url"] == "/events/1"
    
    def test_event_tag(self):
        assert event_tag(123) == "mcm-123"


class TestAlertTemplates:
    
    def test_known_template(self):
        assert render_alert("alert", Priority.HIGH) == (
            "🔴 HIGH PRIORITY ALERT",
            "Critical alert requiring immediate attention!",
        )
    
    def test_unknown_type_falls_back_to_defaults(self):
        assert render_alert("custom", Priority.LOW) == (DEFAULT_TITLE, DEFAULT_MESSAGE)
