"""
Shared fixtures: a file-backed SQLite database per test, a recording push
service and an ASGI client wired to the application.
"""
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mcm_alerts.core.config import Settings
from mcm_alerts.core.exceptions import PermanentDeliveryFailure, TransientDeliveryFailure
from mcm_alerts.db.database import build_engine, create_tables, drop_tables
from mcm_alerts.main import create_application
from mcm_alerts.services.backend import AlertBackend
from mcm_alerts.services.payload import PushPayload


class FakePushService:
    """Records deliveries; endpoints can be scripted to fail"""
    
    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.gone: set = set()
        self.transient: set = set()
        self.public_key: Optional[str] = "BTestPublicKey"
    
    @property
    def is_configured(self) -> bool:
        return True
    
    async def send(self, subscription_info: Dict[str, Any], payload: PushPayload) -> None:
        endpoint = subscription_info["endpoint"]
        if endpoint in self.gone:
            raise PermanentDeliveryFailure("http_410", "Gone", 410)
        if endpoint in self.transient:
            raise TransientDeliveryFailure("http_500", "Server error", 500)
        self.sent.append({"endpoint": endpoint, "payload": payload})


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}",
        auto_create_tables=True,
        vapid_private_key="",
        stream_heartbeat_seconds=0.2,
    )


@pytest.fixture
def push_service() -> FakePushService:
    return FakePushService()


@pytest_asyncio.fixture
async def backend(test_settings, push_service):
    engine = build_engine(test_settings.database_url)
    await create_tables(engine)
    alert_backend = AlertBackend(engine, push_service=push_service, settings=test_settings)
    await alert_backend.start()
    yield alert_backend
    await alert_backend.stop()
    await drop_tables(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def registry(backend):
    return backend.registry


@pytest_asyncio.fixture
async def store(backend):
    return backend.store


@pytest.fixture
def app(backend):
    return create_application(backend)


@pytest_asyncio.fixture
async def client(app):
    """HTTP client against the app; the backend fixture owns startup/shutdown"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def subscription_body(endpoint: str = "https://push.example.com/send/abc") -> Dict[str, Any]:
    return {
        "endpoint": endpoint,
        "keys": {"p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM", "auth": "tBHItJI5svbpez7KI4CCXg"},
    }


class FakeTimer:
    def __init__(self, scheduler: "FakeScheduler", delay: float, callback):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self.cancelled = False
    
    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock for reconnect and auto-dismiss timers"""
    
    def __init__(self):
        self.timers: List[FakeTimer] = []
    
    def call_later(self, delay: float, callback) -> FakeTimer:
        timer = FakeTimer(self, delay, callback)
        self.timers.append(timer)
        return timer
    
    @property
    def pending(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]
    
    def fire_next(self) -> FakeTimer:
        timer = self.pending[0]
        self.timers.remove(timer)
        timer.callback()
        return timer


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
