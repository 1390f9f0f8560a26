# tests/conftest.py
"""
Shared pytest fixtures for the rotator tests.

Provides:
- A fake browser backend that records sessions and steps
- A fake credential validator
- Sample recordings and mapping lists
- An httpx client bound to the ASGI app
"""
import copy
import json
from typing import Any, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from uirotator.api.app import create_app
from uirotator.automation.monitor import AvailabilityMonitor
from uirotator.core.config import Settings
from uirotator.core.models import Step


# ═══════════════════════════════════════════════════════
# FAKES
# ═══════════════════════════════════════════════════════

class FakeEngine:
    """Stands in for a browser session."""

    def __init__(self, backend: "FakeBackend"):
        self.backend = backend
        self.started = False
        self.stop_calls = 0
        self.steps: List[Step] = []

    async def start(self) -> None:
        if self.backend.launch_error is not None:
            raise self.backend.launch_error
        self.started = True

    async def stop(self) -> None:
        self.stop_calls += 1

    async def run_step(self, step: Step, timeout_ms: int) -> None:
        self.steps.append(step)
        self.backend.timeouts.append(timeout_ms)
        if self.backend.fail_at is not None and len(self.steps) == self.backend.fail_at:
            raise RuntimeError(f"No element found for step {step.type}")


class FakeBackend:
    def __init__(self, fail_at: Optional[int] = None, launch_error: Optional[Exception] = None):
        self.fail_at = fail_at
        self.launch_error = launch_error
        self.sessions: List[FakeEngine] = []
        self.timeouts: List[int] = []

    def factory(self) -> FakeEngine:
        engine = FakeEngine(self)
        self.sessions.append(engine)
        return engine


class FakeValidator:
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.calls: List[str] = []

    async def validate(self, creds: str) -> bool:
        self.calls.append(creds)
        return self.accept


# ═══════════════════════════════════════════════════════
# SAMPLE DATA
# ═══════════════════════════════════════════════════════

USERNAME_SELECTORS = [["aria/Username"], ["#username"]]
PASSWORD_SELECTORS = [["#password"]]
NEW_PASSWORD_SELECTORS = [["#new_password"]]

# Canonical serialization, as sent by the control plane.
USERNAME_MAPPING = '[["aria/Username"],["#username"]]'
PASSWORD_MAPPING = '[["#password"]]'
NEW_PASSWORD_MAPPING = '[["#new_password"]]'


def make_recording() -> Dict[str, Any]:
    return {
        "title": "Change portal password",
        "timeout": 7000,
        "steps": [
            {"type": "setViewport", "width": 1280, "height": 720, "deviceScaleFactor": 1,
             "isMobile": False, "hasTouch": False, "isLandscape": False},
            {"type": "navigate", "url": "https://portal.example.test/login",
             "assertedEvents": [{"type": "navigation", "url": "https://portal.example.test/login"}]},
            {"type": "change", "value": "recorded-user", "selectors": USERNAME_SELECTORS, "target": "main"},
            {"type": "change", "value": "recorded-pass", "selectors": PASSWORD_SELECTORS, "target": "main"},
            {"type": "click", "target": "main", "selectors": [["aria/Sign in"], ["button[type=submit]"]],
             "offsetX": 12, "offsetY": 8},
            {"type": "change", "value": "recorded-new", "selectors": NEW_PASSWORD_SELECTORS, "target": "main"},
            {"type": "keyDown", "target": "main", "key": "Enter"},
        ],
        "createdBy": "recorder",
    }


def make_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "username": "alice",
        "password": "current-secret",
        "passwordOptions": {"length": 16, "numbers": True, "symbols": True, "strict": True},
        "recording": make_recording(),
        "usernameMappings": [USERNAME_MAPPING],
        "passwordMappings": [PASSWORD_MAPPING],
        "newPasswordMappings": [NEW_PASSWORD_MAPPING],
        "targetUrl": "https://portal.example.test",
    }
    payload.update(overrides)
    return payload


def make_body(payload: Dict[str, Any]) -> Dict[str, str]:
    return {"payload": json.dumps(payload)}


# ═══════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════

@pytest.fixture
def recording_data() -> Dict[str, Any]:
    return copy.deepcopy(make_recording())


@pytest.fixture
def settings() -> Settings:
    return Settings(expected_access_id="p-gw123", step_timeout_ms=5000, recording_timeout_s=30)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture
def app(settings, backend, validator):
    monitor = AvailabilityMonitor(backend.factory, interval_s=60)
    return create_app(settings, validator=validator, engine_factory=backend.factory, monitor=monitor)


@pytest.fixture
async def client(app):
    """Async HTTP client for testing the rotator endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
