"""
Shared fixtures: a fake OpenAI upstream, a recording sleep, and a
TestClient wired to both through dependency overrides.
"""

from __future__ import annotations

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from fakes import FakeOpenAI, FakeSleep, make_settings


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def upstream() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def api_client(fake_sleep):
    """Factory: TestClient against the given fake upstream and settings."""
    from main import app
    from app.api.routes import get_sleep, get_upstream_http_client
    from app.core.config import get_settings

    def build(upstream: FakeOpenAI, settings: Optional[Settings] = None) -> TestClient:
        settings = settings or make_settings()
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_upstream_http_client] = upstream.client
        app.dependency_overrides[get_sleep] = lambda: fake_sleep
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()
