"""
@file: tests/conftest.py
@description: Shared fixtures: isolated settings, readiness tracker, app and client factories
@dependencies: dealgate.config, dealgate.app, fastapi.testclient
@created: 2026-10-14
"""

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient

from dealgate import config as cfg
from dealgate.app import create_app
from dealgate.realtime import RealtimeRegistry
from dealgate.runtime_state import ReadinessTracker

ALLOWED_ORIGIN = "https://deals.example.com"
OTHER_ORIGIN = "http://localhost:5173"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # keep a developer's .env out of the test run
    monkeypatch.chdir(tmp_path)
    for name in ("DATABASE_URL", "ADMIN_EMAIL", "ADMIN_PASSWORD", "SENTRY_DSN", "PORT"):
        monkeypatch.delenv(name, raising=False)
    cfg.reset_settings_cache()
    yield
    cfg.reset_settings_cache()


@pytest.fixture()
def settings():
    return cfg.Settings(
        CORS_ALLOWED_ORIGINS=f"{ALLOWED_ORIGIN},{OTHER_ORIGIN}/",
        GATED_PREFIXES="/api/auth,/api/deals,/api/flash-orders",
        PORT=8080,
    )


@pytest.fixture()
def readiness():
    return ReadinessTracker()


@pytest.fixture()
def registry():
    return RealtimeRegistry()


@pytest.fixture()
def make_client(settings, readiness, registry):
    def _factory(data_routers=None, **kwargs) -> TestClient:
        app = create_app(
            settings,
            readiness=readiness,
            registry=registry,
            data_routers=data_routers,
        )
        return TestClient(app, **kwargs)

    return _factory


@pytest.fixture()
def client(make_client):
    return make_client()
