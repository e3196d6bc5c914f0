import os

# main.py builds an app at import time; keep that from reaching Sentry.
os.environ["API_ENV"] = "test"

import pytest

from config import Settings, get_settings
from main import create_app
from monitoring.handle import MonitoringHandle


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(api_env="test", sentry_dsn=None, sentry_release=None, log_level="DEBUG")


@pytest.fixture
def sentry_calls(monkeypatch):
    """Record calls to sentry_sdk.init instead of starting a real client."""
    calls = []

    def fake_init(*args, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr("core.sentry_config.sentry_sdk.init", fake_init)
    return calls


@pytest.fixture
def app(settings):
    return create_app(settings=settings, monitoring=MonitoringHandle.disabled("injected"))
