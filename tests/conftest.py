"""Shared pytest fixtures for JengaTrack tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from helpers import FakeSender, InMemoryProjectStore  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep signature checks off and the dashboard URL fixed unless a test sets them."""
    monkeypatch.delenv("TWILIO_VALIDATE_SIGNATURE", raising=False)
    monkeypatch.setenv("DASHBOARD_URL", "https://jengatrack.test")


@pytest.fixture(autouse=True)
def _reset_dedupe_cache():
    """The MessageSid cache is a module-level global shared by every request."""
    import jengatrack.api.routes.webhooks_whatsapp as webhook_module

    webhook_module._get_dedupe_cache().clear()
    yield
    webhook_module._get_dedupe_cache().clear()


@pytest.fixture
def store():
    return InMemoryProjectStore()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def client(store, sender):
    """Test client with the in-memory store and recording sender injected."""
    import jengatrack.api.routes.webhooks_whatsapp as webhook_module
    from jengatrack.api.factory import create_app

    original_store = webhook_module._get_store
    original_sender = webhook_module._get_sender
    webhook_module._get_store = lambda: store
    webhook_module._get_sender = lambda: sender

    yield TestClient(create_app())

    webhook_module._get_store = original_store
    webhook_module._get_sender = original_sender
