"""Pytest configuration and shared fixtures."""

import os

import pytest
from dotenv import load_dotenv

from db.client import close_db, init_db

# Load env vars
load_dotenv()


# =============================================================================
# SAFETY CHECK: Store tests only run against a local Supabase
# =============================================================================

ALLOWED_STORE_HOSTS = ("localhost", "127.0.0.1", "host.docker.internal", "supabase")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "online: mark test as online test (hits external APIs)")
    config.addinivalue_line("markers", "store: mark test as needing a running store")


def pytest_collection_modifyitems(config, items):
    """Skip store tests unless the configured store is local."""
    url = os.getenv("SUPABASE_URL", "")
    if any(host in url for host in ALLOWED_STORE_HOSTS):
        return
    skip = pytest.mark.skip(reason="SUPABASE_URL is not a local store")
    for item in items:
        if "store" in item.keywords:
            item.add_marker(skip)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def store():
    """Initialize the store client for tests marked with @pytest.mark.store."""
    client = await init_db()
    yield client
    await close_db()


@pytest.fixture(autouse=True)
def no_slack(monkeypatch):
    """Tests never post to a real webhook."""
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
