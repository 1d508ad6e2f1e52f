from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'company_registry.app'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    os.environ.setdefault("ENVIRONMENT", "development")


ALLOWED_COUNTRY = "Test"
CALLER_IP = "44.44.44.44"


@pytest.fixture
def geolocator():
    locator = Mock()
    locator.country_for_ip.return_value = ALLOWED_COUNTRY
    return locator


@pytest.fixture
def make_client(geolocator):
    from fastapi.testclient import TestClient

    from company_registry.app import create_app
    from company_registry.core.shutdown import ShutdownCoordinator
    from company_registry.services.memory_store import InMemoryCompanyStore

    def _make(store=None, locator=None, coordinator=None, timeout=10):
        app = create_app(
            store=store if store is not None else InMemoryCompanyStore(),
            geolocator=locator if locator is not None else geolocator,
            allowed_countries={ALLOWED_COUNTRY},
            request_timeout_seconds=timeout,
            coordinator=coordinator if coordinator is not None else ShutdownCoordinator(),
            trust_forwarded_for=True,
            allowed_origins=["http://localhost:3000"],
        )
        client = TestClient(app)
        client.headers.update({"X-Forwarded-For": CALLER_IP})
        return client

    return _make


@pytest.fixture
def request_ctx():
    from company_registry.core.context import RequestContext

    return RequestContext.create("/test", timeout_seconds=5)
