"""API test fixtures: TestClient over the in-memory gateway."""

import pytest
from starlette.testclient import TestClient

from main import create_app


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def app(gateway, factory_calls):
    """App wired to the shared in-memory gateway; records which actor each request used."""

    def gateway_factory(actor):
        factory_calls.append(actor)
        return gateway

    return create_app(gateway_factory=gateway_factory)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def owner_headers():
    return {"X-Role": "owner", "X-User-Id": "10"}


@pytest.fixture
def admin_headers():
    return {"X-Role": "admin", "X-User-Id": "1"}


@pytest.fixture
def user_headers():
    return {"X-Role": "user", "X-User-Id": "20"}
