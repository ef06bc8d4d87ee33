"""
Shared pytest fixtures for the portal test suite.

The portal never touches a database; everything it knows comes from the
REST backend.  Tests therefore replace ``requests.request`` with a
:class:`FakeBackend` that answers from a small route table and records
every call, so both the transport layer and full page flows run without
network access.

Key Concepts Demonstrated:
- Fixture scopes (session app, function-scoped client and backend)
- Monkeypatched HTTP boundary with recorded calls
- Test data factories built on Faker
"""

import json
import os
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest
from faker import Faker

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"

from portal_app import create_app
from portal_app.api import ApiService
from portal_app.storage import TOKEN_KEY, USER_KEY, MemoryStorage
from portal_app.store import AppStore, Notifier
from shared.test_helpers import create_test_token, make_user


# Initialize Faker for generating test data
fake = Faker()

BACKEND_URL = "http://backend.test/api"


# -----------------------------------------------------------------------------
# Fake HTTP boundary
# -----------------------------------------------------------------------------

class FakeResponse:
    """Minimal stand-in for :class:`requests.Response`."""

    def __init__(
        self,
        status_code: int,
        payload: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.content = content

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeBackend:
    """
    Route table standing in for the Panchayat REST backend.

    Routes are keyed by ``(METHOD, path)`` with the path relative to the
    API base and without its query string.  A route answers with a
    :class:`FakeResponse`, raises a configured exception, or delegates
    to a callable.  Unknown routes answer 404.
    """

    def __init__(self, base_url: str = BACKEND_URL) -> None:
        self.base_url = base_url
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[dict[str, Any]] = []

    def on(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status: int = 200,
        *,
        raises: Exception | None = None,
        handler=None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> "FakeBackend":
        if raises is not None:
            self.routes[(method, path)] = raises
        elif handler is not None:
            self.routes[(method, path)] = handler
        else:
            self.routes[(method, path)] = FakeResponse(status, payload, content=content, headers=headers)
        return self

    def __call__(self, method: str, url: str, **kwargs) -> FakeResponse:
        parts = urlsplit(url)
        path = parts.path[len(urlsplit(self.base_url).path):] or "/"
        call = {
            "method": method,
            "path": path,
            "query": {key: values[0] for key, values in parse_qs(parts.query).items()},
            "headers": dict(kwargs.get("headers") or {}),
            "data": kwargs.get("data"),
            "files": kwargs.get("files"),
            "timeout": kwargs.get("timeout"),
        }
        self.calls.append(call)

        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, {"success": False, "message": "Not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(call)
        return route

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]

    def json_body(self, method: str, path: str, index: int = -1) -> Any:
        return json.loads(self.calls_to(method, path)[index]["data"])


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create the portal application once for the test session.

    Yields:
        Flask application instance configured for testing.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Provide a Flask test client scoped to a single test function.

    A fresh client per test keeps session cookies from leaking.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def backend(monkeypatch) -> FakeBackend:
    """Replace the HTTP layer with a fresh :class:`FakeBackend`."""
    fake_backend = FakeBackend()
    monkeypatch.setattr("portal_app.api.requests.request", fake_backend)
    return fake_backend


@pytest.fixture
def citizen() -> dict[str, Any]:
    return make_user(name=fake.name(), email=fake.email())


@pytest.fixture
def login_as(client):
    """
    Factory fixture that signs the test client in.

    Example:
        def test_page(login_as):
            user = login_as(role="admin")
    """

    def _login(role: str = "citizen", verified: bool = True, expired: bool = False) -> dict[str, Any]:
        user = make_user(role=role, verified=verified, name=fake.name(), email=fake.email())
        token = create_test_token(user_id=user["id"], email=user["email"], role=role, expired=expired)
        with client.session_transaction() as session:
            session[TOKEN_KEY] = token
            session[USER_KEY] = user
        return user

    return _login


# -----------------------------------------------------------------------------
# Store Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def storage() -> MemoryStorage:
    """Durable storage holding a signed-in citizen."""
    return MemoryStorage({TOKEN_KEY: create_test_token(), USER_KEY: make_user()})


@pytest.fixture
def api(storage) -> ApiService:
    return ApiService(BACKEND_URL, storage, timeout=1)


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def store(api, notifier) -> AppStore:
    return AppStore(api, notifier, max_workers=4)


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

def _object_id() -> str:
    return fake.hexify("^" * 24)


@pytest.fixture
def scheme_factory():
    def _create(**overrides: Any) -> dict[str, Any]:
        return {
            "id": _object_id(),
            "name": fake.sentence(nb_words=3).rstrip("."),
            "description": fake.paragraph(),
            "category": fake.random_element(["agriculture", "education", "health", "housing"]),
            **overrides,
        }

    return _create


@pytest.fixture
def application_factory():
    def _create(**overrides: Any) -> dict[str, Any]:
        return {
            "id": _object_id(),
            "title": fake.sentence(nb_words=4).rstrip("."),
            "type": "Water Connection",
            "description": fake.paragraph(),
            "status": "pending",
            "createdAt": fake.iso8601(),
            **overrides,
        }

    return _create


@pytest.fixture
def grievance_factory():
    def _create(**overrides: Any) -> dict[str, Any]:
        return {
            "_id": _object_id(),
            "title": fake.sentence(nb_words=4).rstrip("."),
            "description": fake.paragraph(),
            "category": "water_supply",
            "priority": "medium",
            "status": "open",
            "createdAt": fake.iso8601(),
            **overrides,
        }

    return _create


@pytest.fixture
def announcement_factory():
    def _create(**overrides: Any) -> dict[str, Any]:
        return {
            "_id": _object_id(),
            "title": fake.sentence(nb_words=4).rstrip("."),
            "content": fake.paragraph(),
            "type": "general",
            "priority": "medium",
            "status": "published",
            **overrides,
        }

    return _create


@pytest.fixture
def service_factory():
    def _create(**overrides: Any) -> dict[str, Any]:
        return {
            "_id": _object_id(),
            "name": fake.sentence(nb_words=3).rstrip("."),
            "description": fake.paragraph(),
            "category": "essential",
            "status": "active",
            **overrides,
        }

    return _create
