"""Shared pytest fixtures: a scripted backend and an in-memory store."""

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from propconnect.portal.state import Store
from propconnect.shared.core.configuration import StorageConfig, SystemConfig, UIConfig

Responder = Union[
    httpx.Response,
    Callable[[httpx.Request], httpx.Response],
    Callable[[httpx.Request], Awaitable[httpx.Response]],
]


def json_response(status_code: int = 200, body: Any = None) -> httpx.Response:
    return httpx.Response(status_code, json=body if body is not None else {})


class FakeBackend:
    """Routes requests by ``(method, path)`` to scripted responses.

    A route holds a queue; the last response repeats once the queue is
    drained. Unrouted requests get a 404 error body. Async responders are
    awaited by the transport, which lets concurrent requests interleave.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(self, method: str, path: str, *responses: Responder) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responses)

    def json(self, method: str, path: str, body: Any = None, status_code: int = 200) -> None:
        self.add(method, path, json_response(status_code, body))

    def error(self, method: str, path: str, status_code: int, message: str, code: Optional[str] = None) -> None:
        self.add(method, path, json_response(status_code, {"error": {"code": code, "message": message}}))

    def _handle(self, request: httpx.Request) -> Union[httpx.Response, Awaitable[httpx.Response]]:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return json_response(404, {"error": {"code": "NOT_FOUND", "message": "Not found"}})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(responder):
            return responder(request)
        return responder

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def last_json(self, method: str, path: str) -> Any:
        return json.loads(self.calls(method, path)[-1].content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config() -> SystemConfig:
    return SystemConfig(
        storage=StorageConfig(db_path=":memory:"),
        ui=UIConfig(default_toast_duration_ms=100),
    )


@pytest_asyncio.fixture
async def store(config, backend):
    store = await Store.open(config, transport=backend.transport)
    yield store
    await store.close()


# --- Sample records ---


def user_record(**overrides) -> Dict[str, Any]:
    record = {
        "user_id": "user_1",
        "email": "sam@example.com",
        "full_name": "Sam Seeker",
        "phone_number": "555-0100",
        "email_verified": True,
    }
    record.update(overrides)
    return record


def agent_record(**overrides) -> Dict[str, Any]:
    record = {
        "agent_id": "agent_1",
        "email": "alex@realty.com",
        "full_name": "Alex Agent",
        "phone_number": "555-0200",
        "license_number": "CA-123",
        "license_state": "CA",
        "agency_name": "Sunset Realty",
        "approved": True,
        "approval_status": "approved",
        "account_status": "active",
    }
    record.update(overrides)
    return record


def admin_record(**overrides) -> Dict[str, Any]:
    record = {"admin_id": "admin_1", "email": "root@propconnect.com", "full_name": "Ada Admin", "role": "admin"}
    record.update(overrides)
    return record


def property_record(**overrides) -> Dict[str, Any]:
    record = {
        "property_id": "prop_1",
        "agent_id": "agent_1",
        "title": "Sunny craftsman near the park",
        "description": "A" * 60,
        "listing_type": "sale",
        "property_type": "house",
        "status": "active",
        "price": "500000.00",
        "address_street": "12 Oak St",
        "address_city": "Austin",
        "address_state": "TX",
        "address_zip": "78701",
        "bedrooms": 3,
        "bathrooms": "2.5",
        "square_footage": 2000,
    }
    record.update(overrides)
    return record


def seeker_login(backend: FakeBackend, token: str = "user-token", favorites: Optional[List[str]] = None) -> None:
    """Script a successful seeker login with its follow-up loads."""
    backend.json("POST", "/api/auth/login", {"token": token, "user": user_record()})
    backend.json("GET", "/api/favorites", {"data": [{"property_id": p} for p in (favorites or [])]})
    backend.json("GET", "/api/users/notification-preferences", {"user_id": "user_1"})


def agent_login(backend: FakeBackend, token: str = "agent-token", **agent) -> None:
    backend.json("POST", "/api/auth/agent/login", {"token": token, "agent": agent_record(**agent)})
    backend.json("GET", "/api/agents/notification-preferences", {"agent_id": "agent_1"})
    backend.json("GET", "/api/agents/dashboard/stats", {"unread_inquiry_count": 3, "total_active_listings": 7})
