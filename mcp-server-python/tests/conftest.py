"""
Shared fixtures: an in-memory fake of the marketplace REST backend.

The fake plugs into httpx through ``httpx.MockTransport`` and records every
request, so tests can assert exactly which calls reached the network.
Routes are keyed by (method, path) with the ``/api`` prefix stripped.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from config import Config
from gateway.marketplace_client import MarketplaceClient
from store.entity_store import EntityStore
from sync.lifecycle import LifecycleEngine
from utils.mutation_guard import MutationGuard

API_URL = "http://testserver/api"
TOKEN = "test-token-123"

RouteKey = Tuple[str, str]


@dataclass
class Gate:
    """Holds a response until the test releases it."""

    arrived: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)


class FakeBackend:
    """Scriptable stand-in for the REST backend."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[RouteKey, Any] = {}
        self._gates: Dict[RouteKey, Gate] = {}

    def route(self, method: str, path: str, json_body: Any = None, status: int = 200) -> None:
        """Answer ``method path`` with a JSON body (or an empty body when None)."""
        self._routes[(method, path)] = (status, json_body)

    def route_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._routes[(method, path)] = handler

    def fail(self, method: str, path: str, exc_type=httpx.ConnectError) -> None:
        """Make ``method path`` raise a transport error."""
        self._routes[(method, path)] = exc_type

    def block(self, method: str, path: str) -> Gate:
        gate = Gate()
        self._gates[(method, path)] = gate
        return gate

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or self.path_of(r) == path)
        ]

    @staticmethod
    def path_of(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api")

    @staticmethod
    def body_of(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, self.path_of(request))

        gate = self._gates.get(key)
        if gate is not None:
            gate.arrived.set()
            await gate.release.wait()

        route = self._routes.get(key)
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Route not found"})
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("connection refused", request=request)
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gateway(backend) -> MarketplaceClient:
    return MarketplaceClient(API_URL, token=TOKEN, transport=backend.transport())


@pytest.fixture
def store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def guard() -> MutationGuard:
    return MutationGuard()


@pytest.fixture
def make_engine(gateway, store, guard):
    """Build a LifecycleEngine for a given role sharing one gateway, store and guard."""

    def _make(role: str) -> LifecycleEngine:
        return LifecycleEngine(gateway, store, guard, role)

    return _make


@pytest.fixture
def make_config(monkeypatch):
    """Build a Config from a clean MARKETPLACE_* environment plus overrides."""

    def _make(**env: str) -> Config:
        for name in list(os.environ):
            if name.startswith("MARKETPLACE_"):
                monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("MARKETPLACE_API_URL", API_URL)
        monkeypatch.setenv("MARKETPLACE_API_TOKEN", TOKEN)
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return Config()

    return _make


def job(job_id: str, status: str, **extra) -> Dict[str, Any]:
    return {"_id": job_id, "status": status, "title": f"Job {job_id}", **extra}


def application(application_id: str, status: str, **extra) -> Dict[str, Any]:
    return {"_id": application_id, "status": status, "job": {"_id": "j1", "title": "Job j1"}, **extra}


def inquiry(inquiry_id: str, status: str, **extra) -> Dict[str, Any]:
    return {"_id": inquiry_id, "status": status, "name": "Ada", "email": "ada@example.com", **extra}


def notification(notification_id: str, is_read: bool = False, **extra) -> Dict[str, Any]:
    return {
        "_id": notification_id,
        "isRead": is_read,
        "type": "application_status",
        "title": f"Notification {notification_id}",
        **extra,
    }


def wrap(data: Any, **extra) -> Dict[str, Any]:
    """Wrap a payload the way the backend does."""
    return {"success": True, "data": data, **extra}
