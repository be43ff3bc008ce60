"""Test doubles shared by the test modules."""

import fnmatch
import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

RECORD_STORE_URL = "http://records.test"

# Monday 2025-03-10, 09:00 in America/Mexico_City (UTC-6)
START_TIME = datetime(2025, 3, 10, 15, 0, tzinfo=UTC)


class FakeRedis:
    """Dict-backed stand-in for the subset of redis.Redis used by LocalStorage."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        self.ttls.pop(key, None)
        return True

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def incr(self, key: str, amount: int = 1) -> int:
        value = int(self.data.get(key, 0)) + amount
        self.data[key] = str(value)
        return value

    def expire(self, key: str, ttl: int) -> bool:
        self.ttls[key] = ttl
        return key in self.data

    def keys(self, pattern: str = "*") -> list[str]:
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


Handler = Callable[[httpx.Request], httpx.Response]


class RecordStoreStub:
    """
    Programmable record store behind ``httpx.MockTransport``.

    Routes are matched on method and path. Audit entries are accepted by
    default; anything else unrouted answers 404.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Handler] = {}

    def on(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status_code: int = 200,
        handler: Handler | None = None,
    ) -> None:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status_code, json=json_body)

        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is not None:
            return route(request)
        if request.method == "POST" and request.url.path == collection_path("audit_logs"):
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": f"log{len(self.requests)}", **body})
        return httpx.Response(404, json={"message": "The requested resource wasn't found."})

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def audit_actions(self) -> list[str]:
        return [
            json.loads(r.content)["action"]
            for r in self.calls("POST", collection_path("audit_logs"))
        ]


def collection_path(name: str, record_id: str | None = None) -> str:
    """Path of a collection's records endpoint."""
    path = f"/api/collections/{name}/records"
    return f"{path}/{record_id}" if record_id else path


def page(items: list[dict], page_number: int = 1, per_page: int = 30) -> dict:
    """Record store list response."""
    return {
        "page": page_number,
        "perPage": per_page,
        "totalItems": len(items),
        "totalPages": 1 if items else 0,
        "items": items,
    }
