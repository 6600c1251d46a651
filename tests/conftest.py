import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from wanikani.domain.interfaces import Transport, TransportResponse

FIXTURES = Path(__file__).parent / "fixtures"


def load(name: str) -> dict[str, Any]:
    return json.loads((FIXTURES / f"{name}.json").read_text(encoding="utf-8"))


def response(
    status: int = 200,
    payload: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> TransportResponse:
    body = None
    if payload is not None:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return TransportResponse(status=status, headers=dict(headers or {}), body=body)


def collection(
    url: str,
    items: list[dict[str, Any]],
    next_url: str | None = None,
    previous_url: str | None = None,
    total_count: int | None = None,
) -> dict[str, Any]:
    return {
        "object": "collection",
        "url": url,
        "pages": {"per_page": 500, "next_url": next_url, "previous_url": previous_url},
        "total_count": len(items) if total_count is None else total_count,
        "data_updated_at": items[-1]["data_updated_at"] if items else None,
        "data": items,
    }


def with_id(resource: dict[str, Any], resource_id: int) -> dict[str, Any]:
    copy = json.loads(json.dumps(resource))
    copy["id"] = resource_id
    copy["url"] = copy["url"].rsplit("/", 1)[0] + f"/{resource_id}"
    return copy


class FakeTransport(Transport):
    """Replays queued responses and records every request it was handed."""

    def __init__(self, responses: list[TransportResponse] | None = None):
        self.responses = list(responses or [])
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: TransportResponse) -> None:
        self.responses.extend(responses)

    async def send(self, method, url, headers, body=None) -> TransportResponse:
        self.requests.append({"method": method, "url": url, "headers": dict(headers), "body": body})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def load_fixture():
    return load


@pytest.fixture
def make_response():
    return response


@pytest.fixture
def make_collection():
    return collection


@pytest.fixture
def make_resource(load_fixture):
    """Copy of a fixture resource under a different id."""

    def _make(name: str, resource_id: int, **data: Any) -> dict[str, Any]:
        resource = with_id(load_fixture(name), resource_id)
        resource["data"].update(data)
        return resource

    return _make


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config lookups from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "WANIKANI_API_TOKEN",
        "WANIKANI_BASE_URL",
        "WANIKANI_REVISION",
        "WANIKANI_REQUEST_TIMEOUT",
        "WANIKANI_RATE_LIMIT_WINDOW",
    ):
        monkeypatch.delenv(name, raising=False)
    return home
