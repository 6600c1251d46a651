import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from wanikani.application.client import WaniKaniClient
from wanikani.application.filters import AssignmentFilter, SubjectFilter
from wanikani.application.pagination import PartialResults
from wanikani.domain.envelope import (
    AssignmentResource,
    Collection,
    KanjiResource,
    StudyMaterialResource,
    Summary,
    User,
)
from wanikani.domain.errors import (
    ApiError,
    AuthError,
    CacheMissError,
    DecodeError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    TransportError,
    ValidationError,
)
from wanikani.domain.interfaces import Transport, TransportResponse
from wanikani.domain.models import (
    AssignmentStart,
    CreateStudyMaterial,
    UpdatePreferences,
    UpdateStudyMaterial,
    UpdateUser,
)
from wanikani.infrastructure.http.conditional_cache import CacheKey
from wanikani.infrastructure.http.rate_governor import RateGovernor

NOW = 1_700_000_000.0
API = "https://api.wanikani.com/v2"


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def client(fake_transport, sleep):
    return WaniKaniClient(
        "secret-token",
        transport=fake_transport,
        governor=RateGovernor(clock=lambda: NOW),
        sleep=sleep,
    )


# ---------- Pipeline ----------


@pytest.mark.asyncio
async def test_every_request_carries_token_and_revision(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(make_response(200, load_fixture("assignment")))

    assignment = await client.get_assignment(80463006)

    assert isinstance(assignment, AssignmentResource)
    request = fake_transport.requests[0]
    assert request["method"] == "GET"
    assert request["url"] == f"{API}/assignments/80463006"
    assert request["headers"]["Authorization"] == "Bearer secret-token"
    assert request["headers"]["Wanikani-Revision"] == "20170710"
    assert request["body"] is None


@pytest.mark.asyncio
async def test_second_identical_get_is_served_from_304(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(
        make_response(200, load_fixture("summary"), {"ETag": 'W/"abc"', "Last-Modified": "Wed, 11 Apr 2018 21:00:00 GMT"}),
        make_response(304),
    )

    first = await client.get_summary()
    second = await client.get_summary()

    assert isinstance(first, Summary)
    assert second is first
    assert "If-None-Match" not in fake_transport.requests[0]["headers"]
    conditional = fake_transport.requests[1]["headers"]
    assert conditional["If-None-Match"] == 'W/"abc"'
    assert conditional["If-Modified-Since"] == "Wed, 11 Apr 2018 21:00:00 GMT"
    assert len(client.cache) == 1


@pytest.mark.asyncio
async def test_304_without_baseline_is_a_cache_miss(client, fake_transport, make_response):
    fake_transport.queue(make_response(304))

    with pytest.raises(CacheMissError):
        await client.get_user()


@pytest.mark.asyncio
async def test_unauthorized(client, fake_transport, make_response):
    fake_transport.queue(make_response(401, {"error": "Unauthorized. Nice try.", "code": 401}))

    with pytest.raises(AuthError) as exc:
        await client.get_user()
    assert exc.value.status == 401
    assert exc.value.message == "Unauthorized. Nice try."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,error",
    [(403, AuthError), (404, NotFoundError), (422, ValidationError), (500, ServerError), (503, ServerError), (418, ApiError)],
)
async def test_status_mapping(client, fake_transport, make_response, status, error):
    fake_transport.queue(make_response(status, {"error": "nope", "code": status}))

    with pytest.raises(error) as exc:
        await client.get_review(1)
    assert exc.value.status == status
    assert exc.value.message == "nope"


@pytest.mark.asyncio
async def test_plain_text_error_body(client, fake_transport, make_response):
    fake_transport.queue(make_response(500, b"Internal Server Error"))

    with pytest.raises(ServerError, match="Internal Server Error"):
        await client.get_review(1)


@pytest.mark.asyncio
async def test_429_is_retried_once_after_backoff(client, fake_transport, make_response, load_fixture, sleep):
    limited = {"RateLimit-Limit": "60", "RateLimit-Remaining": "0", "RateLimit-Reset": str(int(NOW) + 7)}
    fake_transport.queue(
        make_response(429, {"error": "Rate limit exceeded", "code": 429}, limited),
        make_response(200, load_fixture("review"), {"RateLimit-Remaining": "59"}),
    )

    review = await client.get_review(534342)

    assert review.id == 534342
    sleep.assert_awaited_once_with(7.0)
    assert len(fake_transport.requests) == 2


@pytest.mark.asyncio
async def test_second_429_raises_with_reset_time(client, fake_transport, make_response, sleep):
    limited = {"RateLimit-Remaining": "0", "RateLimit-Reset": str(int(NOW) + 7)}
    fake_transport.queue(
        make_response(429, {"error": "Rate limit exceeded", "code": 429}, limited),
        make_response(429, {"error": "Rate limit exceeded", "code": 429}, limited),
    )

    with pytest.raises(RateLimitedError) as exc:
        await client.get_review(1)

    assert exc.value.status == 429
    assert exc.value.reset_at == datetime.fromtimestamp(NOW + 7, tz=timezone.utc)
    assert "Limit will reset at" in str(exc.value)
    assert len(fake_transport.requests) == 2


@pytest.mark.asyncio
async def test_exhausted_quota_delays_next_request(client, fake_transport, make_response, load_fixture, sleep):
    fake_transport.queue(
        make_response(200, load_fixture("user"), {"RateLimit-Remaining": "0", "RateLimit-Reset": str(int(NOW) + 5)}),
        make_response(200, load_fixture("summary")),
    )

    await client.get_user()
    sleep.assert_not_awaited()

    await client.get_summary()
    sleep.assert_awaited_once_with(5.0)


@pytest.mark.asyncio
async def test_wrong_variant_is_a_decode_error(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(make_response(200, load_fixture("kanji")))

    with pytest.raises(DecodeError, match="AssignmentResource"):
        await client.get_assignment(440)


@pytest.mark.asyncio
async def test_empty_success_body_is_a_decode_error(client, fake_transport, make_response):
    fake_transport.queue(make_response(200))

    with pytest.raises(DecodeError, match="no body"):
        await client.get_summary()


@pytest.mark.asyncio
async def test_transport_error_passes_through(client, fake_transport):
    fake_transport.queue(TransportError("timed out"))

    with pytest.raises(TransportError, match="timed out"):
        await client.get_summary()


# ---------- Concurrency ----------


class InterleavingTransport(Transport):
    """Routes responses by URL and yields to the event loop before answering.

    Each queued entry is `(response, yields)`; more yields means the request
    completes later relative to its siblings.
    """

    def __init__(self):
        self.requests: list[dict] = []
        self.routes: dict[str, list[tuple[TransportResponse, int]]] = {}
        self.completed: list[str | None] = []

    def route(self, url: str, response: TransportResponse, yields: int = 1) -> None:
        self.routes.setdefault(url, []).append((response, yields))

    async def send(self, method, url, headers, body=None) -> TransportResponse:
        self.requests.append({"method": method, "url": url, "headers": dict(headers), "body": body})
        response, yields = self.routes[url].pop(0)
        for _ in range(yields):
            await asyncio.sleep(0)
        self.completed.append(response.headers.get("ETag"))
        return response

    async def close(self) -> None:
        pass


@pytest.fixture
def interleaving():
    return InterleavingTransport()


@pytest.fixture
def shared_client(interleaving, sleep):
    return WaniKaniClient(
        "secret-token",
        transport=interleaving,
        governor=RateGovernor(clock=lambda: NOW),
        sleep=sleep,
    )


@pytest.mark.asyncio
async def test_concurrent_requests_share_the_quota(shared_client, interleaving, make_response, make_resource, sleep):
    shared_client.governor.after_response(
        {"RateLimit-Limit": "60", "RateLimit-Remaining": "1", "RateLimit-Reset": str(int(NOW) + 30)}
    )
    ids = [101, 102, 103, 104]
    for assignment_id in ids:
        interleaving.route(
            f"{API}/assignments/{assignment_id}",
            make_response(200, make_resource("assignment", assignment_id), {"ETag": f'"{assignment_id}"'}),
        )

    results = await asyncio.gather(*(shared_client.get_assignment(i) for i in ids))

    assert [r.id for r in results] == ids
    # One request spends the last unit of quota; the rest wait for the reset
    assert sleep.await_count == len(ids) - 1
    assert [c.args for c in sleep.await_args_list] == [(30.0,)] * (len(ids) - 1)
    assert shared_client.governor.state.remaining == 0
    # One cache entry per distinct URL
    assert len(shared_client.cache) == len(ids)
    for assignment_id in ids:
        key = CacheKey("GET", f"{API}/assignments/{assignment_id}", "20170710")
        assert shared_client.cache.get(key).etag == f'"{assignment_id}"'


@pytest.mark.asyncio
async def test_concurrent_fetches_of_one_url_keep_last_completed(
    shared_client, interleaving, make_response, load_fixture, sleep
):
    url = f"{API}/assignments/80463006"
    slow = load_fixture("assignment")
    slow["data"]["srs_stage"] = 6
    fast = load_fixture("assignment")
    fast["data"]["srs_stage"] = 7
    # Same data_updated_at, so neither is stale; the slower one lands last
    interleaving.route(url, make_response(200, slow, {"ETag": '"slow"'}), yields=5)
    interleaving.route(url, make_response(200, fast, {"ETag": '"fast"'}), yields=1)

    first, second = await asyncio.gather(
        shared_client.get_assignment(80463006), shared_client.get_assignment(80463006)
    )

    assert first.data.srs_stage == 6
    assert second.data.srs_stage == 7
    assert interleaving.completed == ['"fast"', '"slow"']
    # Neither request had a baseline when it was sent
    assert all("If-None-Match" not in r["headers"] for r in interleaving.requests)
    record = shared_client.cache.get(CacheKey("GET", url, "20170710"))
    assert len(shared_client.cache) == 1
    assert record.etag == '"slow"'
    assert record.envelope is first
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_stale_completion_does_not_replace_newer(
    shared_client, interleaving, make_response, load_fixture
):
    url = f"{API}/assignments/80463006"
    older = load_fixture("assignment")
    newer = load_fixture("assignment")
    newer["data_updated_at"] = "2018-03-01T00:00:00.000000Z"
    newer["data"]["srs_stage"] = 9
    interleaving.route(url, make_response(200, older, {"ETag": '"old"'}), yields=5)
    interleaving.route(url, make_response(200, newer, {"ETag": '"new"'}), yields=1)

    first, second = await asyncio.gather(
        shared_client.get_assignment(80463006), shared_client.get_assignment(80463006)
    )

    record = shared_client.cache.get(CacheKey("GET", url, "20170710"))
    assert record.etag == '"new"'
    assert record.envelope is second
    # The late, older response resolves to the newer stored envelope
    assert first.data.srs_stage == 9


# ---------- Collections ----------


@pytest.mark.asyncio
async def test_filters_become_query_parameters(client, fake_transport, make_response, make_collection):
    fake_transport.queue(make_response(200, make_collection(f"{API}/assignments?levels=1,2", [])))

    page = await client.get_assignments(AssignmentFilter(levels=[1, 2], started=True))

    assert isinstance(page, Collection)
    url = httpx.URL(fake_transport.requests[0]["url"])
    assert url.path == "/v2/assignments"
    assert url.params["levels"] == "1,2"
    assert url.params["started"] == "true"


@pytest.mark.asyncio
async def test_paginate_follows_next_url(client, fake_transport, make_response, make_collection, make_resource):
    next_url = f"{API}/subjects?page_after_id=2"
    fake_transport.queue(
        make_response(200, make_collection(f"{API}/subjects", [make_resource("kanji", 1), make_resource("kanji", 2)], next_url, total_count=3)),
        make_response(200, make_collection(next_url, [make_resource("kanji", 3)], total_count=3)),
    )

    first = await client.get_subjects(SubjectFilter())
    ids = [r.id async for r in client.paginate(first)]

    assert ids == [1, 2, 3]
    assert fake_transport.requests[1]["url"] == next_url
    assert fake_transport.requests[1]["headers"]["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_fetch_all_partial(client, fake_transport, make_response, make_collection, make_resource):
    next_url = f"{API}/reviews?page_after_id=1"
    fake_transport.queue(
        make_response(200, make_collection(f"{API}/reviews", [make_resource("review", 1)], next_url)),
        make_response(502, b"Bad Gateway"),
    )

    first = await client.get_reviews()
    result = await client.fetch_all(first, partial=True)

    assert isinstance(result, PartialResults)
    assert [r.id for r in result.items] == [1]
    assert isinstance(result.error, ServerError)


@pytest.mark.asyncio
async def test_get_resource_by_url(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(make_response(200, load_fixture("voice_actor")))

    envelope = await client.get_resource_by_url(f"{API}/voice_actors/1")

    assert envelope.object == "voice_actor"
    assert fake_transport.requests[0]["url"] == f"{API}/voice_actors/1"


# ---------- Writes ----------


@pytest.mark.asyncio
async def test_start_assignment_wraps_body(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(
        make_response(200, load_fixture("assignment"), {"ETag": '"x"'}),
        make_response(200, load_fixture("assignment"), {"ETag": '"x"'}),
    )
    started_at = datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    await client.start_assignment(80463006, AssignmentStart(started_at=started_at))
    await client.start_assignment(80463006)

    first, second = fake_transport.requests
    assert first["method"] == "PUT"
    assert first["url"] == f"{API}/assignments/80463006/start"
    assert first["body"] == {"assignment": {"started_at": "2024-03-01T10:00:00.000000Z"}}
    assert second["body"] == {"assignment": {}}
    # Writes are never conditional
    assert "If-None-Match" not in second["headers"]
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_create_and_update_study_material(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(
        make_response(201, load_fixture("study_material")),
        make_response(200, load_fixture("study_material")),
    )

    created = await client.create_study_material(
        CreateStudyMaterial(subject_id=241, meaning_note="I like turtles", meaning_synonyms=["burn"])
    )
    await client.update_study_material(65231, UpdateStudyMaterial(reading_note="I like durtles"))

    assert isinstance(created, StudyMaterialResource)
    create, update = fake_transport.requests
    assert create["method"] == "POST"
    assert create["url"] == f"{API}/study_materials"
    assert create["body"] == {
        "study_material": {"subject_id": 241, "meaning_note": "I like turtles", "meaning_synonyms": ["burn"]}
    }
    assert update["method"] == "PUT"
    assert update["url"] == f"{API}/study_materials/65231"
    assert update["body"] == {"study_material": {"reading_note": "I like durtles"}}


@pytest.mark.asyncio
async def test_update_user_preferences(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(make_response(200, load_fixture("user")))

    user = await client.update_user(UpdateUser(preferences=UpdatePreferences(lessons_batch_size=5)))

    assert isinstance(user, User)
    assert fake_transport.requests[0]["body"] == {"user": {"preferences": {"lessons_batch_size": 5}}}


# ---------- Typed helpers ----------


@pytest.mark.asyncio
async def test_get_subject_accepts_any_subject_kind(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(
        make_response(200, load_fixture("kanji")),
        make_response(200, load_fixture("assignment")),
    )

    assert isinstance(await client.get_subject(440), KanjiResource)
    with pytest.raises(DecodeError, match="subject"):
        await client.get_subject(1)


@pytest.mark.asyncio
async def test_get_stage_table(client, fake_transport, make_response, load_fixture):
    fake_transport.queue(make_response(200, load_fixture("spaced_repetition_system")))

    table = await client.get_stage_table(1)

    assert table.passing_position == 5
    assert table.burning_position == 9
    assert fake_transport.requests[0]["url"] == f"{API}/spaced_repetition_systems/1"


def test_repr_hides_token(client):
    assert "secret-token" not in repr(client)
    assert "secret-token" not in str(client)


def test_token_is_required(fake_transport):
    with pytest.raises(ValueError):
        WaniKaniClient("", transport=fake_transport)


@pytest.mark.asyncio
async def test_context_manager_closes_transport(fake_transport):
    async with WaniKaniClient("t", transport=fake_transport) as client:
        assert client.transport is fake_transport
    assert fake_transport.closed


def test_build_url(client):
    assert client.build_url("subjects") == f"{API}/subjects"
    assert client.build_url(f"{API}/subjects?page_after_id=5") == f"{API}/subjects?page_after_id=5"
    assert httpx.URL(client.build_url("reviews", {"ids": "1,2"})).params["ids"] == "1,2"
