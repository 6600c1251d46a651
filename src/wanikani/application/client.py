"""
WaniKani API client.

Every call runs through one pipeline:

1. the rate governor says how long to wait, and the client sleeps;
2. the conditional cache adds `If-None-Match`/`If-Modified-Since`;
3. the transport sends the request;
4. the governor folds in the `RateLimit-*` headers (a 429 is retried once);
5. error statuses are mapped onto the error taxonomy;
6. the body is decoded into an envelope;
7. the cache stores it, or substitutes the stored envelope on 304.

Collections come back one page at a time; `paginate` and `fetch_all` walk
the cursor links through the same pipeline.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

import httpx

from wanikani.domain.constants import (
    API_REVISION,
    ASSIGNMENTS_PATH,
    AUTHORIZATION_HEADER,
    LEVEL_PROGRESSIONS_PATH,
    RATE_LIMIT_RETRIES,
    RESETS_PATH,
    REVIEW_STATISTICS_PATH,
    REVIEWS_PATH,
    REVISION_HEADER,
    SPACED_REPETITION_SYSTEMS_PATH,
    STUDY_MATERIALS_PATH,
    SUBJECTS_PATH,
    SUMMARY_PATH,
    URL_BASE,
    USER_PATH,
    VOICE_ACTORS_PATH,
)
from wanikani.domain.envelope import (
    SUBJECT_TYPES,
    AssignmentResource,
    Collection,
    Envelope,
    LevelProgressionResource,
    ResetResource,
    Resource,
    ReviewResource,
    ReviewStatisticResource,
    SpacedRepetitionSystemResource,
    StudyMaterialResource,
    SubjectResource,
    Summary,
    User,
    VoiceActorResource,
    decode_envelope,
    ensure_type,
)
from wanikani.domain.errors import (
    ApiError,
    AuthError,
    DecodeError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from wanikani.domain.interfaces import Transport, TransportResponse
from wanikani.domain.models import (
    AssignmentStart,
    CreateStudyMaterial,
    UpdateStudyMaterial,
    UpdateUser,
)
from wanikani.domain.srs import StageTable
from wanikani.infrastructure.adapters.httpx_transport import HttpxTransport
from wanikani.infrastructure.http.conditional_cache import CacheKey, ConditionalCache
from wanikani.infrastructure.http.rate_governor import RateGovernor

from .filters import (
    AssignmentFilter,
    IdFilter,
    ReviewFilter,
    ReviewStatisticFilter,
    StudyMaterialFilter,
    SubjectFilter,
)
from .pagination import Direction, Paginator, PartialResults

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Envelope)

Sleep = Callable[[float], Awaitable[None]]


class WaniKaniClient:
    """
    Async client for the WaniKani v2 API.

    The cache and governor belong to this instance; share the instance to
    share them. Use as an async context manager, or call `close()`.
    """

    def __init__(
        self,
        token: str,
        transport: Transport | None = None,
        cache: ConditionalCache | None = None,
        governor: RateGovernor | None = None,
        base_url: str = URL_BASE,
        revision: str = API_REVISION,
        sleep: Sleep = asyncio.sleep,
    ):
        if not token:
            raise ValueError("An API token is required")
        self._token = token
        self.transport = transport if transport is not None else HttpxTransport()
        self.cache = cache if cache is not None else ConditionalCache()
        self.governor = governor if governor is not None else RateGovernor()
        self.base_url = base_url.rstrip("/")
        self.revision = revision
        self._sleep = sleep
        self.paginator = Paginator(self.get_collection_by_url)

    def __repr__(self) -> str:
        return f"WaniKaniClient(base_url={self.base_url!r}, revision={self.revision!r})"

    async def __aenter__(self) -> "WaniKaniClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    # ---------- Pipeline ----------

    def build_url(self, path_or_url: str, params: dict[str, str] | None = None) -> str:
        if path_or_url.startswith(("http://", "https://")):
            url = httpx.URL(path_or_url)
        else:
            url = httpx.URL(f"{self.base_url}/{path_or_url.lstrip('/')}")
        if params:
            url = url.copy_merge_params(params)
        return str(url)

    def _headers(self) -> dict[str, str]:
        return {
            AUTHORIZATION_HEADER: f"Bearer {self._token}",
            REVISION_HEADER: self.revision,
        }

    async def request(
        self,
        method: str,
        path_or_url: str,
        params: dict[str, str] | None = None,
        body: Any | None = None,
    ) -> Envelope | None:
        """
        Run one request through the full pipeline.

        Returns the decoded envelope (the cached one on 304), or None for a
        success response without a body.

        Raises:
            AuthError, NotFoundError, ValidationError, ServerError, ApiError:
                Error statuses.
            RateLimitedError: A 429 persisted through the retry.
            DecodeError: The body is not a known envelope.
            CacheMissError: 304 without a cached baseline.
            TransportError: The transport failed.
        """
        method = method.upper()
        url = self.build_url(path_or_url, params)
        key = CacheKey(method, url, self.revision)

        retries = 0
        while True:
            wait = self.governor.before_request()
            if wait > 0:
                logger.info(f"Rate limit reached; waiting {wait:.1f}s before {method} {url}")
                await self._sleep(wait)

            headers = self._headers()
            headers.update(self.cache.prepare_request(key))
            logger.debug(f"{method} {url}")
            response = await self.transport.send(method, url, headers, body)
            self.governor.after_response(response.headers, response.status)

            if response.status != 429:
                break
            if retries >= RATE_LIMIT_RETRIES:
                raise RateLimitedError(
                    429, _error_message(response), reset_at=self.governor.reset_at
                )
            retries += 1
            logger.warning(f"429 for {method} {url}; retrying after backoff")

        _raise_for_status(response)

        envelope = None
        if response.status != 304 and response.body:
            envelope = decode_envelope(response.body)

        resolved = self.cache.observe_response(key, response.status, response.headers, envelope)
        return resolved.envelope

    async def _fetch(
        self,
        expected: type[E],
        path_or_url: str,
        params: dict[str, str] | None = None,
        method: str = "GET",
        body: Any | None = None,
    ) -> E:
        envelope = await self.request(method, path_or_url, params=params, body=body)
        if envelope is None:
            raise DecodeError(f"{method} {path_or_url} returned no body")
        return ensure_type(envelope, expected)

    async def _collection(self, path: str, filters: IdFilter | None) -> Collection:
        params = filters.to_params() if filters is not None else None
        return await self._fetch(Collection, path, params=params)

    # ---------- Generic access ----------

    async def get_resource_by_url(self, url: str) -> Envelope:
        """Fetch any envelope by absolute URL, e.g. the `url` of a resource."""
        envelope = await self.request("GET", url)
        if envelope is None:
            raise DecodeError(f"GET {url} returned no body")
        return envelope

    async def get_collection_by_url(self, url: str) -> Collection:
        return await self._fetch(Collection, url)

    def paginate(self, collection: Collection, direction: Direction = "next") -> AsyncIterator[Resource]:
        """Lazily yield the resources of `collection` and every page after it."""
        return self.paginator.iterate(collection, direction)

    async def fetch_all(
        self, collection: Collection, partial: bool = False
    ) -> list[Resource] | PartialResults:
        return await self.paginator.collect(collection, partial=partial)

    # ---------- Reports ----------

    async def get_summary(self) -> Summary:
        return await self._fetch(Summary, SUMMARY_PATH)

    async def get_user(self) -> User:
        return await self._fetch(User, USER_PATH)

    async def update_user(self, update: UpdateUser) -> User:
        body = {"user": update.model_dump(mode="json", exclude_none=True)}
        return await self._fetch(User, USER_PATH, method="PUT", body=body)

    # ---------- Assignments ----------

    async def get_assignments(self, filters: AssignmentFilter | None = None) -> Collection:
        return await self._collection(ASSIGNMENTS_PATH, filters)

    async def get_assignment(self, assignment_id: int) -> AssignmentResource:
        return await self._fetch(AssignmentResource, f"{ASSIGNMENTS_PATH}/{assignment_id}")

    async def start_assignment(
        self, assignment_id: int, start: AssignmentStart | None = None
    ) -> AssignmentResource:
        """Mark the lesson for an assignment done, moving it into reviews."""
        start = start or AssignmentStart()
        body = {"assignment": start.model_dump(mode="json", exclude_none=True)}
        return await self._fetch(
            AssignmentResource,
            f"{ASSIGNMENTS_PATH}/{assignment_id}/start",
            method="PUT",
            body=body,
        )

    # ---------- Level progressions ----------

    async def get_level_progressions(self, filters: IdFilter | None = None) -> Collection:
        return await self._collection(LEVEL_PROGRESSIONS_PATH, filters)

    async def get_level_progression(self, progression_id: int) -> LevelProgressionResource:
        return await self._fetch(
            LevelProgressionResource, f"{LEVEL_PROGRESSIONS_PATH}/{progression_id}"
        )

    # ---------- Resets ----------

    async def get_resets(self, filters: IdFilter | None = None) -> Collection:
        return await self._collection(RESETS_PATH, filters)

    async def get_reset(self, reset_id: int) -> ResetResource:
        return await self._fetch(ResetResource, f"{RESETS_PATH}/{reset_id}")

    # ---------- Reviews ----------

    async def get_reviews(self, filters: ReviewFilter | None = None) -> Collection:
        return await self._collection(REVIEWS_PATH, filters)

    async def get_review(self, review_id: int) -> ReviewResource:
        return await self._fetch(ReviewResource, f"{REVIEWS_PATH}/{review_id}")

    # ---------- Review statistics ----------

    async def get_review_statistics(
        self, filters: ReviewStatisticFilter | None = None
    ) -> Collection:
        return await self._collection(REVIEW_STATISTICS_PATH, filters)

    async def get_review_statistic(self, statistic_id: int) -> ReviewStatisticResource:
        return await self._fetch(
            ReviewStatisticResource, f"{REVIEW_STATISTICS_PATH}/{statistic_id}"
        )

    # ---------- Spaced repetition systems ----------

    async def get_spaced_repetition_systems(self, filters: IdFilter | None = None) -> Collection:
        return await self._collection(SPACED_REPETITION_SYSTEMS_PATH, filters)

    async def get_spaced_repetition_system(
        self, system_id: int
    ) -> SpacedRepetitionSystemResource:
        return await self._fetch(
            SpacedRepetitionSystemResource, f"{SPACED_REPETITION_SYSTEMS_PATH}/{system_id}"
        )

    async def get_stage_table(self, system_id: int) -> StageTable:
        system = await self.get_spaced_repetition_system(system_id)
        return StageTable.from_system(system.data)

    # ---------- Study materials ----------

    async def get_study_materials(self, filters: StudyMaterialFilter | None = None) -> Collection:
        return await self._collection(STUDY_MATERIALS_PATH, filters)

    async def get_study_material(self, material_id: int) -> StudyMaterialResource:
        return await self._fetch(StudyMaterialResource, f"{STUDY_MATERIALS_PATH}/{material_id}")

    async def create_study_material(self, material: CreateStudyMaterial) -> StudyMaterialResource:
        body = {"study_material": material.model_dump(mode="json", exclude_none=True)}
        return await self._fetch(
            StudyMaterialResource, STUDY_MATERIALS_PATH, method="POST", body=body
        )

    async def update_study_material(
        self, material_id: int, update: UpdateStudyMaterial
    ) -> StudyMaterialResource:
        body = {"study_material": update.model_dump(mode="json", exclude_none=True)}
        return await self._fetch(
            StudyMaterialResource,
            f"{STUDY_MATERIALS_PATH}/{material_id}",
            method="PUT",
            body=body,
        )

    # ---------- Subjects ----------

    async def get_subjects(self, filters: SubjectFilter | None = None) -> Collection:
        return await self._collection(SUBJECTS_PATH, filters)

    async def get_subject(self, subject_id: int) -> SubjectResource:
        envelope = await self.get_resource_by_url(self.build_url(f"{SUBJECTS_PATH}/{subject_id}"))
        if not isinstance(envelope, SUBJECT_TYPES):
            raise DecodeError(f"Expected a subject but received object={envelope.object!r}")
        return envelope

    # ---------- Voice actors ----------

    async def get_voice_actors(self, filters: IdFilter | None = None) -> Collection:
        return await self._collection(VOICE_ACTORS_PATH, filters)

    async def get_voice_actor(self, voice_actor_id: int) -> VoiceActorResource:
        return await self._fetch(VoiceActorResource, f"{VOICE_ACTORS_PATH}/{voice_actor_id}")


def _error_message(response: TransportResponse) -> str | None:
    if not response.body:
        return None
    text = response.body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except ValueError:
        return text.strip() or None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return text.strip() or None


def _raise_for_status(response: TransportResponse) -> None:
    status = response.status
    if status < 300 or status == 304:
        return

    message = _error_message(response)
    if status in (401, 403):
        raise AuthError(status, message)
    if status == 404:
        raise NotFoundError(status, message)
    if status == 422:
        raise ValidationError(status, message)
    if status >= 500:
        raise ServerError(status, message)
    raise ApiError(status, message)
