"""
Response envelopes and the decoder that dispatches on the `object` field.

Every API response shares `object`, `url` and `data_updated_at`. Three shapes
sit on top of that:

- single resources (`Resource` subclasses) carry an `id` and one `data` body;
- collections carry `pages`, `total_count` and a list of single resources;
- reports (`summary`, `user`) carry a report body and no `id`.

Dispatch is a pydantic discriminated union keyed by `object`. Adding a variant
means adding a class to `RESOURCE_TYPES`/`REPORT_TYPES`; code that only needs
the common shape keeps depending on `Envelope`.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import DecodeError
from .models import (
    Assignment,
    LevelProgression,
    Reset,
    Review,
    ReviewStatistic,
    SpacedRepetitionSystem,
    StudyMaterial,
    SummaryData,
    Timestamp,
    UserData,
    VoiceActor,
    WaniKaniModel,
)
from .subjects import KanaVocabulary, Kanji, Radical, Vocabulary


class Envelope(WaniKaniModel):
    """Attributes shared by every response."""

    object: str
    # For collections this includes every filter and option that was sent.
    url: str
    # For collections: newest update in the filtered scope, or None when empty.
    data_updated_at: Timestamp | None = None


class Resource(Envelope):
    """A single resource with a unique numeric id."""

    id: int


class AssignmentResource(Resource):
    object: Literal["assignment"] = "assignment"
    data: Assignment


class LevelProgressionResource(Resource):
    object: Literal["level_progression"] = "level_progression"
    data: LevelProgression


class ResetResource(Resource):
    object: Literal["reset"] = "reset"
    data: Reset


class ReviewResource(Resource):
    object: Literal["review"] = "review"
    data: Review


class ReviewStatisticResource(Resource):
    object: Literal["review_statistic"] = "review_statistic"
    data: ReviewStatistic


class SpacedRepetitionSystemResource(Resource):
    object: Literal["spaced_repetition_system"] = "spaced_repetition_system"
    data: SpacedRepetitionSystem


class StudyMaterialResource(Resource):
    object: Literal["study_material"] = "study_material"
    data: StudyMaterial


class VoiceActorResource(Resource):
    object: Literal["voice_actor"] = "voice_actor"
    data: VoiceActor


class RadicalResource(Resource):
    object: Literal["radical"] = "radical"
    data: Radical


class KanjiResource(Resource):
    object: Literal["kanji"] = "kanji"
    data: Kanji


class VocabularyResource(Resource):
    object: Literal["vocabulary"] = "vocabulary"
    data: Vocabulary


class KanaVocabularyResource(Resource):
    object: Literal["kana_vocabulary"] = "kana_vocabulary"
    data: KanaVocabulary


SUBJECT_TYPES: tuple[type[Resource], ...] = (
    RadicalResource,
    KanjiResource,
    VocabularyResource,
    KanaVocabularyResource,
)

RESOURCE_TYPES: tuple[type[Resource], ...] = (
    AssignmentResource,
    LevelProgressionResource,
    ResetResource,
    ReviewResource,
    ReviewStatisticResource,
    SpacedRepetitionSystemResource,
    StudyMaterialResource,
    VoiceActorResource,
    *SUBJECT_TYPES,
)

SubjectResource = Union[
    RadicalResource, KanjiResource, VocabularyResource, KanaVocabularyResource
]

AnyResource = Annotated[
    Union[
        AssignmentResource,
        LevelProgressionResource,
        ResetResource,
        ReviewResource,
        ReviewStatisticResource,
        SpacedRepetitionSystemResource,
        StudyMaterialResource,
        VoiceActorResource,
        RadicalResource,
        KanjiResource,
        VocabularyResource,
        KanaVocabularyResource,
    ],
    Field(discriminator="object"),
]


class Pages(WaniKaniModel):
    """Cursor links of a collection. The first page has no previous, the last no next."""

    next_url: str | None = None
    previous_url: str | None = None
    per_page: int


class Collection(Envelope):
    object: Literal["collection"] = "collection"
    pages: Pages
    # Count within the filtered scope, not limited by pagination.
    total_count: int
    data: list[AnyResource]


class Report(Envelope):
    """Singleton-per-account envelope; not paginated and without an id."""


class Summary(Report):
    object: Literal["report"] = "report"
    data: SummaryData


class User(Report):
    object: Literal["user"] = "user"
    data: UserData


REPORT_TYPES: tuple[type[Report], ...] = (Summary, User)

AnyEnvelope = Annotated[
    Union[
        AssignmentResource,
        LevelProgressionResource,
        ResetResource,
        ReviewResource,
        ReviewStatisticResource,
        SpacedRepetitionSystemResource,
        StudyMaterialResource,
        VoiceActorResource,
        RadicalResource,
        KanjiResource,
        VocabularyResource,
        KanaVocabularyResource,
        Collection,
        Summary,
        User,
    ],
    Field(discriminator="object"),
]

_ENVELOPE_ADAPTER: TypeAdapter = TypeAdapter(AnyEnvelope)

E = TypeVar("E", bound=Envelope)


class EnvelopeKind(str, Enum):
    SINGLE = "single"
    COLLECTION = "collection"
    REPORT = "report"


def envelope_kind(envelope: Envelope) -> EnvelopeKind:
    """Classify an envelope by shape."""
    if isinstance(envelope, Collection):
        return EnvelopeKind.COLLECTION
    if isinstance(envelope, Resource):
        return EnvelopeKind.SINGLE
    if isinstance(envelope, Report):
        return EnvelopeKind.REPORT
    raise TypeError(f"Unknown envelope type: {type(envelope).__name__}")


def is_subject(resource: Envelope) -> bool:
    return isinstance(resource, SUBJECT_TYPES)


def decode_envelope(raw: Mapping[str, Any] | str | bytes) -> Envelope:
    """
    Decode a raw API document into its envelope variant.

    Args:
        raw: Parsed JSON mapping, or the JSON text itself.

    Raises:
        DecodeError: The `object` discriminator is unknown or required fields
            are missing. This signals revision skew and is never retried.
    """
    try:
        if isinstance(raw, (str, bytes)):
            return _ENVELOPE_ADAPTER.validate_json(raw)
        return _ENVELOPE_ADAPTER.validate_python(raw)
    except PydanticValidationError as e:
        object_type = raw.get("object") if isinstance(raw, Mapping) else None
        raise DecodeError(
            f"Could not decode envelope (object={object_type!r}): "
            f"{e.error_count()} error(s), first: {e.errors()[0]['msg']}"
        ) from e


def decode_as(raw: Mapping[str, Any] | str | bytes, expected: type[E]) -> E:
    """Decode and insist on a particular envelope type."""
    envelope = decode_envelope(raw)
    return ensure_type(envelope, expected)


def ensure_type(envelope: Envelope, expected: type[E]) -> E:
    if not isinstance(envelope, expected):
        raise DecodeError(
            f"Expected {expected.__name__} but received object={envelope.object!r}"
        )
    return envelope


def encode_envelope(envelope: Envelope) -> dict[str, Any]:
    """Re-encode an envelope to a JSON-compatible mapping."""
    return envelope.model_dump(mode="json")
