# Domain Package
from .envelope import (
    AnyEnvelope,
    AnyResource,
    AssignmentResource,
    Collection,
    Envelope,
    EnvelopeKind,
    KanaVocabularyResource,
    KanjiResource,
    LevelProgressionResource,
    Pages,
    RadicalResource,
    Report,
    ResetResource,
    Resource,
    ReviewResource,
    ReviewStatisticResource,
    SpacedRepetitionSystemResource,
    StudyMaterialResource,
    Summary,
    User,
    VocabularyResource,
    VoiceActorResource,
    decode_as,
    decode_envelope,
    encode_envelope,
    envelope_kind,
    is_subject,
)
from .errors import (
    ApiError,
    AuthError,
    CacheMissError,
    DecodeError,
    NotFoundError,
    RateLimitedError,
    ResetAtomicityError,
    ServerError,
    TransportError,
    ValidationError,
    WaniKaniError,
)
from .interfaces import Transport, TransportResponse
from .srs import (
    ACCELERATED_STAGE_TABLE,
    STANDARD_STAGE_TABLE,
    PenaltyPolicy,
    ReviewOutcome,
    SrsStage,
    SrsTransition,
    StageTable,
)

__all__ = [
    # Envelopes
    "AnyEnvelope",
    "AnyResource",
    "AssignmentResource",
    "Collection",
    "Envelope",
    "EnvelopeKind",
    "KanaVocabularyResource",
    "KanjiResource",
    "LevelProgressionResource",
    "Pages",
    "RadicalResource",
    "Report",
    "ResetResource",
    "Resource",
    "ReviewResource",
    "ReviewStatisticResource",
    "SpacedRepetitionSystemResource",
    "StudyMaterialResource",
    "Summary",
    "User",
    "VocabularyResource",
    "VoiceActorResource",
    "decode_as",
    "decode_envelope",
    "encode_envelope",
    "envelope_kind",
    "is_subject",
    # Errors
    "ApiError",
    "AuthError",
    "CacheMissError",
    "DecodeError",
    "NotFoundError",
    "RateLimitedError",
    "ResetAtomicityError",
    "ServerError",
    "TransportError",
    "ValidationError",
    "WaniKaniError",
    # Ports
    "Transport",
    "TransportResponse",
    # SRS
    "ACCELERATED_STAGE_TABLE",
    "STANDARD_STAGE_TABLE",
    "PenaltyPolicy",
    "ReviewOutcome",
    "SrsStage",
    "SrsTransition",
    "StageTable",
]
