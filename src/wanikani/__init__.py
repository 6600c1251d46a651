from .application import (
    AssignmentFilter,
    ClientSettings,
    IdFilter,
    Paginator,
    PartialResults,
    ProgressSnapshot,
    ResetService,
    ReviewFilter,
    ReviewStatisticFilter,
    SrsEngine,
    StudyMaterialFilter,
    SubjectFilter,
    WaniKaniClient,
    create_client,
    order_subjects,
    resolve_settings,
)
from .consts import VERSION
from .domain import decode_envelope, encode_envelope

__version__ = VERSION

__all__ = [
    "AssignmentFilter",
    "ClientSettings",
    "IdFilter",
    "Paginator",
    "PartialResults",
    "ProgressSnapshot",
    "ResetService",
    "ReviewFilter",
    "ReviewStatisticFilter",
    "SrsEngine",
    "StudyMaterialFilter",
    "SubjectFilter",
    "WaniKaniClient",
    "create_client",
    "order_subjects",
    "resolve_settings",
    "decode_envelope",
    "encode_envelope",
]
