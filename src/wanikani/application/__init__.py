# Application Package
from .client import WaniKaniClient
from .config import ClientSettings, resolve_settings
from .factory import create_client
from .filters import (
    AssignmentFilter,
    IdFilter,
    ReviewFilter,
    ReviewStatisticFilter,
    StudyMaterialFilter,
    SubjectFilter,
)
from .lesson_order import LESSON_ORDERS, order_subjects
from .pagination import Paginator, PartialResults
from .reset_service import ProgressSnapshot, ResetPlan, ResetService
from .srs_engine import SrsEngine, ceil_hour

__all__ = [
    "WaniKaniClient",
    "ClientSettings",
    "resolve_settings",
    "create_client",
    "AssignmentFilter",
    "IdFilter",
    "ReviewFilter",
    "ReviewStatisticFilter",
    "StudyMaterialFilter",
    "SubjectFilter",
    "LESSON_ORDERS",
    "order_subjects",
    "Paginator",
    "PartialResults",
    "ProgressSnapshot",
    "ResetPlan",
    "ResetService",
    "SrsEngine",
    "ceil_hour",
]
