"""
Query filters for collection endpoints.

Each filter is a plain dataclass whose fields map one-to-one onto the query
parameters the endpoint accepts. Unset fields (None) are omitted. Lists are
sent comma-delimited, timestamps as ISO 8601 and booleans lowercase.
"""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any

from wanikani.domain.constants import PAGE_AFTER_PARAM, PAGE_BEFORE_PARAM
from wanikani.domain.models import SubjectType


def encode_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else value
        return ",".join(encode_param(item) for item in items)
    return str(value)


@dataclass
class IdFilter:
    """Filters every collection endpoint accepts."""

    ids: list[int] | None = None
    updated_after: datetime | None = None
    page_after_id: int | None = None
    page_before_id: int | None = None

    def to_params(self) -> dict[str, str]:
        if self.page_after_id is not None and self.page_before_id is not None:
            raise ValueError(f"{PAGE_AFTER_PARAM} and {PAGE_BEFORE_PARAM} are mutually exclusive")

        params = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            params[f.name] = encode_param(value)
        return params


@dataclass
class AssignmentFilter(IdFilter):
    available_after: datetime | None = None
    available_before: datetime | None = None
    burned: bool | None = None
    hidden: bool | None = None
    immediately_available_for_lessons: bool | None = None
    immediately_available_for_review: bool | None = None
    in_review: bool | None = None
    levels: list[int] | None = None
    srs_stages: list[int] | None = None
    started: bool | None = None
    subject_ids: list[int] | None = None
    subject_types: list[SubjectType] | None = None
    unlocked: bool | None = None


@dataclass
class ReviewFilter(IdFilter):
    assignment_ids: list[int] | None = None
    subject_ids: list[int] | None = None


@dataclass
class ReviewStatisticFilter(IdFilter):
    hidden: bool | None = None
    percentages_greater_than: int | None = None
    percentages_less_than: int | None = None
    subject_ids: list[int] | None = None
    subject_types: list[SubjectType] | None = None


@dataclass
class StudyMaterialFilter(IdFilter):
    hidden: bool | None = None
    subject_ids: list[int] | None = None
    subject_types: list[SubjectType] | None = None


@dataclass
class SubjectFilter(IdFilter):
    hidden: bool | None = None
    levels: list[int] | None = None
    slugs: list[str] | None = None
    types: list[SubjectType] | None = None
