"""
Resource data models for the WaniKani API.

These are the `data` payloads carried inside envelopes. They are immutable
value objects: once decoded they never change, and relationships between
resources are plain identifier fields resolved by the caller.

Subject kinds live in `subjects.py`; envelopes in `envelope.py`.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from .constants import TIMESTAMP_FORMAT

SubjectType = Literal["radical", "kanji", "vocabulary", "kana_vocabulary"]
SubscriptionType = Literal["free", "recurring", "lifetime", "unknown"]
LessonPresentationOrder = Literal[
    "ascending_level_then_subject",
    "shuffled",
    "ascending_level_then_shuffled",
]
Gender = Literal["male", "female"]


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


# The API always sends microseconds and a Z suffix; keep that shape on encode.
Timestamp = Annotated[datetime, PlainSerializer(_format_timestamp, when_used="json")]


class WaniKaniModel(BaseModel):
    """Base for every decoded model: frozen, tolerant of attributes added by later revisions."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class Assignment(WaniKaniModel):
    """A user's progress on a single subject."""

    available_at: Timestamp | None = None
    burned_at: Timestamp | None = None
    created_at: Timestamp
    hidden: bool
    passed_at: Timestamp | None = None
    resurrected_at: Timestamp | None = None
    srs_stage: int = Field(ge=0)
    started_at: Timestamp | None = None
    subject_id: int
    subject_type: SubjectType
    unlocked_at: Timestamp | None = None


class LevelProgression(WaniKaniModel):
    """A user's progress through one level."""

    abandoned_at: Timestamp | None = None
    completed_at: Timestamp | None = None
    created_at: Timestamp
    level: int = Field(ge=1)
    passed_at: Timestamp | None = None
    started_at: Timestamp | None = None
    unlocked_at: Timestamp | None = None


class Reset(WaniKaniModel):
    """A user-initiated rollback from `original_level` to `target_level`."""

    confirmed_at: Timestamp | None = None
    created_at: Timestamp
    original_level: int
    target_level: int


class ReviewStatistic(WaniKaniModel):
    """Aggregated answer counts and streaks for one subject."""

    created_at: Timestamp
    hidden: bool
    meaning_correct: int
    meaning_current_streak: int
    meaning_incorrect: int
    meaning_max_streak: int
    percentage_correct: int
    reading_correct: int
    reading_current_streak: int
    reading_incorrect: int
    reading_max_streak: int
    subject_id: int
    subject_type: SubjectType


class Review(WaniKaniModel):
    """A single recorded review. Never changes once created."""

    assignment_id: int
    created_at: Timestamp
    ending_srs_stage: int
    incorrect_meaning_answers: int
    incorrect_reading_answers: int
    spaced_repetition_system_id: int
    starting_srs_stage: int
    subject_id: int


class SrsStageDefinition(WaniKaniModel):
    interval: int | None = None
    interval_unit: Literal["milliseconds", "seconds", "minutes", "hours", "days", "weeks"] | None = (
        None
    )
    position: int


class SpacedRepetitionSystem(WaniKaniModel):
    """Stage layout and intervals of one spaced repetition system."""

    burning_stage_position: int
    created_at: Timestamp
    description: str
    name: str
    passing_stage_position: int
    stages: list[SrsStageDefinition]
    starting_stage_position: int
    unlocking_stage_position: int


class StudyMaterial(WaniKaniModel):
    """User notes and synonyms for a subject."""

    created_at: Timestamp
    hidden: bool
    meaning_note: str | None = None
    meaning_synonyms: list[str] = Field(default_factory=list)
    reading_note: str | None = None
    subject_id: int
    subject_type: SubjectType


class VoiceActor(WaniKaniModel):
    created_at: Timestamp
    description: str
    gender: Gender
    name: str


# ---------- Report bodies ----------


class ReviewLessonSummary(WaniKaniModel):
    available_at: Timestamp
    subject_ids: list[int]


class SummaryData(WaniKaniModel):
    """Lessons available now and reviews for the next 24 hours, grouped by hour."""

    lessons: list[ReviewLessonSummary]
    next_reviews_at: Timestamp | None = None
    reviews: list[ReviewLessonSummary]


class Preferences(WaniKaniModel):
    default_voice_actor_id: int
    extra_study_autoplay_audio: bool
    lessons_autoplay_audio: bool
    lessons_batch_size: int
    lessons_presentation_order: LessonPresentationOrder
    reviews_autoplay_audio: bool
    reviews_display_srs_indicator: bool


class Subscription(WaniKaniModel):
    active: bool
    max_level_granted: int
    period_ends_at: Timestamp | None = None
    type: SubscriptionType


class UserData(WaniKaniModel):
    id: str
    current_vacation_started_at: Timestamp | None = None
    level: int
    preferences: Preferences
    profile_url: str
    started_at: Timestamp
    subscription: Subscription
    username: str


# ---------- Write payloads ----------


class AssignmentStart(WaniKaniModel):
    """Body for starting an assignment. Server defaults `started_at` to now."""

    started_at: Timestamp | None = None


class UpdatePreferences(WaniKaniModel):
    default_voice_actor_id: int | None = None
    extra_study_autoplay_audio: bool | None = None
    lessons_autoplay_audio: bool | None = None
    lessons_batch_size: int | None = None
    lessons_presentation_order: LessonPresentationOrder | None = None
    reviews_autoplay_audio: bool | None = None
    reviews_display_srs_indicator: bool | None = None

    @classmethod
    def from_preferences(cls, preferences: Preferences) -> "UpdatePreferences":
        return cls(**preferences.model_dump())


class UpdateUser(WaniKaniModel):
    preferences: UpdatePreferences = Field(default_factory=UpdatePreferences)


class CreateStudyMaterial(WaniKaniModel):
    subject_id: int
    meaning_note: str | None = None
    reading_note: str | None = None
    meaning_synonyms: list[str] | None = None


class UpdateStudyMaterial(WaniKaniModel):
    meaning_note: str | None = None
    reading_note: str | None = None
    meaning_synonyms: list[str] | None = None
