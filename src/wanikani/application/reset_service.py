"""
Level reset as a compensating transaction.

A confirmed reset from `original_level` down to `target_level` reverts every
assignment and review statistic for subjects in that level range, abandons the
level progressions it covers and opens a fresh progression at the target
level. The whole change set is computed before anything is written; if any
part of it is inconsistent, nothing is written.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from wanikani.domain.constants import UNLOCKING_STAGE
from wanikani.domain.envelope import (
    AssignmentResource,
    LevelProgressionResource,
    ResetResource,
    ReviewStatisticResource,
)
from wanikani.domain.errors import ResetAtomicityError
from wanikani.domain.models import LevelProgression

logger = logging.getLogger(__name__)

_STATISTIC_COUNTERS = (
    "meaning_correct",
    "meaning_current_streak",
    "meaning_incorrect",
    "meaning_max_streak",
    "percentage_correct",
    "reading_correct",
    "reading_current_streak",
    "reading_incorrect",
    "reading_max_streak",
)


@dataclass
class ProgressSnapshot:
    """
    A user's local progress records, keyed by resource id.

    Attributes:
        assignments: Assignment resources by id.
        review_statistics: Review statistic resources by id.
        level_progressions: Level progression resources by id.
        subject_levels: Level of each subject, by subject id.
        pending_progressions: Progressions opened locally that the server has
            not assigned an id to yet.
    """

    assignments: dict[int, AssignmentResource] = field(default_factory=dict)
    review_statistics: dict[int, ReviewStatisticResource] = field(default_factory=dict)
    level_progressions: dict[int, LevelProgressionResource] = field(default_factory=dict)
    subject_levels: dict[int, int] = field(default_factory=dict)
    pending_progressions: list[LevelProgression] = field(default_factory=list)


@dataclass(frozen=True)
class ResetPlan:
    """Every record a reset replaces or creates, computed up front."""

    reset_id: int
    target_level: int
    original_level: int
    confirmed_at: datetime
    assignments: dict[int, AssignmentResource]
    review_statistics: dict[int, ReviewStatisticResource]
    level_progressions: dict[int, LevelProgressionResource]
    new_progression: LevelProgression

    @property
    def affected_levels(self) -> range:
        return range(self.target_level, self.original_level + 1)


class ResetService:
    def plan(self, reset: ResetResource, snapshot: ProgressSnapshot) -> ResetPlan:
        """
        Compute the full change set for `reset` without touching `snapshot`.

        Raises:
            ResetAtomicityError: The reset is unconfirmed, targets a level above
                its original level, a record references a subject of unknown
                level, or no open progression lies in the affected range.
        """
        data = reset.data
        if data.confirmed_at is None:
            raise ResetAtomicityError(f"Reset {reset.id} has not been confirmed")
        if data.target_level > data.original_level:
            raise ResetAtomicityError(
                f"Reset {reset.id} targets level {data.target_level} "
                f"above original level {data.original_level}"
            )

        confirmed_at = data.confirmed_at
        levels = range(data.target_level, data.original_level + 1)

        assignments = {}
        for resource_id, assignment in snapshot.assignments.items():
            level = _subject_level(snapshot, assignment.data.subject_id, reset.id)
            if level in levels:
                assignments[resource_id] = _revert_assignment(
                    assignment, relock=level > data.target_level, at=confirmed_at
                )

        statistics = {}
        for resource_id, statistic in snapshot.review_statistics.items():
            level = _subject_level(snapshot, statistic.data.subject_id, reset.id)
            if level in levels:
                statistics[resource_id] = _revert_statistic(statistic, at=confirmed_at)

        progressions = {}
        for resource_id, progression in snapshot.level_progressions.items():
            if progression.data.level in levels and progression.data.abandoned_at is None:
                progressions[resource_id] = progression.model_copy(
                    update={
                        "data": progression.data.model_copy(update={"abandoned_at": confirmed_at}),
                        "data_updated_at": confirmed_at,
                    }
                )
        if not progressions:
            raise ResetAtomicityError(
                f"Reset {reset.id}: no open level progression in levels "
                f"{data.target_level}-{data.original_level}"
            )

        return ResetPlan(
            reset_id=reset.id,
            target_level=data.target_level,
            original_level=data.original_level,
            confirmed_at=confirmed_at,
            assignments=assignments,
            review_statistics=statistics,
            level_progressions=progressions,
            new_progression=LevelProgression(
                level=data.target_level,
                created_at=confirmed_at,
                unlocked_at=confirmed_at,
            ),
        )

    def apply(self, reset: ResetResource, snapshot: ProgressSnapshot) -> ResetPlan:
        """Plan the reset, then commit every record of it to `snapshot` at once."""
        plan = self.plan(reset, snapshot)

        assignments = {**snapshot.assignments, **plan.assignments}
        statistics = {**snapshot.review_statistics, **plan.review_statistics}
        progressions = {**snapshot.level_progressions, **plan.level_progressions}
        pending = [*snapshot.pending_progressions, plan.new_progression]

        snapshot.assignments = assignments
        snapshot.review_statistics = statistics
        snapshot.level_progressions = progressions
        snapshot.pending_progressions = pending

        logger.info(
            f"Applied reset {plan.reset_id} ({plan.original_level} -> {plan.target_level}): "
            f"{len(plan.assignments)} assignments, {len(plan.review_statistics)} review statistics, "
            f"{len(plan.level_progressions)} progressions abandoned"
        )
        return plan


def _subject_level(snapshot: ProgressSnapshot, subject_id: int, reset_id: int) -> int:
    level = snapshot.subject_levels.get(subject_id)
    if level is None:
        raise ResetAtomicityError(f"Reset {reset_id}: level of subject {subject_id} is unknown")
    return level


def _revert_assignment(
    assignment: AssignmentResource, relock: bool, at: datetime
) -> AssignmentResource:
    updates = {
        "srs_stage": UNLOCKING_STAGE,
        "available_at": None,
        "burned_at": None,
        "passed_at": None,
        "resurrected_at": None,
        "started_at": None,
    }
    if relock:
        updates["unlocked_at"] = None
    return assignment.model_copy(
        update={"data": assignment.data.model_copy(update=updates), "data_updated_at": at}
    )


def _revert_statistic(statistic: ReviewStatisticResource, at: datetime) -> ReviewStatisticResource:
    updates = {name: 0 for name in _STATISTIC_COUNTERS}
    return statistic.model_copy(
        update={"data": statistic.data.model_copy(update=updates), "data_updated_at": at}
    )
