"""
SRS stage and timing engine.

Pure computation: given a stage table, a penalty policy and a review outcome,
work out the next stage and when the subject becomes reviewable again.
Scheduling works at hour granularity; the review time is rounded up to the
next whole hour before the interval is added.
"""

import logging
from datetime import datetime, timedelta

from wanikani.domain.envelope import AssignmentResource
from wanikani.domain.models import Assignment, SpacedRepetitionSystem
from wanikani.domain.srs import (
    STANDARD_STAGE_TABLE,
    PenaltyPolicy,
    ReviewOutcome,
    SrsTransition,
    StageTable,
)

logger = logging.getLogger(__name__)


def ceil_hour(moment: datetime) -> datetime:
    """Round up to the next whole hour. A moment exactly on the hour is kept."""
    floored = moment.replace(minute=0, second=0, microsecond=0)
    if floored == moment:
        return moment
    return floored + timedelta(hours=1)


class SrsEngine:
    def __init__(
        self,
        table: StageTable = STANDARD_STAGE_TABLE,
        penalty_policy: PenaltyPolicy | None = None,
    ):
        self.table = table
        self.penalty_policy = penalty_policy or PenaltyPolicy()

    @classmethod
    def for_system(
        cls, system: SpacedRepetitionSystem, penalty_policy: PenaltyPolicy | None = None
    ) -> "SrsEngine":
        return cls(StageTable.from_system(system), penalty_policy)

    def next_stage(self, stage: int, outcome: ReviewOutcome) -> int:
        """
        Stage after one review.

        Correct answers move up one stage, up to burned. Incorrect answers
        drop by the penalty but never below the starting stage. A burned
        stage never moves.
        """
        table = self.table
        table.stage(stage)
        if stage == table.unlocking_position:
            raise ValueError("An assignment in the unlocking stage cannot be reviewed")
        if table.is_burned(stage):
            return stage

        if outcome.is_correct:
            return min(stage + 1, table.burning_position)

        penalty = self.penalty_policy.penalty(stage, outcome.incorrect_count, table)
        return max(table.starting_position, stage - penalty)

    def next_available_at(self, stage: int, now: datetime) -> datetime | None:
        """When a subject that has just reached `stage` is next up for review."""
        interval = self.table.interval_for(stage)
        if interval is None:
            return None
        return ceil_hour(now) + interval

    def transition(self, stage: int, outcome: ReviewOutcome, now: datetime) -> SrsTransition:
        to_stage = self.next_stage(stage, outcome)
        return SrsTransition(
            from_stage=stage,
            to_stage=to_stage,
            available_at=self.next_available_at(to_stage, now),
            passed=self.table.is_passing(to_stage),
            burned=self.table.is_burned(to_stage),
        )

    def apply_review(
        self, assignment: AssignmentResource, outcome: ReviewOutcome, now: datetime
    ) -> AssignmentResource:
        """Return the assignment as it stands after the review at `now`."""
        data = assignment.data
        if data.started_at is None:
            raise ValueError(f"Assignment {assignment.id} has not been started")
        if self.table.is_burned(data.srs_stage):
            logger.debug(f"Assignment {assignment.id} is burned; review has no effect")
            return assignment

        t = self.transition(data.srs_stage, outcome, now)
        updates = {
            "srs_stage": t.to_stage,
            "available_at": t.available_at,
        }
        if t.passed and data.passed_at is None:
            updates["passed_at"] = now
        if t.burned and data.burned_at is None:
            updates["burned_at"] = now

        logger.debug(f"Assignment {assignment.id}: stage {t.from_stage} -> {t.to_stage}")
        return assignment.model_copy(
            update={"data": data.model_copy(update=updates), "data_updated_at": now}
        )

    def start_assignment(self, assignment: AssignmentResource, now: datetime) -> AssignmentResource:
        """Complete the lesson for an unlocked assignment, moving it into reviews."""
        data = assignment.data
        if data.unlocked_at is None:
            raise ValueError(f"Assignment {assignment.id} is still locked")
        if data.started_at is not None or data.srs_stage != self.table.unlocking_position:
            raise ValueError(f"Assignment {assignment.id} has already been started")

        starting = self.table.starting_position
        updates = {
            "srs_stage": starting,
            "started_at": now,
            "available_at": self.next_available_at(starting, now),
        }
        return assignment.model_copy(
            update={"data": data.model_copy(update=updates), "data_updated_at": now}
        )

    def is_available_for_review(
        self, assignment: AssignmentResource | Assignment, now: datetime
    ) -> bool:
        data = assignment.data if isinstance(assignment, AssignmentResource) else assignment
        if data.started_at is None or data.available_at is None:
            return False
        if data.srs_stage == self.table.unlocking_position or self.table.is_burned(data.srs_stage):
            return False
        return data.available_at <= now
