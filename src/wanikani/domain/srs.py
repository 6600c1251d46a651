"""
Domain models for spaced repetition scheduling.

These are pure data structures with no I/O or external dependencies.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .constants import SECONDS_PER_HOUR, STARTING_STAGE, UNLOCKING_STAGE
from .models import SpacedRepetitionSystem

_UNIT_SECONDS = {
    "milliseconds": 0.001,
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
}


@dataclass(frozen=True)
class SrsStage:
    """
    One position in a stage table.

    Attributes:
        position: Stage number, 0..N.
        interval_hours: Hours until the next review once this stage is reached.
            None for the unlocking and burning stages.
    """

    position: int
    interval_hours: int | None = None

    @property
    def interval(self) -> timedelta | None:
        if self.interval_hours is None:
            return None
        return timedelta(hours=self.interval_hours)


@dataclass(frozen=True)
class StageTable:
    """
    An ordered sequence of N+1 stages.

    Position 0 unlocks (lessons), 1 starts reviews, `passing_position` counts
    towards level progression and N burns the subject out of reviews.
    """

    stages: tuple[SrsStage, ...]
    passing_position: int
    name: str = "custom"
    unlocking_position: int = UNLOCKING_STAGE
    starting_position: int = STARTING_STAGE

    def __post_init__(self):
        positions = [stage.position for stage in self.stages]
        if positions != list(range(len(self.stages))):
            raise ValueError(f"Stage positions must be contiguous from 0, got {positions}")
        if len(self.stages) < 3:
            raise ValueError("A stage table needs unlocking, starting and burning stages")
        if self.unlocking_position != UNLOCKING_STAGE or self.starting_position != STARTING_STAGE:
            raise ValueError("Unlocking stage must be 0 and starting stage must be 1")
        if not self.starting_position <= self.passing_position < self.burning_position:
            raise ValueError(
                f"Passing position {self.passing_position} outside "
                f"[{self.starting_position}, {self.burning_position - 1}]"
            )

    @property
    def burning_position(self) -> int:
        return len(self.stages) - 1

    def stage(self, position: int) -> SrsStage:
        if not 0 <= position <= self.burning_position:
            raise ValueError(f"Stage {position} outside [0, {self.burning_position}]")
        return self.stages[position]

    def interval_for(self, position: int) -> timedelta | None:
        return self.stage(position).interval

    def is_passing(self, position: int) -> bool:
        return position >= self.passing_position

    def is_burned(self, position: int) -> bool:
        return position >= self.burning_position

    @classmethod
    def from_intervals(
        cls, hours: list[int], passing_position: int, name: str = "custom"
    ) -> "StageTable":
        """Build a table from the review intervals of stages 1..N-1."""
        stages = [SrsStage(UNLOCKING_STAGE)]
        stages.extend(SrsStage(i + 1, h) for i, h in enumerate(hours))
        stages.append(SrsStage(len(hours) + 1))
        return cls(stages=tuple(stages), passing_position=passing_position, name=name)

    @classmethod
    def from_system(cls, system: SpacedRepetitionSystem) -> "StageTable":
        """Convert a fetched spaced_repetition_system into a table, rounding intervals up to hours."""
        stages = []
        for definition in sorted(system.stages, key=lambda s: s.position):
            hours = None
            if definition.interval is not None:
                unit = _UNIT_SECONDS[definition.interval_unit or "seconds"]
                hours = math.ceil(definition.interval * unit / SECONDS_PER_HOUR)
            stages.append(SrsStage(definition.position, hours))

        table = cls(
            stages=tuple(stages),
            passing_position=system.passing_stage_position,
            name=system.name,
            unlocking_position=system.unlocking_stage_position,
            starting_position=system.starting_stage_position,
        )
        if table.burning_position != system.burning_stage_position:
            raise ValueError(
                f"Burning position {system.burning_stage_position} does not match "
                f"table length {len(stages)}"
            )
        return table


# Intervals for stages 1..8 (Apprentice I .. Enlightened).
STANDARD_STAGE_TABLE = StageTable.from_intervals(
    [4, 8, 23, 47, 168, 336, 720, 2880],
    passing_position=5,
    name="Default system for dictionary subjects",
)
ACCELERATED_STAGE_TABLE = StageTable.from_intervals(
    [2, 4, 8, 23, 168, 336, 720, 2880],
    passing_position=5,
    name="Default system for dictionary subjects, accelerated",
)


@dataclass(frozen=True)
class PenaltyPolicy:
    """
    How far an assignment drops after incorrect answers.

    By default the drop is `ceil(incorrect / adjustment_divisor)` multiplied by
    `factor_at_or_above_passing` once the stage is at or past the passing stage,
    else by `factor_below_passing`. `overrides` maps an exact incorrect-answer
    count to a fixed drop and wins over the formula.
    """

    adjustment_divisor: int = 2
    factor_below_passing: int = 1
    factor_at_or_above_passing: int = 2
    overrides: Mapping[int, int] = field(default_factory=dict)

    def penalty(self, stage: int, incorrect_count: int, table: StageTable) -> int:
        if incorrect_count <= 0:
            return 0
        if incorrect_count in self.overrides:
            return self.overrides[incorrect_count]
        adjustment = math.ceil(incorrect_count / self.adjustment_divisor)
        factor = (
            self.factor_at_or_above_passing
            if table.is_passing(stage)
            else self.factor_below_passing
        )
        return adjustment * factor


@dataclass(frozen=True)
class ReviewOutcome:
    """Answers given for one subject in a review session."""

    incorrect_meaning_answers: int = 0
    incorrect_reading_answers: int = 0

    def __post_init__(self):
        if self.incorrect_meaning_answers < 0 or self.incorrect_reading_answers < 0:
            raise ValueError("Incorrect answer counts cannot be negative")

    @property
    def incorrect_count(self) -> int:
        return self.incorrect_meaning_answers + self.incorrect_reading_answers

    @property
    def is_correct(self) -> bool:
        return self.incorrect_count == 0


@dataclass(frozen=True)
class SrsTransition:
    """Result of moving an assignment through one review."""

    from_stage: int
    to_stage: int
    available_at: datetime | None
    passed: bool = False
    burned: bool = False
