from datetime import timedelta

import pytest

from wanikani.domain.envelope import decode_envelope
from wanikani.domain.models import SpacedRepetitionSystem, SrsStageDefinition
from wanikani.domain.srs import (
    ACCELERATED_STAGE_TABLE,
    STANDARD_STAGE_TABLE,
    PenaltyPolicy,
    ReviewOutcome,
    SrsStage,
    StageTable,
)


def test_standard_table_layout():
    table = STANDARD_STAGE_TABLE

    assert table.burning_position == 9
    assert table.passing_position == 5
    assert table.interval_for(0) is None
    assert table.interval_for(1) == timedelta(hours=4)
    assert table.interval_for(4) == timedelta(hours=47)
    assert table.interval_for(8) == timedelta(days=120)
    assert table.interval_for(9) is None


def test_accelerated_table_is_faster_early_on():
    assert ACCELERATED_STAGE_TABLE.interval_for(1) == timedelta(hours=2)
    assert ACCELERATED_STAGE_TABLE.interval_for(4) == timedelta(hours=23)
    assert ACCELERATED_STAGE_TABLE.interval_for(5) == STANDARD_STAGE_TABLE.interval_for(5)


def test_passing_and_burned_predicates():
    table = STANDARD_STAGE_TABLE

    assert not table.is_passing(4)
    assert table.is_passing(5)
    assert not table.is_burned(8)
    assert table.is_burned(9)


def test_stage_out_of_range():
    with pytest.raises(ValueError):
        STANDARD_STAGE_TABLE.stage(10)
    with pytest.raises(ValueError):
        STANDARD_STAGE_TABLE.stage(-1)


def test_table_rejects_gaps_and_bad_passing_position():
    with pytest.raises(ValueError, match="contiguous"):
        StageTable(stages=(SrsStage(0), SrsStage(2, 4), SrsStage(3)), passing_position=2)
    with pytest.raises(ValueError, match="Passing position"):
        StageTable.from_intervals([4, 8], passing_position=3)


def test_from_system_matches_builtin_table(load_fixture):
    system = decode_envelope(load_fixture("spaced_repetition_system")).data
    table = StageTable.from_system(system)

    assert table.name == "Default system for dictionary subjects"
    assert table.stages == STANDARD_STAGE_TABLE.stages
    assert table.passing_position == 5


def test_from_system_rounds_intervals_up_to_hours(load_fixture):
    raw = load_fixture("spaced_repetition_system")["data"]
    raw["stages"] = [
        {"interval": None, "position": 0, "interval_unit": None},
        {"interval": 90, "position": 1, "interval_unit": "minutes"},
        {"interval": 2, "position": 2, "interval_unit": "days"},
        {"interval": None, "position": 3, "interval_unit": None},
    ]
    raw["passing_stage_position"] = 2
    raw["burning_stage_position"] = 3
    table = StageTable.from_system(SpacedRepetitionSystem.model_validate(raw))

    assert table.interval_for(1) == timedelta(hours=2)
    assert table.interval_for(2) == timedelta(hours=48)


def test_from_system_rejects_mismatched_burning_position(load_fixture):
    raw = load_fixture("spaced_repetition_system")["data"]
    raw["burning_stage_position"] = 8

    with pytest.raises(ValueError, match="Burning position"):
        StageTable.from_system(SpacedRepetitionSystem.model_validate(raw))


def test_stage_definition_allows_null_interval():
    definition = SrsStageDefinition(position=0)
    assert definition.interval is None
    assert definition.interval_unit is None


@pytest.mark.parametrize(
    "stage,incorrect,expected",
    [
        (3, 1, 1),
        (3, 2, 1),
        (3, 3, 2),
        (6, 1, 2),
        (6, 2, 2),
        (6, 3, 4),
        (8, 0, 0),
    ],
)
def test_default_penalty(stage, incorrect, expected):
    assert PenaltyPolicy().penalty(stage, incorrect, STANDARD_STAGE_TABLE) == expected


def test_penalty_overrides_take_precedence():
    policy = PenaltyPolicy(overrides={1: 0, 4: 7})

    assert policy.penalty(6, 1, STANDARD_STAGE_TABLE) == 0
    assert policy.penalty(2, 4, STANDARD_STAGE_TABLE) == 7
    assert policy.penalty(2, 2, STANDARD_STAGE_TABLE) == 1


def test_review_outcome():
    assert ReviewOutcome().is_correct
    outcome = ReviewOutcome(incorrect_meaning_answers=1, incorrect_reading_answers=2)
    assert outcome.incorrect_count == 3
    assert not outcome.is_correct
    with pytest.raises(ValueError):
        ReviewOutcome(incorrect_meaning_answers=-1)
