from __future__ import annotations

from datetime import date

import pytest

from ats.app.models import CandidateRecord, PipelineStage
from ats.app.services.pipeline import (
    apply_move,
    build_default_stages,
    insert_candidate,
    locate_candidate,
    stage_counts,
)


def candidate(candidate_id: str, status: str) -> CandidateRecord:
    return CandidateRecord(
        id=candidate_id,
        name=candidate_id.upper(),
        applied_date=date(2024, 1, 10),
        last_activity=date(2024, 1, 10),
        status=status,
    )


def board(**members: list[str]) -> list[PipelineStage]:
    stages = build_default_stages()
    for stage_id, ids in members.items():
        for candidate_id in ids:
            stages = insert_candidate(stages, candidate(candidate_id, stage_id))
    return stages


def ids_in(stages: list[PipelineStage], stage_id: str) -> list[str]:
    for stage in stages:
        if stage.id == stage_id:
            return [item.id for item in stage.candidates]
    raise AssertionError(f"missing stage {stage_id}")


def assert_consistent(stages: list[PipelineStage]) -> None:
    seen: set[str] = set()
    for stage in stages:
        for item in stage.candidates:
            assert item.id not in seen
            assert item.status == stage.id
            seen.add(item.id)


def test_default_registry_order_and_titles() -> None:
    stages = build_default_stages()
    assert [stage.id for stage in stages] == [
        "applied",
        "screening",
        "interview",
        "offer",
        "hired",
        "rejected",
    ]
    assert stages[1].title == "AI Screening"
    assert all(not stage.candidates for stage in stages)


def test_move_appends_to_end_of_target_and_updates_status() -> None:
    stages = board(applied=["a", "b"], interview=["c"])

    outcome = apply_move(stages, "b", "interview")

    assert outcome.moved is True
    assert ids_in(outcome.stages, "applied") == ["a"]
    assert ids_in(outcome.stages, "interview") == ["c", "b"]
    assert outcome.candidate.status == "interview"
    assert (outcome.from_stage, outcome.to_stage) == ("applied", "interview")
    assert_consistent(outcome.stages)


def test_move_does_not_mutate_input_board() -> None:
    stages = board(applied=["a", "b"], interview=["c"])

    apply_move(stages, "b", "interview")

    assert ids_in(stages, "applied") == ["a", "b"]
    assert ids_in(stages, "interview") == ["c"]
    _, original = locate_candidate(stages, "b")
    assert original.status == "applied"


def test_destination_may_be_a_candidate_id() -> None:
    stages = board(applied=["a"], offer=["x", "y"])

    outcome = apply_move(stages, "a", "x")

    assert outcome.moved is True
    assert ids_in(outcome.stages, "offer") == ["x", "y", "a"]
    assert outcome.candidate.status == "offer"


def test_same_stage_drop_is_a_noop() -> None:
    stages = board(applied=["a", "b", "c"])

    by_stage = apply_move(stages, "a", "applied")
    by_peer = apply_move(stages, "a", "c")

    for outcome in (by_stage, by_peer):
        assert outcome.moved is False
        assert outcome.stages is stages
        assert ids_in(outcome.stages, "applied") == ["a", "b", "c"]


@pytest.mark.parametrize(
    "candidate_id,destination",
    [("ghost", "interview"), ("a", "archived"), ("a", "ghost")],
)
def test_unresolvable_moves_leave_board_unchanged(candidate_id: str, destination: str) -> None:
    stages = board(applied=["a"], interview=["c"])

    outcome = apply_move(stages, candidate_id, destination)

    assert outcome.moved is False
    assert outcome.stages is stages


def test_repeating_a_move_is_idempotent() -> None:
    stages = board(applied=["a", "b"], interview=["c"])

    once = apply_move(stages, "b", "interview")
    twice = apply_move(once.stages, "b", "interview")

    assert twice.moved is False
    assert stage_counts(twice.stages) == stage_counts(once.stages)
    assert ids_in(twice.stages, "interview") == ["c", "b"]


def test_moves_preserve_total_count() -> None:
    stages = board(applied=["a", "b"], screening=["c"], interview=["d"])
    total = sum(stage_counts(stages).values())

    for candidate_id, destination in [("a", "offer"), ("c", "d"), ("b", "rejected"), ("a", "hired")]:
        stages = apply_move(stages, candidate_id, destination).stages
        assert sum(stage_counts(stages).values()) == total
        assert_consistent(stages)

    assert ids_in(stages, "interview") == ["d", "c"]
    assert ids_in(stages, "hired") == ["a"]


def test_insert_rejects_unknown_stage_and_duplicates() -> None:
    stages = board(applied=["a"])

    with pytest.raises(ValueError):
        insert_candidate(stages, candidate("z", "archived"))
    with pytest.raises(ValueError):
        insert_candidate(stages, candidate("a", "offer"))
