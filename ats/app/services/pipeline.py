from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ats.app.models import CandidateRecord, PipelineStage

DEFAULT_STAGES: tuple[tuple[str, str, str], ...] = (
    ("applied", "Applied", "blue"),
    ("screening", "AI Screening", "yellow"),
    ("interview", "Interview", "purple"),
    ("offer", "Offer", "green"),
    ("hired", "Hired", "emerald"),
    ("rejected", "Rejected", "red"),
)


def build_default_stages() -> list[PipelineStage]:
    return [
        PipelineStage(id=stage_id, title=title, color=color)
        for stage_id, title, color in DEFAULT_STAGES
    ]


@dataclass(frozen=True)
class MoveOutcome:
    stages: list[PipelineStage]
    moved: bool
    candidate: Optional[CandidateRecord] = None
    from_stage: Optional[str] = None
    to_stage: Optional[str] = None


def find_stage(stages: list[PipelineStage], stage_id: str) -> Optional[PipelineStage]:
    for stage in stages:
        if stage.id == stage_id:
            return stage
    return None


def locate_candidate(
    stages: list[PipelineStage], candidate_id: str
) -> tuple[Optional[PipelineStage], Optional[CandidateRecord]]:
    for stage in stages:
        for candidate in stage.candidates:
            if candidate.id == candidate_id:
                return stage, candidate
    return None, None


def resolve_target_stage_id(stages: list[PipelineStage], destination: str) -> Optional[str]:
    """A destination is a stage id, or the id of a candidate whose stage is the target."""
    if find_stage(stages, destination):
        return destination
    stage, _ = locate_candidate(stages, destination)
    return stage.id if stage else None


def apply_move(
    stages: list[PipelineStage], candidate_id: str, destination: str
) -> MoveOutcome:
    """
    Move a candidate into the destination stage without mutating `stages`.

    Unknown candidates, unresolvable destinations and same-stage drops return
    the original list untouched with moved=False.
    """
    source, candidate = locate_candidate(stages, candidate_id)
    if not source or not candidate:
        return MoveOutcome(stages=stages, moved=False)

    target_id = resolve_target_stage_id(stages, destination)
    if target_id is None or target_id == source.id:
        return MoveOutcome(stages=stages, moved=False, candidate=candidate)

    updated = candidate.model_copy(update={"status": target_id})
    next_stages: list[PipelineStage] = []
    for stage in stages:
        if stage.id == source.id:
            remaining = [item for item in stage.candidates if item.id != candidate_id]
            next_stages.append(stage.model_copy(update={"candidates": remaining}))
        elif stage.id == target_id:
            next_stages.append(
                stage.model_copy(update={"candidates": [*stage.candidates, updated]})
            )
        else:
            next_stages.append(stage)
    return MoveOutcome(
        stages=next_stages,
        moved=True,
        candidate=updated,
        from_stage=source.id,
        to_stage=target_id,
    )


def insert_candidate(
    stages: list[PipelineStage], candidate: CandidateRecord
) -> list[PipelineStage]:
    """Append a new candidate to the stage named by its status."""
    if not find_stage(stages, candidate.status):
        raise ValueError(f"unknown stage: {candidate.status}")
    existing, _ = locate_candidate(stages, candidate.id)
    if existing:
        raise ValueError(f"candidate already on the board: {candidate.id}")
    return [
        stage.model_copy(update={"candidates": [*stage.candidates, candidate]})
        if stage.id == candidate.status
        else stage
        for stage in stages
    ]


def stage_counts(stages: list[PipelineStage]) -> dict[str, int]:
    return {stage.id: len(stage.candidates) for stage in stages}
