from __future__ import annotations

import logging
from datetime import date, timedelta
from threading import RLock
from typing import TYPE_CHECKING, Any, Iterable, Optional
from uuid import uuid4

from pydantic import ValidationError

from ats.app.models import (
    ActivityItem,
    CandidateCreateRequest,
    CandidateRecord,
    DashboardResponse,
    InterviewRecord,
    InterviewScheduleRequest,
    InterviewStatus,
    JobCreateRequest,
    JobRecord,
    JobStatus,
    PipelineStage,
    ResumeAssessment,
    ResumeScreeningRequest,
    ScreeningRecord,
    TransitionRecord,
    utc_now,
)
from ats.app.persistence import (
    DocumentStoreError,
    candidate_from_document,
    candidate_to_document,
    interview_from_document,
    interview_to_document,
    job_from_document,
    job_to_document,
)
from ats.app.services.pipeline import (
    MoveOutcome,
    apply_move,
    build_default_stages,
    find_stage,
    insert_candidate,
    locate_candidate,
    stage_counts,
)
from ats.app.services.screening import (
    candidate_name_from_file,
    experience_label,
    placeholder_email,
    screening_from_assessment,
)
from ats.app.services.sync import CandidateSync

if TYPE_CHECKING:
    from ats.app.persistence import SqlDocumentStore

logger = logging.getLogger("ats.store")

RECENT_ACTIVITY_LIMIT = 10


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:10]}"


class StoreNotFoundError(Exception):
    pass


class StorePersistenceError(Exception):
    pass


class InMemoryStore:
    """
    Single-writer state container for the recruiting board.

    Every mutation runs under one re-entrant lock. Pipeline moves go through the
    pure `apply_move` reducer and are written back to the document store in the
    background; creates are written synchronously so a failed write leaves
    memory untouched.
    """

    def __init__(
        self,
        documents: Optional["SqlDocumentStore"] = None,
        *,
        screened_stage: str = "screening",
        sync_max_retries: int = 0,
        sync_backoff_seconds: float = 0.5,
    ) -> None:
        self._lock = RLock()
        self.documents = documents
        self.screened_stage = screened_stage
        self.sync = CandidateSync(
            documents,
            max_retries=sync_max_retries,
            backoff_seconds=sync_backoff_seconds,
        )
        self.stages: list[PipelineStage] = build_default_stages()
        self.transitions: list[TransitionRecord] = []
        self.jobs: dict[str, JobRecord] = {}
        self.interviews: dict[str, InterviewRecord] = {}
        self.screenings: list[ScreeningRecord] = []

        if self.documents:
            self._hydrate()

    def _hydrate(self) -> None:
        for document in self.documents.list("candidates"):
            status = document.get("status")
            if not find_stage(self.stages, str(status)):
                logger.warning(
                    "candidate_skipped_unknown_stage candidate_id=%s status=%s",
                    document.get("id"),
                    status,
                )
                continue
            try:
                candidate = candidate_from_document(document)
            except (KeyError, ValueError, ValidationError) as exc:
                logger.warning(
                    "candidate_skipped_invalid candidate_id=%s error=%s",
                    document.get("id"),
                    exc,
                )
                continue
            if locate_candidate(self.stages, candidate.id)[1]:
                continue
            self.stages = insert_candidate(self.stages, candidate)

        for document in self.documents.list("jobs"):
            try:
                job = job_from_document(document)
            except (KeyError, ValueError, ValidationError) as exc:
                logger.warning("job_skipped_invalid job_id=%s error=%s", document.get("id"), exc)
                continue
            self.jobs[job.id] = job

        for document in self.documents.list("interviews"):
            try:
                interview = interview_from_document(document)
            except (KeyError, ValueError, ValidationError) as exc:
                logger.warning(
                    "interview_skipped_invalid interview_id=%s error=%s",
                    document.get("id"),
                    exc,
                )
                continue
            self.interviews[interview.id] = interview

    def _persist_create(self, collection: str, record: dict[str, Any]) -> None:
        if not self.documents:
            return
        try:
            self.documents.create(collection, record)
        except DocumentStoreError as exc:
            logger.error(
                "document_create_failed collection=%s id=%s error=%s",
                collection,
                record.get("id"),
                exc,
            )
            raise StorePersistenceError(f"failed to save {collection} record") from exc

    def _persist_update(self, collection: str, record_id: str, partial: dict[str, Any]) -> None:
        if not self.documents:
            return
        try:
            self.documents.update(collection, record_id, partial)
        except DocumentStoreError as exc:
            logger.error(
                "document_update_failed collection=%s id=%s error=%s",
                collection,
                record_id,
                exc,
            )
            raise StorePersistenceError(f"failed to update {collection} record") from exc

    def close(self) -> None:
        self.sync.close()

    # Pipeline

    def board(self) -> list[PipelineStage]:
        with self._lock:
            return list(self.stages)

    def get_candidate(self, candidate_id: str) -> tuple[PipelineStage, CandidateRecord]:
        with self._lock:
            stage, candidate = locate_candidate(self.stages, candidate_id)
        if not stage or not candidate:
            raise StoreNotFoundError(f"candidate not found: {candidate_id}")
        return stage, candidate

    def list_transitions(self, candidate_id: str) -> list[TransitionRecord]:
        self.get_candidate(candidate_id)
        with self._lock:
            return [item for item in self.transitions if item.candidate_id == candidate_id]

    def _record_transition(
        self, candidate_id: str, from_stage: Optional[str], to_stage: str
    ) -> None:
        self.transitions.append(
            TransitionRecord(
                id=new_id("trn"),
                candidate_id=candidate_id,
                from_stage=from_stage,
                to_stage=to_stage,
                created_at_utc=utc_now(),
            )
        )

    def move_candidate(self, candidate_id: str, destination: str) -> MoveOutcome:
        with self._lock:
            outcome = apply_move(self.stages, candidate_id, destination)
            if not outcome.moved:
                return outcome
            self.stages = outcome.stages
            self._record_transition(candidate_id, outcome.from_stage, outcome.to_stage)
            # Submitted under the lock so background writes keep move order.
            self.sync.submit_status(outcome.candidate)
        logger.info(
            "candidate_moved candidate_id=%s from=%s to=%s",
            candidate_id,
            outcome.from_stage,
            outcome.to_stage,
        )
        return outcome

    def _add_candidate(self, candidate: CandidateRecord) -> CandidateRecord:
        with self._lock:
            if not find_stage(self.stages, candidate.status):
                raise StoreNotFoundError(f"stage not found: {candidate.status}")
            self._persist_create("candidates", candidate_to_document(candidate))
            self.stages = insert_candidate(self.stages, candidate)
            self._record_transition(candidate.id, None, candidate.status)
            return candidate

    def add_candidate(self, request: CandidateCreateRequest) -> CandidateRecord:
        today = utc_now().date()
        candidate = CandidateRecord(
            id=new_id("cand"),
            name=request.name.strip(),
            email=request.email.strip(),
            phone=request.phone.strip(),
            location=request.location.strip(),
            position=request.position.strip(),
            score=request.score,
            skills=request.skills,
            experience=request.experience.strip(),
            applied_date=today,
            last_activity=today,
            notes=request.notes,
            resume_url=request.resume_url,
            status=request.stage_id,
        )
        return self._add_candidate(candidate)

    def seed_candidates(self, candidates: Iterable[CandidateRecord]) -> int:
        with self._lock:
            if any(stage.candidates for stage in self.stages):
                return 0
            count = 0
            for candidate in candidates:
                self._add_candidate(candidate)
                count += 1
            return count

    # Screening

    def record_screening(
        self,
        request: ResumeScreeningRequest,
        assessment: ResumeAssessment,
        outcome: str,
    ) -> tuple[CandidateRecord, ScreeningRecord]:
        now = utc_now()
        candidate_name = candidate_name_from_file(request.file_name)
        candidate = CandidateRecord(
            id=new_id("cand"),
            name=candidate_name,
            email=request.candidate_email or placeholder_email(candidate_name),
            score=assessment.overall_score,
            skills=assessment.skills.technical,
            experience=experience_label(assessment.experience.years),
            applied_date=now.date(),
            last_activity=now.date(),
            notes=assessment.summary or "",
            resume_url=request.resume_url,
            status=self.screened_stage,
        )
        screening = screening_from_assessment(
            screening_id=new_id("scr"),
            candidate_id=candidate.id,
            candidate_name=candidate_name,
            file_name=request.file_name,
            assessment=assessment,
            outcome=outcome,
            uploaded_at=now,
        )
        with self._lock:
            self._add_candidate(candidate)
            self.screenings.append(screening)
        return candidate, screening

    def list_screenings(self) -> list[ScreeningRecord]:
        with self._lock:
            return list(reversed(self.screenings))

    # Jobs

    def create_job(self, request: JobCreateRequest) -> JobRecord:
        now = utc_now()
        job = JobRecord(
            id=new_id("job"),
            title=request.title.strip(),
            department=request.department.strip(),
            location=request.location.strip(),
            job_type=request.job_type,
            salary_min=request.salary_min,
            salary_max=request.salary_max,
            description=request.description,
            requirements=request.requirements,
            skills=request.skills,
            experience=request.experience,
            posted_date=now.date(),
            created_at_utc=now,
        )
        with self._lock:
            self._persist_create("jobs", job_to_document(job))
            self.jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> JobRecord:
        job = self.jobs.get(job_id)
        if not job:
            raise StoreNotFoundError(f"job not found: {job_id}")
        return job

    def list_jobs(
        self, *, search: Optional[str] = None, status: Optional[JobStatus] = None
    ) -> list[JobRecord]:
        needle = (search or "").strip().lower()
        with self._lock:
            jobs = list(self.jobs.values())
        output = []
        for job in jobs:
            if status and job.status != status:
                continue
            if needle and needle not in job.title.lower() and needle not in job.department.lower():
                continue
            output.append(job)
        return sorted(output, key=lambda job: job.created_at_utc, reverse=True)

    def set_job_status(self, job_id: str, status: JobStatus) -> JobRecord:
        with self._lock:
            job = self.get_job(job_id)
            self._persist_update("jobs", job_id, {"status": status})
            updated = job.model_copy(update={"status": status})
            self.jobs[job_id] = updated
            return updated

    # Interviews

    def schedule_interview(self, request: InterviewScheduleRequest) -> InterviewRecord:
        interview = InterviewRecord(
            id=new_id("int"),
            candidate_id=request.candidate_id,
            candidate_name=request.candidate_name.strip(),
            candidate_email=request.candidate_email.strip(),
            position=request.position.strip(),
            interview_type=request.interview_type,
            date=request.date,
            time=request.time,
            duration_minutes=request.duration_minutes,
            interviewer=request.interviewer.strip(),
            interviewer_email=request.interviewer_email.strip(),
            location=request.location,
            meeting_link=request.meeting_link,
            notes=request.notes,
            round=request.round,
            ai_score=request.ai_score,
            created_at_utc=utc_now(),
        )
        with self._lock:
            self._persist_create("interviews", interview_to_document(interview))
            self.interviews[interview.id] = interview
        return interview

    def get_interview(self, interview_id: str) -> InterviewRecord:
        interview = self.interviews.get(interview_id)
        if not interview:
            raise StoreNotFoundError(f"interview not found: {interview_id}")
        return interview

    def list_interviews(self, status: Optional[InterviewStatus] = None) -> list[InterviewRecord]:
        with self._lock:
            items = list(self.interviews.values())
        if status:
            items = [item for item in items if item.status == status]
        return sorted(items, key=lambda item: (item.date, item.time))

    def set_interview_status(
        self, interview_id: str, status: InterviewStatus
    ) -> InterviewRecord:
        with self._lock:
            interview = self.get_interview(interview_id)
            self._persist_update("interviews", interview_id, {"status": status})
            updated = interview.model_copy(update={"status": status})
            self.interviews[interview_id] = updated
            return updated

    # Dashboard

    def dashboard(self, today: Optional[date] = None) -> DashboardResponse:
        today = today or utc_now().date()
        with self._lock:
            stages = list(self.stages)
            transitions = list(self.transitions)
            jobs = list(self.jobs.values())
            interviews = list(self.interviews.values())
            screenings = list(self.screenings)

        counts = stage_counts(stages)
        hired = counts.get("hired", 0)
        rejected = counts.get("rejected", 0)
        hiring_rate = round(hired / (hired + rejected) * 100, 2) if hired + rejected else 0.0

        names: dict[str, str] = {}
        for stage in stages:
            for candidate in stage.candidates:
                names[candidate.id] = candidate.name

        # Latest move into hired, for candidates still sitting in hired.
        hired_applied = {
            candidate.id: candidate.applied_date
            for stage in stages
            if stage.id == "hired"
            for candidate in stage.candidates
        }
        hired_on: dict[str, date] = {}
        for transition in transitions:
            if transition.to_stage == "hired" and transition.from_stage is not None:
                if transition.candidate_id in hired_applied:
                    hired_on[transition.candidate_id] = transition.created_at_utc.date()

        hire_days: list[float] = []
        for candidate_id, hired_date in hired_on.items():
            elapsed: timedelta = hired_date - hired_applied[candidate_id]
            hire_days.append(max(elapsed.days, 0))
        avg_time_to_hire = round(sum(hire_days) / len(hire_days), 1) if hire_days else 0.0

        activity: list[ActivityItem] = []
        for transition in transitions:
            if transition.from_stage is None:
                detail = f"added to {transition.to_stage}"
            else:
                detail = f"moved from {transition.from_stage} to {transition.to_stage}"
            activity.append(
                ActivityItem(
                    kind="transition",
                    candidate=names.get(transition.candidate_id, transition.candidate_id),
                    detail=detail,
                    created_at_utc=transition.created_at_utc,
                )
            )
        for screening in screenings:
            activity.append(
                ActivityItem(
                    kind="screening",
                    candidate=screening.candidate_name,
                    detail=f"resume screened, score {screening.overall_score:g}",
                    created_at_utc=screening.uploaded_at,
                )
            )
        for interview in interviews:
            activity.append(
                ActivityItem(
                    kind="interview",
                    candidate=interview.candidate_name,
                    detail=f"{interview.interview_type.value} interview on {interview.date} at {interview.time}",
                    created_at_utc=interview.created_at_utc,
                )
            )
        activity.sort(key=lambda item: item.created_at_utc, reverse=True)

        return DashboardResponse(
            total_candidates=sum(counts.values()),
            active_jobs=sum(1 for job in jobs if job.status == JobStatus.active),
            pending_screenings=counts.get("screening", 0),
            interviews_today=sum(
                1
                for interview in interviews
                if interview.date == today and interview.status != InterviewStatus.cancelled
            ),
            hiring_rate=hiring_rate,
            avg_time_to_hire_days=avg_time_to_hire,
            stage_counts=counts,
            recent_activity=activity[:RECENT_ACTIVITY_LIMIT],
        )
