from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ats.app.auth import FUNCTION_ROLES, RECRUITING_ROLES, AuthContext, require_roles
from ats.app.demo import demo_candidates
from ats.app.models import (
    CalendarResponse,
    CandidateCreateRequest,
    CandidateMatchingFunctionRequest,
    CandidateResponse,
    DashboardResponse,
    InterviewEmail,
    InterviewEmailFunctionRequest,
    InterviewEmailFunctionResponse,
    InterviewRecord,
    InterviewScheduleRequest,
    InterviewScheduleResponse,
    InterviewStatus,
    InterviewStatusUpdateRequest,
    JobCreateRequest,
    JobDraftResponse,
    JobGenerateRequest,
    JobGeneration,
    JobGeneratorFunctionRequest,
    JobRecord,
    JobStatus,
    JobStatusUpdateRequest,
    MatchAssessment,
    MatchRunRequest,
    MatchRunResponse,
    MoveRequest,
    MoveResponse,
    PipelineResponse,
    PipelineStageView,
    ResumeAssessment,
    ResumeBatchFailure,
    ResumeBatchRequest,
    ResumeBatchResponse,
    ResumeScreeningFunctionRequest,
    ResumeScreeningRequest,
    ScreeningRecord,
    TimeSlot,
    TransitionRecord,
)
from ats.app.observability import MetricsRegistry, configure_logging, observe_request
from ats.app.persistence import SqlDocumentStore
from ats.app.services.assessments import (
    Fallback,
    generate_interview_email,
    generate_job_posting,
    match_candidate,
    screen_resume,
)
from ats.app.services.llm import ChatCompletionClient, LlmServiceError
from ats.app.services.scheduling import month_grid, time_slots
from ats.app.settings import Settings, load_settings
from ats.app.store import InMemoryStore, StoreNotFoundError, StorePersistenceError

logger = logging.getLogger("ats.api")

DRAFT_EXPERIENCE = "3+ years"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.store.close()


def create_app() -> FastAPI:
    app = FastAPI(title="ATS Recruiting API", version="0.1.0", lifespan=lifespan)
    configure_logging()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    settings = load_settings()
    documents = SqlDocumentStore(settings.database_url) if settings.persistence_enabled else None
    store = InMemoryStore(
        documents,
        screened_stage=settings.screened_candidate_stage,
        sync_max_retries=settings.sync_max_retries,
        sync_backoff_seconds=settings.sync_retry_backoff_seconds,
    )
    if settings.seed_demo_data:
        try:
            seeded = store.seed_candidates(demo_candidates())
        except StorePersistenceError:
            logger.exception("demo_seed_failed")
        else:
            logger.info("demo_seed_complete candidates=%s", seeded)
    app.state.store = store
    app.state.settings = settings
    app.state.metrics = MetricsRegistry()
    app.state.llm = ChatCompletionClient(
        api_url=settings.llm_api_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
    )

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        return await observe_request(request, call_next, metrics=app.state.metrics)

    app.include_router(build_router())
    return app


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_metrics(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def get_llm(request: Request) -> ChatCompletionClient:
    return request.app.state.llm


def record_outcome(metrics: MetricsRegistry, outcome, kind: str) -> None:
    metrics.increment(f"{kind}_completed")
    if isinstance(outcome, Fallback):
        metrics.increment(f"{kind}_fallback")


def function_error(message: str, status_code: int, details: Optional[str] = None) -> JSONResponse:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @router.get("/health/ready")
    def readiness(request: Request) -> dict[str, str]:
        settings = get_settings(request)
        documents = getattr(request.app.state.store, "documents", None)
        if settings.persistence_enabled and documents and not documents.ping():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="database unavailable",
            )
        return {"status": "ready"}

    @router.get("/metrics", response_class=PlainTextResponse)
    def metrics(request: Request) -> Response:
        registry = get_metrics(request)
        return PlainTextResponse(registry.to_prometheus())

    # Pipeline

    @router.get("/pipeline", response_model=PipelineResponse)
    def pipeline(
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> PipelineResponse:
        stages = get_store(request).board()
        views = [
            PipelineStageView(
                id=stage.id,
                title=stage.title,
                color=stage.color,
                count=len(stage.candidates),
                candidates=stage.candidates,
            )
            for stage in stages
        ]
        return PipelineResponse(total=sum(view.count for view in views), stages=views)

    @router.post("/pipeline/move", response_model=MoveResponse)
    def move_candidate(
        payload: MoveRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> MoveResponse:
        outcome = get_store(request).move_candidate(payload.candidate_id, payload.destination)
        get_metrics(request).increment("candidate_moved" if outcome.moved else "candidate_move_noop")
        return MoveResponse(
            moved=outcome.moved,
            candidate_id=payload.candidate_id,
            from_stage=outcome.from_stage,
            to_stage=outcome.to_stage,
            candidate=outcome.candidate,
        )

    @router.post("/candidates", response_model=CandidateResponse)
    def create_candidate(
        payload: CandidateCreateRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> CandidateResponse:
        store = get_store(request)
        try:
            candidate = store.add_candidate(payload)
            stage, _candidate = store.get_candidate(candidate.id)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        return CandidateResponse(candidate=candidate, stage_id=stage.id, stage_title=stage.title)

    @router.get("/candidates/{candidate_id}", response_model=CandidateResponse)
    def get_candidate(
        candidate_id: str,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> CandidateResponse:
        try:
            stage, candidate = get_store(request).get_candidate(candidate_id)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return CandidateResponse(candidate=candidate, stage_id=stage.id, stage_title=stage.title)

    @router.get(
        "/candidates/{candidate_id}/transitions", response_model=list[TransitionRecord]
    )
    def candidate_transitions(
        candidate_id: str,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> list[TransitionRecord]:
        try:
            return get_store(request).list_transitions(candidate_id)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    # Screening

    def screen_one(request: Request, item: ResumeScreeningRequest) -> ScreeningRecord:
        settings = get_settings(request)
        outcome = screen_resume(
            get_llm(request),
            resume_text=item.resume_text,
            job_requirements=item.job_requirements or settings.default_job_requirements,
        )
        record_outcome(get_metrics(request), outcome, "resume_screening")
        _candidate, screening = get_store(request).record_screening(
            item, outcome.value, outcome.kind
        )
        return screening

    @router.post("/screening/resume", response_model=ScreeningRecord)
    def screen_resume_endpoint(
        payload: ResumeScreeningRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> ScreeningRecord:
        try:
            return screen_one(request, payload)
        except LlmServiceError as exc:
            logger.error("resume_screening_failed file_name=%s error=%s", payload.file_name, exc)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

    @router.post("/screening/batch", response_model=ResumeBatchResponse)
    def screen_batch(
        payload: ResumeBatchRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> ResumeBatchResponse:
        results: list[ScreeningRecord] = []
        failures: list[ResumeBatchFailure] = []
        for item in payload.items:
            try:
                results.append(screen_one(request, item))
            except (LlmServiceError, StoreNotFoundError, StorePersistenceError) as exc:
                logger.error("resume_screening_failed file_name=%s error=%s", item.file_name, exc)
                failures.append(ResumeBatchFailure(file_name=item.file_name, detail=str(exc)))
        return ResumeBatchResponse(results=results, failures=failures)

    @router.get("/screening/results", response_model=list[ScreeningRecord])
    def screening_results(
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> list[ScreeningRecord]:
        return get_store(request).list_screenings()

    # Jobs

    @router.post("/jobs", response_model=JobRecord)
    def create_job(
        payload: JobCreateRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> JobRecord:
        try:
            return get_store(request).create_job(payload)
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

    @router.get("/jobs", response_model=list[JobRecord])
    def list_jobs(
        request: Request,
        search: Optional[str] = Query(default=None, max_length=120),
        job_status: Optional[JobStatus] = Query(default=None, alias="status"),
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> list[JobRecord]:
        return get_store(request).list_jobs(search=search, status=job_status)

    @router.post("/jobs/generate", response_model=JobDraftResponse)
    def generate_job(
        payload: JobGenerateRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> JobDraftResponse:
        title = (payload.title or "").strip()
        department = (payload.department or "").strip()
        if not title or not department:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="title and department are required",
            )
        settings = get_settings(request)
        try:
            outcome = generate_job_posting(
                get_llm(request),
                job_title=title,
                company=settings.company_name,
                basic_requirements=f"{department} department position with competitive salary",
            )
        except LlmServiceError as exc:
            logger.error("job_generation_failed title=%s error=%s", title, exc)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        record_outcome(get_metrics(request), outcome, "job_generation")
        draft = outcome.value
        return JobDraftResponse(
            description=draft.description,
            requirements=draft.requirements,
            skills=draft.skills,
            benefits=draft.benefits,
            experience=DRAFT_EXPERIENCE,
            outcome=outcome.kind,
        )

    @router.post("/jobs/{job_id}/status", response_model=JobRecord)
    def set_job_status(
        job_id: str,
        payload: JobStatusUpdateRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> JobRecord:
        try:
            return get_store(request).set_job_status(job_id, payload.status)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

    # Matching

    @router.post("/matching/run", response_model=MatchRunResponse)
    def run_matching(
        payload: MatchRunRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> MatchRunResponse:
        store = get_store(request)
        try:
            _stage, candidate = store.get_candidate(payload.candidate_id)
            job = store.get_job(payload.job_id)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

        profile = candidate.model_dump(
            mode="json",
            include={"name", "position", "location", "score", "skills", "experience", "notes"},
        )
        requirements = {
            "title": job.title,
            "department": job.department,
            "location": job.location,
            "requirements": job.requirements,
            "skills": job.skills,
            "experience": job.experience,
            "salary": {"min": job.salary_min, "max": job.salary_max},
            "weights": job.matching_criteria.model_dump(),
        }
        try:
            outcome = match_candidate(
                get_llm(request),
                candidate_profile=profile,
                job_requirements=requirements,
                job_description=job.description or None,
            )
        except LlmServiceError as exc:
            logger.error(
                "candidate_matching_failed candidate_id=%s job_id=%s error=%s",
                candidate.id,
                job.id,
                exc,
            )
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        record_outcome(get_metrics(request), outcome, "candidate_matching")
        return MatchRunResponse(
            candidate_id=candidate.id,
            job_id=job.id,
            outcome=outcome.kind,
            assessment=outcome.value,
        )

    # Interviews

    @router.post("/interviews", response_model=InterviewScheduleResponse)
    def schedule_interview(
        payload: InterviewScheduleRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> InterviewScheduleResponse:
        try:
            interview = get_store(request).schedule_interview(payload)
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

        email: Optional[InterviewEmail] = None
        try:
            email = generate_interview_email(
                get_llm(request),
                candidate_email=interview.candidate_email,
                candidate_name=interview.candidate_name,
                interview_date=interview.date.isoformat(),
                interview_time=interview.time,
                interview_type=interview.interview_type.value,
                job_title=interview.position or None,
                company_name=get_settings(request).company_name,
            )
        except LlmServiceError as exc:
            logger.warning(
                "interview_email_failed interview_id=%s error=%s", interview.id, exc
            )
        return InterviewScheduleResponse(interview=interview, email=email)

    @router.get("/interviews", response_model=list[InterviewRecord])
    def list_interviews(
        request: Request,
        interview_status: Optional[InterviewStatus] = Query(default=None, alias="status"),
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> list[InterviewRecord]:
        return get_store(request).list_interviews(interview_status)

    @router.get("/interviews/calendar", response_model=CalendarResponse)
    def interview_calendar(
        request: Request,
        year: int = Query(ge=1970, le=2100),
        month: int = Query(ge=1, le=12),
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> CalendarResponse:
        interviews = get_store(request).list_interviews()
        return CalendarResponse(year=year, month=month, days=month_grid(interviews, year, month))

    @router.get("/interviews/slots", response_model=list[TimeSlot])
    def interview_slots(
        request: Request,
        day: date = Query(alias="date"),
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> list[TimeSlot]:
        return time_slots(get_store(request).list_interviews(), day)

    @router.post("/interviews/{interview_id}/status", response_model=InterviewRecord)
    def set_interview_status(
        interview_id: str,
        payload: InterviewStatusUpdateRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> InterviewRecord:
        try:
            return get_store(request).set_interview_status(interview_id, payload.status)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except StorePersistenceError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

    @router.get("/dashboard", response_model=DashboardResponse)
    def dashboard(
        request: Request,
        _: AuthContext = Depends(require_roles(*RECRUITING_ROLES)),
    ) -> DashboardResponse:
        return get_store(request).dashboard()

    # Function endpoints keep the camelCase contracts of the hosted functions.

    @router.post("/functions/ai-resume-screening", response_model=ResumeAssessment)
    def resume_screening_function(
        payload: ResumeScreeningFunctionRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*FUNCTION_ROLES)),
    ):
        if not payload.resume_text:
            return function_error("Resume text is required", status.HTTP_400_BAD_REQUEST)
        try:
            outcome = screen_resume(
                get_llm(request),
                resume_text=payload.resume_text,
                job_requirements=payload.job_requirements,
            )
        except LlmServiceError as exc:
            logger.error("function_failed name=ai-resume-screening error=%s", exc)
            return function_error(
                "Failed to analyze resume", status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)
            )
        record_outcome(get_metrics(request), outcome, "resume_screening")
        return outcome.value

    @router.post("/functions/ai-job-generator", response_model=JobGeneration)
    def job_generator_function(
        payload: JobGeneratorFunctionRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*FUNCTION_ROLES)),
    ):
        if not payload.job_title:
            return function_error("Job title is required", status.HTTP_400_BAD_REQUEST)
        try:
            outcome = generate_job_posting(
                get_llm(request),
                job_title=payload.job_title,
                company=payload.company,
                basic_requirements=payload.basic_requirements,
            )
        except LlmServiceError as exc:
            logger.error("function_failed name=ai-job-generator error=%s", exc)
            return function_error(
                "Failed to generate job posting", status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)
            )
        record_outcome(get_metrics(request), outcome, "job_generation")
        return outcome.value

    @router.post("/functions/ai-candidate-matching", response_model=MatchAssessment)
    def candidate_matching_function(
        payload: CandidateMatchingFunctionRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*FUNCTION_ROLES)),
    ):
        if payload.candidate_profile is None or payload.job_requirements in (None, ""):
            return function_error(
                "Candidate profile and job requirements are required",
                status.HTTP_400_BAD_REQUEST,
            )
        try:
            outcome = match_candidate(
                get_llm(request),
                candidate_profile=payload.candidate_profile,
                job_requirements=payload.job_requirements,
                job_description=payload.job_description,
            )
        except LlmServiceError as exc:
            logger.error("function_failed name=ai-candidate-matching error=%s", exc)
            return function_error(
                "Failed to analyze candidate match",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                str(exc),
            )
        record_outcome(get_metrics(request), outcome, "candidate_matching")
        return outcome.value

    @router.post(
        "/functions/send-interview-email", response_model=InterviewEmailFunctionResponse
    )
    def interview_email_function(
        payload: InterviewEmailFunctionRequest,
        request: Request,
        _: AuthContext = Depends(require_roles(*FUNCTION_ROLES)),
    ):
        if not (
            payload.candidate_email
            and payload.candidate_name
            and payload.interview_date
            and payload.interview_time
        ):
            return function_error("Missing required fields", status.HTTP_400_BAD_REQUEST)
        try:
            email = generate_interview_email(
                get_llm(request),
                candidate_email=payload.candidate_email,
                candidate_name=payload.candidate_name,
                interview_date=payload.interview_date,
                interview_time=payload.interview_time,
                interview_type=payload.interview_type,
                job_title=payload.job_title,
                company_name=payload.company_name,
            )
        except LlmServiceError as exc:
            logger.error("function_failed name=send-interview-email error=%s", exc)
            return function_error(
                "Failed to generate interview email",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                str(exc),
            )
        return InterviewEmailFunctionResponse(
            success=True,
            message="Interview email generated successfully",
            email_data=email,
        )

    return router


app = create_app()
