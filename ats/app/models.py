from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    contract = "contract"
    remote = "remote"


class JobStatus(str, Enum):
    active = "active"
    paused = "paused"
    closed = "closed"


class InterviewType(str, Enum):
    phone = "phone"
    video = "video"
    in_person = "in-person"


class InterviewStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    rescheduled = "rescheduled"


class Recommendation(str, Enum):
    hire = "hire"
    interview = "interview"
    reject = "reject"


class MatchRecommendation(str, Enum):
    excellent_fit = "excellent_fit"
    good_fit = "good_fit"
    partial_fit = "partial_fit"
    poor_fit = "poor_fit"


class SalaryAlignment(str, Enum):
    above = "above"
    within = "within"
    below = "below"
    unknown = "unknown"


def _dedupe_skills(values: list[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for value in values:
        cleaned = value.strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        output.append(cleaned)
    return output


# Pipeline


class CandidateRecord(BaseModel):
    id: str
    name: str
    email: str = ""
    phone: str = ""
    location: str = ""
    position: str = ""
    score: float = Field(default=0, ge=0, le=100)
    skills: list[str] = Field(default_factory=list)
    experience: str = ""
    applied_date: date
    last_activity: date
    notes: str = ""
    resume_url: Optional[str] = None
    status: str

    @field_validator("skills")
    @classmethod
    def unique_skills(cls, value: list[str]) -> list[str]:
        return _dedupe_skills(value)


class PipelineStage(BaseModel):
    id: str
    title: str
    color: str
    candidates: list[CandidateRecord] = Field(default_factory=list)


class TransitionRecord(BaseModel):
    id: str
    candidate_id: str
    from_stage: Optional[str]
    to_stage: str
    created_at_utc: datetime


class CandidateCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(default="", max_length=200)
    phone: str = Field(default="", max_length=40)
    location: str = Field(default="", max_length=120)
    position: str = Field(default="", max_length=120)
    score: float = Field(default=0, ge=0, le=100)
    skills: list[str] = Field(default_factory=list)
    experience: str = Field(default="", max_length=80)
    notes: str = Field(default="", max_length=2000)
    resume_url: Optional[str] = None
    stage_id: str = "applied"


class CandidateResponse(BaseModel):
    candidate: CandidateRecord
    stage_id: str
    stage_title: str


class MoveRequest(BaseModel):
    candidate_id: str
    destination: str


class MoveResponse(BaseModel):
    moved: bool
    candidate_id: str
    from_stage: Optional[str] = None
    to_stage: Optional[str] = None
    candidate: Optional[CandidateRecord] = None


class PipelineStageView(BaseModel):
    id: str
    title: str
    color: str
    count: int
    candidates: list[CandidateRecord]


class PipelineResponse(BaseModel):
    total: int
    stages: list[PipelineStageView]


# Jobs


class MatchingCriteria(BaseModel):
    skills_weight: int = Field(default=40, ge=0, le=100)
    experience_weight: int = Field(default=30, ge=0, le=100)
    education_weight: int = Field(default=15, ge=0, le=100)
    location_weight: int = Field(default=15, ge=0, le=100)


class JobCreateRequest(BaseModel):
    title: str = Field(min_length=2, max_length=120)
    department: str = Field(default="", max_length=120)
    location: str = Field(default="", max_length=120)
    job_type: JobType = JobType.full_time
    salary_min: int = Field(default=0, ge=0)
    salary_max: int = Field(default=0, ge=0)
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    experience: str = ""

    @model_validator(mode="after")
    def validate_salary_band(self) -> "JobCreateRequest":
        if self.salary_max and self.salary_min > self.salary_max:
            raise ValueError("salary_min cannot be greater than salary_max")
        return self


class JobRecord(BaseModel):
    id: str
    title: str
    department: str
    location: str
    job_type: JobType
    salary_min: int
    salary_max: int
    description: str
    requirements: list[str]
    skills: list[str]
    experience: str
    posted_date: date
    status: JobStatus = JobStatus.active
    applicants: int = 0
    ai_matching_enabled: bool = True
    matching_criteria: MatchingCriteria = Field(default_factory=MatchingCriteria)
    created_at_utc: datetime


class JobStatusUpdateRequest(BaseModel):
    status: JobStatus


class JobGenerateRequest(BaseModel):
    title: Optional[str] = None
    department: Optional[str] = None


class JobDraftResponse(BaseModel):
    description: str
    requirements: list[str]
    skills: list[str]
    benefits: list[str]
    experience: str
    outcome: Literal["parsed", "fallback"]


# Interviews


class InterviewScheduleRequest(BaseModel):
    candidate_id: Optional[str] = None
    candidate_name: str = Field(min_length=1, max_length=120)
    candidate_email: str = Field(min_length=3, max_length=200)
    position: str = Field(default="", max_length=120)
    interview_type: InterviewType = InterviewType.video
    date: date
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$", description="24h HH:MM")
    duration_minutes: int = Field(default=60, ge=5, le=480)
    interviewer: str = ""
    interviewer_email: str = ""
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: str = ""
    round: int = Field(default=1, ge=1, le=20)
    ai_score: Optional[float] = Field(default=None, ge=0, le=100)


class InterviewRecord(BaseModel):
    id: str
    candidate_id: Optional[str]
    candidate_name: str
    candidate_email: str
    position: str
    interview_type: InterviewType
    date: date
    time: str
    duration_minutes: int
    interviewer: str
    interviewer_email: str
    location: Optional[str]
    meeting_link: Optional[str]
    status: InterviewStatus = InterviewStatus.scheduled
    notes: str
    round: int
    ai_score: Optional[float]
    created_at_utc: datetime


class InterviewStatusUpdateRequest(BaseModel):
    status: InterviewStatus


class TimeSlot(BaseModel):
    time: str
    available: bool
    interview: Optional[InterviewRecord] = None


class CalendarDay(BaseModel):
    date: date
    interviews: list[InterviewRecord]


class CalendarResponse(BaseModel):
    year: int
    month: int
    days: list[Optional[CalendarDay]]


# AI assessments. Wire format is camelCase, matching the function contracts.


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResumeSkills(CamelModel):
    technical: list[str] = Field(default_factory=list)
    soft: list[str] = Field(default_factory=list)
    match_score: Optional[float] = Field(default=None, ge=0, le=100)


class ResumeExperience(CamelModel):
    years: Optional[float] = Field(default=None, ge=0)
    relevant_roles: list[str] = Field(default_factory=list)
    match_score: Optional[float] = Field(default=None, ge=0, le=100)


class ResumeEducation(CamelModel):
    degree: Optional[str] = None
    institution: Optional[str] = None
    relevance: Optional[float] = Field(default=None, ge=0, le=100)


class ResumeAssessment(CamelModel):
    overall_score: float = Field(ge=0, le=100)
    recommendation: Recommendation
    skills: ResumeSkills = Field(default_factory=ResumeSkills)
    experience: ResumeExperience = Field(default_factory=ResumeExperience)
    education: ResumeEducation = Field(default_factory=ResumeEducation)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    reasoning: Optional[str] = None


class JobGeneration(CamelModel):
    description: str
    requirements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)


class SkillsMatch(CamelModel):
    score: float = Field(default=0, ge=0, le=100)
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    analysis: str = ""


class ExperienceMatch(CamelModel):
    score: float = Field(default=0, ge=0, le=100)
    relevant_experience: list[str] = Field(default_factory=list)
    experience_gaps: list[str] = Field(default_factory=list)
    analysis: str = ""


class CulturalFit(CamelModel):
    score: float = Field(default=0, ge=0, le=100)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    analysis: str = ""


class SalaryExpectation(CamelModel):
    alignment: SalaryAlignment = SalaryAlignment.unknown
    analysis: str = ""


class MatchAssessment(CamelModel):
    overall_match_score: float = Field(ge=0, le=100)
    recommendation: MatchRecommendation
    skills_match: SkillsMatch = Field(default_factory=SkillsMatch)
    experience_match: ExperienceMatch = Field(default_factory=ExperienceMatch)
    cultural_fit: CulturalFit = Field(default_factory=CulturalFit)
    salary_expectation: SalaryExpectation = Field(default_factory=SalaryExpectation)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    interview_questions: list[str] = Field(default_factory=list)
    summary: str = ""


class InterviewEmail(CamelModel):
    to: str
    subject: str
    html: str
    text: str


class InterviewScheduleResponse(BaseModel):
    interview: InterviewRecord
    email: Optional[InterviewEmail] = None


# Function request/response bodies


class ResumeScreeningFunctionRequest(CamelModel):
    resume_text: Optional[str] = None
    job_requirements: Optional[str] = None


class JobGeneratorFunctionRequest(CamelModel):
    job_title: Optional[str] = None
    company: Optional[str] = None
    basic_requirements: Optional[str] = None


class CandidateMatchingFunctionRequest(CamelModel):
    candidate_profile: Optional[dict[str, Any]] = None
    job_requirements: Optional[Any] = None
    job_description: Optional[str] = None


class InterviewEmailFunctionRequest(CamelModel):
    candidate_email: Optional[str] = None
    candidate_name: Optional[str] = None
    interview_date: Optional[str] = None
    interview_time: Optional[str] = None
    interview_type: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None


class InterviewEmailFunctionResponse(CamelModel):
    success: bool
    message: str
    email_data: InterviewEmail


# Screening


class SkillMatch(BaseModel):
    name: str
    match: float


class ExperienceSummary(BaseModel):
    years: float
    relevance: float


class EducationSummary(BaseModel):
    level: str
    relevance: float


class ScreeningRecord(BaseModel):
    id: str
    candidate_id: str
    candidate_name: str
    file_name: str
    overall_score: float
    skills: list[SkillMatch]
    experience: ExperienceSummary
    education: EducationSummary
    key_strengths: list[str]
    concerns: list[str]
    recommendation: Recommendation
    ai_summary: str
    outcome: Literal["parsed", "fallback"]
    uploaded_at: datetime


class ResumeScreeningRequest(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)
    resume_text: str = Field(min_length=1)
    job_requirements: Optional[str] = None
    candidate_email: Optional[str] = None
    resume_url: Optional[str] = None


class ResumeBatchRequest(BaseModel):
    items: list[ResumeScreeningRequest] = Field(min_length=1, max_length=50)


class ResumeBatchFailure(BaseModel):
    file_name: str
    detail: str


class ResumeBatchResponse(BaseModel):
    results: list[ScreeningRecord]
    failures: list[ResumeBatchFailure]


# Matching


class MatchRunRequest(BaseModel):
    candidate_id: str
    job_id: str


class MatchRunResponse(BaseModel):
    candidate_id: str
    job_id: str
    outcome: Literal["parsed", "fallback"]
    assessment: MatchAssessment


# Dashboard


class ActivityItem(BaseModel):
    kind: Literal["transition", "screening", "interview"]
    candidate: str
    detail: str
    created_at_utc: datetime


class DashboardResponse(BaseModel):
    total_candidates: int
    active_jobs: int
    pending_screenings: int
    interviews_today: int
    hiring_rate: float
    avg_time_to_hire_days: float
    stage_counts: dict[str, int]
    recent_activity: list[ActivityItem]
