from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Literal, Optional, Protocol, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ats.app.models import (
    InterviewEmail,
    JobGeneration,
    MatchAssessment,
    ResumeAssessment,
)

logger = logging.getLogger("ats.assessments")

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)
_TAG = re.compile(r"<[^>]*>")


class CompletionClient(Protocol):
    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T
    kind: Literal["parsed"] = "parsed"


@dataclass(frozen=True)
class Fallback(Generic[T]):
    value: T
    raw_text: str
    kind: Literal["fallback"] = "fallback"


ParseOutcome = Union[Parsed[T], Fallback[T]]


def _strip_fence(text: str) -> str:
    match = _FENCE.match(text)
    return match.group(1) if match else text


def parse_or_default(
    text: str, model: type[T], default: Callable[[str], T]
) -> ParseOutcome[T]:
    """Validate model output against `model`; anything else becomes the default object."""
    try:
        value = model.model_validate_json(_strip_fence(text))
    except ValidationError:
        logger.warning("llm_response_fallback kind=%s", model.__name__)
        return Fallback(value=default(text), raw_text=text)
    return Parsed(value=value)


# Defaults substituted when the model output cannot be used.


def default_resume_assessment(raw_text: str) -> ResumeAssessment:
    return ResumeAssessment.model_validate(
        {
            "overallScore": 75,
            "recommendation": "interview",
            "skills": {
                "technical": ["Various technical skills identified"],
                "soft": ["Communication", "Problem-solving"],
                "matchScore": 75,
            },
            "experience": {
                "years": 3,
                "relevantRoles": ["Previous relevant positions"],
                "matchScore": 70,
            },
            "education": {
                "degree": "Bachelor's Degree",
                "institution": "University",
                "relevance": 80,
            },
            "strengths": ["Strong background", "Relevant experience"],
            "concerns": ["Minor areas for improvement"],
            "summary": "Candidate shows promise with relevant skills and experience.",
            "reasoning": raw_text,
        }
    )


def default_job_generation(job_title: str) -> JobGeneration:
    return JobGeneration(
        description=(
            f"We are seeking a talented {job_title} to join our dynamic team. This role "
            "offers an exciting opportunity to work on challenging projects and contribute "
            "to our company's growth. The ideal candidate will bring expertise, creativity, "
            "and a passion for excellence to drive our mission forward."
        ),
        requirements=[
            "Bachelor's degree in relevant field or equivalent experience",
            "3+ years of relevant professional experience",
            "Strong problem-solving and analytical skills",
            "Excellent communication and teamwork abilities",
            "Proficiency in relevant tools and technologies",
        ],
        skills=[
            "Technical expertise",
            "Problem-solving",
            "Communication",
            "Teamwork",
            "Leadership",
            "Project management",
            "Analytical thinking",
            "Adaptability",
        ],
        benefits=[
            "Competitive salary and equity package",
            "Comprehensive health, dental, and vision insurance",
            "Flexible work arrangements and remote options",
            "Professional development opportunities",
            "Collaborative and innovative work environment",
        ],
    )


def default_match_assessment(_raw_text: str) -> MatchAssessment:
    return MatchAssessment.model_validate(
        {
            "overallMatchScore": 75,
            "recommendation": "good_fit",
            "skillsMatch": {
                "score": 80,
                "matchedSkills": ["Relevant technical skills", "Communication"],
                "missingSkills": ["Some advanced skills"],
                "analysis": "Strong skill alignment with room for growth",
            },
            "experienceMatch": {
                "score": 70,
                "relevantExperience": ["Previous relevant roles"],
                "experienceGaps": ["Some specific experience areas"],
                "analysis": "Good experience foundation",
            },
            "culturalFit": {
                "score": 85,
                "strengths": ["Team collaboration", "Problem-solving approach"],
                "concerns": ["Minor cultural considerations"],
                "analysis": "Strong cultural alignment",
            },
            "salaryExpectation": {
                "alignment": "within",
                "analysis": "Salary expectations appear reasonable",
            },
            "strengths": ["Strong technical background", "Good communication skills"],
            "concerns": ["Some skill gaps to address"],
            "interviewQuestions": [
                "Tell us about your experience with...",
                "How would you approach...",
                "Describe a challenging project...",
            ],
            "summary": (
                "This candidate shows strong potential with good skill alignment "
                "and cultural fit."
            ),
        }
    )


def parse_resume_assessment(text: str) -> ParseOutcome[ResumeAssessment]:
    return parse_or_default(text, ResumeAssessment, default_resume_assessment)


def parse_job_generation(text: str, job_title: str) -> ParseOutcome[JobGeneration]:
    return parse_or_default(text, JobGeneration, lambda _raw: default_job_generation(job_title))


def parse_match_assessment(text: str) -> ParseOutcome[MatchAssessment]:
    return parse_or_default(text, MatchAssessment, default_match_assessment)


# Calls against the completion service. Transport failures propagate as LlmServiceError.

RESUME_SYSTEM_PROMPT = (
    "You are an expert HR recruiter and resume analyst. Analyze the provided resume and "
    "return only a JSON object with keys overallScore (0-100), recommendation "
    '("hire" | "interview" | "reject"), skills {technical[], soft[], matchScore}, '
    "experience {years, relevantRoles[], matchScore}, education {degree, institution, "
    "relevance}, strengths[], concerns[], summary, reasoning."
)

JOB_SYSTEM_PROMPT = (
    "You are an expert HR professional and job description writer. Return only a JSON "
    "object with keys description (2-3 paragraphs), requirements (5-8 items), "
    "skills (8-12 items) and benefits (4-6 items)."
)

MATCH_SYSTEM_PROMPT = (
    "You are an expert recruitment AI that analyzes candidate-job fit. Return only a JSON "
    "object with keys overallMatchScore (0-100), recommendation (excellent_fit | good_fit "
    "| partial_fit | poor_fit), skillsMatch {score, matchedSkills[], missingSkills[], "
    "analysis}, experienceMatch {score, relevantExperience[], experienceGaps[], analysis}, "
    "culturalFit {score, strengths[], concerns[], analysis}, salaryExpectation {alignment "
    "(above | within | below | unknown), analysis}, strengths[], concerns[], "
    "interviewQuestions[], summary."
)

EMAIL_SYSTEM_PROMPT = (
    "You are a professional HR coordinator writing interview confirmation emails. "
    "Write a warm, professional email with all interview details. Return only the "
    "email content in HTML."
)


def screen_resume(
    client: CompletionClient, *, resume_text: str, job_requirements: Optional[str] = None
) -> ParseOutcome[ResumeAssessment]:
    target = f" for the following job requirements: {job_requirements}" if job_requirements else ""
    text = client.complete(
        system_prompt=RESUME_SYSTEM_PROMPT,
        user_prompt=f"Analyze this resume{target}:\n\n{resume_text}",
        temperature=0.3,
        max_tokens=2000,
    )
    return parse_resume_assessment(text)


def generate_job_posting(
    client: CompletionClient,
    *,
    job_title: str,
    company: Optional[str] = None,
    basic_requirements: Optional[str] = None,
) -> ParseOutcome[JobGeneration]:
    lines = [f"Create a job posting for:", f"Job Title: {job_title}"]
    if company:
        lines.append(f"Company: {company}")
    if basic_requirements:
        lines.append(f"Additional Requirements: {basic_requirements}")
    text = client.complete(
        system_prompt=JOB_SYSTEM_PROMPT,
        user_prompt="\n".join(lines),
        temperature=0.7,
        max_tokens=1500,
    )
    return parse_job_generation(text, job_title)


def match_candidate(
    client: CompletionClient,
    *,
    candidate_profile: dict[str, Any],
    job_requirements: Any,
    job_description: Optional[str] = None,
) -> ParseOutcome[MatchAssessment]:
    sections = [
        "Analyze the match between this candidate and job:",
        f"CANDIDATE PROFILE:\n{json.dumps(candidate_profile, indent=2, default=str)}",
        f"JOB REQUIREMENTS:\n{json.dumps(job_requirements, indent=2, default=str)}",
    ]
    if job_description:
        sections.append(f"JOB DESCRIPTION:\n{job_description}")
    text = client.complete(
        system_prompt=MATCH_SYSTEM_PROMPT,
        user_prompt="\n\n".join(sections),
        temperature=0.3,
        max_tokens=2000,
    )
    return parse_match_assessment(text)


def generate_interview_email(
    client: CompletionClient,
    *,
    candidate_email: str,
    candidate_name: str,
    interview_date: str,
    interview_time: str,
    interview_type: Optional[str] = None,
    job_title: Optional[str] = None,
    company_name: Optional[str] = None,
) -> InterviewEmail:
    details = "\n".join(
        [
            f"- Candidate: {candidate_name}",
            f"- Job Title: {job_title or 'the position'}",
            f"- Company: {company_name or 'our company'}",
            f"- Date: {interview_date}",
            f"- Time: {interview_time}",
            f"- Type: {interview_type or 'interview'}",
        ]
    )
    html = client.complete(
        system_prompt=EMAIL_SYSTEM_PROMPT,
        user_prompt=f"Create an interview confirmation email with these details:\n{details}",
        temperature=0.5,
        max_tokens=800,
    )
    return InterviewEmail(
        to=candidate_email,
        subject=(
            f"Interview Confirmation - {job_title or 'Position'} at "
            f"{company_name or 'Our Company'}"
        ),
        html=html,
        text=_TAG.sub("", html),
    )
