from __future__ import annotations

import re
from datetime import datetime
from pathlib import PurePath
from typing import Literal, Optional

from ats.app.models import (
    EducationSummary,
    ExperienceSummary,
    ResumeAssessment,
    ScreeningRecord,
    SkillMatch,
)

DEFAULT_SKILL_MATCH = 75.0
DEFAULT_EXPERIENCE_YEARS = 3.0
DEFAULT_EXPERIENCE_RELEVANCE = 75.0
DEFAULT_EDUCATION_LEVEL = "Bachelor's Degree"
DEFAULT_EDUCATION_RELEVANCE = 80.0
DEFAULT_SUMMARY = "AI analysis completed successfully."


def candidate_name_from_file(file_name: str) -> str:
    """`jane_doe-resume.pdf` -> `Jane Doe Resume`."""
    stem = PurePath(file_name).stem
    words = re.sub(r"[_\-]+", " ", stem).split()
    return " ".join(word[:1].upper() + word[1:] for word in words) or file_name


def placeholder_email(candidate_name: str) -> str:
    local_part = re.sub(r"\s+", ".", candidate_name.strip().lower())
    return f"{local_part}@example.com"


def skill_matches(assessment: ResumeAssessment) -> list[SkillMatch]:
    base = assessment.skills.match_score
    matches: list[SkillMatch] = []
    for index, name in enumerate(assessment.skills.technical):
        match = DEFAULT_SKILL_MATCH if base is None else max(70.0, base - 5 * index)
        matches.append(SkillMatch(name=name, match=match))
    return matches


def screening_from_assessment(
    *,
    screening_id: str,
    candidate_id: str,
    candidate_name: str,
    file_name: str,
    assessment: ResumeAssessment,
    outcome: Literal["parsed", "fallback"],
    uploaded_at: datetime,
) -> ScreeningRecord:
    experience = assessment.experience
    education = assessment.education
    return ScreeningRecord(
        id=screening_id,
        candidate_id=candidate_id,
        candidate_name=candidate_name,
        file_name=file_name,
        overall_score=assessment.overall_score,
        skills=skill_matches(assessment),
        experience=ExperienceSummary(
            years=experience.years or DEFAULT_EXPERIENCE_YEARS,
            relevance=experience.match_score or DEFAULT_EXPERIENCE_RELEVANCE,
        ),
        education=EducationSummary(
            level=education.degree or DEFAULT_EDUCATION_LEVEL,
            relevance=education.relevance or DEFAULT_EDUCATION_RELEVANCE,
        ),
        key_strengths=assessment.strengths,
        concerns=assessment.concerns,
        recommendation=assessment.recommendation,
        ai_summary=assessment.summary or DEFAULT_SUMMARY,
        outcome=outcome,
        uploaded_at=uploaded_at,
    )


def experience_label(years: Optional[float]) -> str:
    if years is None:
        return ""
    return f"{years:g} years"
