from __future__ import annotations

import json

import pytest

from ats.app.models import Recommendation
from ats.app.services.assessments import (
    Fallback,
    Parsed,
    generate_interview_email,
    generate_job_posting,
    parse_job_generation,
    parse_match_assessment,
    parse_resume_assessment,
    screen_resume,
)
from ats.app.services.llm import LlmServiceError


class ScriptedLlm:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[dict] = []

    def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        return self.reply


class BrokenLlm:
    def complete(self, **kwargs) -> str:
        raise LlmServiceError("llm api error: 503 Service Unavailable")


def test_non_json_resume_reply_falls_back_to_default() -> None:
    outcome = parse_resume_assessment("not json")

    assert isinstance(outcome, Fallback)
    assert outcome.kind == "fallback"
    assert outcome.value.overall_score == 75
    assert outcome.value.recommendation == Recommendation.interview
    assert outcome.value.reasoning == "not json"
    assert outcome.value.education.degree == "Bachelor's Degree"


def test_fenced_json_is_accepted() -> None:
    text = '```json\n{"overallScore": 91, "recommendation": "hire"}\n```'

    outcome = parse_resume_assessment(text)

    assert isinstance(outcome, Parsed)
    assert outcome.value.overall_score == 91
    assert outcome.value.recommendation == Recommendation.hire


@pytest.mark.parametrize(
    "payload",
    [
        {"overallScore": 140, "recommendation": "hire"},
        {"overallScore": 80, "recommendation": "maybe"},
        {"recommendation": "hire"},
        ["not", "an", "object"],
    ],
)
def test_out_of_shape_resume_payloads_fall_back(payload) -> None:
    outcome = parse_resume_assessment(json.dumps(payload))

    assert isinstance(outcome, Fallback)
    assert outcome.value.overall_score == 75


def test_match_fallback_defaults() -> None:
    outcome = parse_match_assessment("The candidate looks great!")

    assert isinstance(outcome, Fallback)
    value = outcome.value
    assert value.overall_match_score == 75
    assert value.recommendation.value == "good_fit"
    assert value.skills_match.score == 80
    assert value.experience_match.score == 70
    assert value.cultural_fit.score == 85
    assert value.salary_expectation.alignment.value == "within"
    assert len(value.interview_questions) == 3


def test_job_fallback_mentions_title() -> None:
    outcome = parse_job_generation("", "Data Engineer")

    assert isinstance(outcome, Fallback)
    assert "Data Engineer" in outcome.value.description
    assert len(outcome.value.requirements) == 5
    assert len(outcome.value.skills) == 8
    assert len(outcome.value.benefits) == 5


def test_screen_resume_sends_requirements_and_parses() -> None:
    llm = ScriptedLlm(json.dumps({"overallScore": 64, "recommendation": "reject"}))

    outcome = screen_resume(llm, resume_text="Jane Doe, COBOL", job_requirements="Go developer")

    assert isinstance(outcome, Parsed)
    assert outcome.value.overall_score == 64
    call = llm.calls[0]
    assert "Go developer" in call["user_prompt"]
    assert "Jane Doe, COBOL" in call["user_prompt"]
    assert call["temperature"] == 0.3


def test_generate_job_posting_parses_reply() -> None:
    reply = json.dumps(
        {
            "description": "Build pipelines.",
            "requirements": ["SQL"],
            "skills": ["Spark"],
            "benefits": ["Remote"],
        }
    )
    llm = ScriptedLlm(reply)

    outcome = generate_job_posting(llm, job_title="Data Engineer", company="Acme")

    assert isinstance(outcome, Parsed)
    assert outcome.value.skills == ["Spark"]
    assert "Company: Acme" in llm.calls[0]["user_prompt"]


def test_interview_email_strips_tags_for_text_body() -> None:
    llm = ScriptedLlm("<p>Hello <b>Ada</b></p>")

    email = generate_interview_email(
        llm,
        candidate_email="ada@example.com",
        candidate_name="Ada",
        interview_date="2024-02-01",
        interview_time="10:00",
    )

    assert email.to == "ada@example.com"
    assert email.subject == "Interview Confirmation - Position at Our Company"
    assert email.html == "<p>Hello <b>Ada</b></p>"
    assert email.text == "Hello Ada"


def test_transport_errors_propagate() -> None:
    with pytest.raises(LlmServiceError):
        screen_resume(BrokenLlm(), resume_text="anything")
