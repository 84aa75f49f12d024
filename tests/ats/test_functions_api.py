from __future__ import annotations

import json

import pytest

from ats.app.services.llm import LlmServiceError


def test_resume_screening_function_uses_camel_case(client, fake_llm) -> None:
    response = client.post(
        "/functions/ai-resume-screening",
        json={"resumeText": "Ada Lovelace", "jobRequirements": "Analyst"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["overallScore"] == 88
    assert body["skills"]["matchScore"] == 90
    assert body["experience"]["relevantRoles"] == ["Backend Engineer"]
    assert fake_llm.calls[0]["max_tokens"] == 2000


def test_resume_screening_function_fallback(client, fake_llm) -> None:
    fake_llm.replies = ["not json"]

    body = client.post("/functions/ai-resume-screening", json={"resumeText": "x"}).json()

    assert body["overallScore"] == 75
    assert body["recommendation"] == "interview"
    assert body["reasoning"] == "not json"


@pytest.mark.parametrize(
    "path,payload,error",
    [
        ("/functions/ai-resume-screening", {}, "Resume text is required"),
        ("/functions/ai-job-generator", {"company": "Acme"}, "Job title is required"),
        (
            "/functions/ai-candidate-matching",
            {"candidateProfile": {"name": "Ada"}},
            "Candidate profile and job requirements are required",
        ),
        (
            "/functions/send-interview-email",
            {"candidateEmail": "ada@example.com", "candidateName": "Ada", "interviewDate": "2024-02-01"},
            "Missing required fields",
        ),
    ],
)
def test_functions_reject_missing_fields(client, fake_llm, path, payload, error) -> None:
    response = client.post(path, json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": error}
    assert fake_llm.calls == []


@pytest.mark.parametrize(
    "path,payload,error",
    [
        ("/functions/ai-resume-screening", {"resumeText": "x"}, "Failed to analyze resume"),
        ("/functions/ai-job-generator", {"jobTitle": "Chef"}, "Failed to generate job posting"),
        (
            "/functions/ai-candidate-matching",
            {"candidateProfile": {"name": "Ada"}, "jobRequirements": ["Python"]},
            "Failed to analyze candidate match",
        ),
        (
            "/functions/send-interview-email",
            {
                "candidateEmail": "ada@example.com",
                "candidateName": "Ada",
                "interviewDate": "2024-02-01",
                "interviewTime": "10:00",
            },
            "Failed to generate interview email",
        ),
    ],
)
def test_functions_report_service_failures(client, fake_llm, path, payload, error) -> None:
    fake_llm.replies = [LlmServiceError("llm api error: 429 Too Many Requests")]

    response = client.post(path, json=payload)

    assert response.status_code == 500
    assert response.json() == {
        "error": error,
        "details": "llm api error: 429 Too Many Requests",
    }


def test_job_generator_function(client, fake_llm) -> None:
    fake_llm.replies = [
        "```json\n"
        + json.dumps(
            {"description": "Cook.", "requirements": ["Knives"], "skills": ["Sauces"], "benefits": ["Meals"]}
        )
        + "\n```"
    ]

    response = client.post(
        "/functions/ai-job-generator",
        json={"jobTitle": "Chef", "company": "Bistro", "basicRequirements": "Night shifts"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "description": "Cook.",
        "requirements": ["Knives"],
        "skills": ["Sauces"],
        "benefits": ["Meals"],
    }
    assert "Additional Requirements: Night shifts" in fake_llm.calls[0]["user_prompt"]
    assert fake_llm.calls[0]["temperature"] == 0.7


def test_candidate_matching_function(client, fake_llm) -> None:
    fake_llm.replies = [
        json.dumps(
            {
                "overallMatchScore": 82,
                "recommendation": "excellent_fit",
                "skillsMatch": {"score": 90, "matchedSkills": ["Python"], "missingSkills": []},
                "salaryExpectation": {"alignment": "above"},
                "interviewQuestions": ["Why Python?"],
            }
        )
    ]

    response = client.post(
        "/functions/ai-candidate-matching",
        json={
            "candidateProfile": {"name": "Ada", "skills": ["Python"]},
            "jobRequirements": {"skills": ["Python", "Go"]},
            "jobDescription": "Backend role",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["overallMatchScore"] == 82
    assert body["skillsMatch"]["matchedSkills"] == ["Python"]
    assert body["salaryExpectation"]["alignment"] == "above"
    assert body["culturalFit"]["score"] == 0
    prompt = fake_llm.calls[0]["user_prompt"]
    assert '"Go"' in prompt
    assert "JOB DESCRIPTION:\nBackend role" in prompt


def test_send_interview_email_function(client, fake_llm) -> None:
    fake_llm.replies = ['<p>Dear Ada,</p><p>See you at <a href="#">10:00</a>.</p>']

    response = client.post(
        "/functions/send-interview-email",
        json={
            "candidateEmail": "ada@example.com",
            "candidateName": "Ada",
            "interviewDate": "2024-02-01",
            "interviewTime": "10:00",
            "interviewType": "video",
            "jobTitle": "Analyst",
            "companyName": "Engines Ltd",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Interview email generated successfully"
    assert body["emailData"] == {
        "to": "ada@example.com",
        "subject": "Interview Confirmation - Analyst at Engines Ltd",
        "html": '<p>Dear Ada,</p><p>See you at <a href="#">10:00</a>.</p>',
        "text": "Dear Ada,See you at 10:00.",
    }
