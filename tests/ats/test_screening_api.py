from __future__ import annotations

from ats.app.services.llm import LlmServiceError


def test_screen_resume_creates_candidate_in_screening_stage(client, fake_llm) -> None:
    response = client.post(
        "/screening/resume",
        json={"file_name": "ada_lovelace-cv.pdf", "resume_text": "Ada Lovelace, analyst."},
    )

    assert response.status_code == 200
    result = response.json()
    assert result["candidate_name"] == "Ada Lovelace Cv"
    assert result["overall_score"] == 88
    assert result["recommendation"] == "hire"
    assert result["outcome"] == "parsed"
    assert [(skill["name"], skill["match"]) for skill in result["skills"]] == [
        ("Python", 90),
        ("FastAPI", 85),
        ("SQL", 80),
    ]
    assert result["experience"] == {"years": 6, "relevance": 85}
    assert result["education"] == {"level": "MSc Computer Science", "relevance": 90}

    candidate = client.get(f"/candidates/{result['candidate_id']}").json()
    assert candidate["stage_id"] == "screening"
    assert candidate["candidate"]["score"] == 88
    assert candidate["candidate"]["email"] == "ada.lovelace.cv@example.com"
    assert "Software Developer position" in fake_llm.calls[0]["user_prompt"]


def test_unparseable_reply_uses_default_assessment(client, fake_llm) -> None:
    fake_llm.replies = ["not json"]

    response = client.post(
        "/screening/resume",
        json={
            "file_name": "grace.pdf",
            "resume_text": "Grace Hopper",
            "job_requirements": "Compiler engineer",
            "candidate_email": "grace@navy.mil",
        },
    )

    assert response.status_code == 200
    result = response.json()
    assert result["outcome"] == "fallback"
    assert result["overall_score"] == 75
    assert result["recommendation"] == "interview"
    assert result["skills"] == [{"name": "Various technical skills identified", "match": 75}]
    assert result["education"]["level"] == "Bachelor's Degree"
    candidate = client.get(f"/candidates/{result['candidate_id']}").json()["candidate"]
    assert candidate["email"] == "grace@navy.mil"
    assert "Compiler engineer" in fake_llm.calls[0]["user_prompt"]


def test_service_failure_returns_502_and_adds_nobody(client, fake_llm) -> None:
    fake_llm.replies = [LlmServiceError("llm api error: 503 Service Unavailable")]

    response = client.post(
        "/screening/resume", json={"file_name": "x.pdf", "resume_text": "X"}
    )

    assert response.status_code == 502
    assert client.get("/pipeline").json()["total"] == 0
    assert client.get("/screening/results").json() == []


def test_batch_continues_after_a_failed_item(client, fake_llm) -> None:
    fake_llm.replies = [
        '{"overallScore": 70, "recommendation": "interview"}',
        LlmServiceError("llm api request failed"),
        '{"overallScore": 95, "recommendation": "hire"}',
    ]

    response = client.post(
        "/screening/batch",
        json={
            "items": [
                {"file_name": "one.pdf", "resume_text": "One"},
                {"file_name": "two.pdf", "resume_text": "Two"},
                {"file_name": "three.pdf", "resume_text": "Three"},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [item["file_name"] for item in body["results"]] == ["one.pdf", "three.pdf"]
    assert [item["file_name"] for item in body["failures"]] == ["two.pdf"]

    results = client.get("/screening/results").json()
    assert [item["file_name"] for item in results] == ["three.pdf", "one.pdf"]
    screening_stage = client.get("/pipeline").json()["stages"][1]
    assert screening_stage["count"] == 2


def test_batch_rejects_empty_items(client) -> None:
    assert client.post("/screening/batch", json={"items": []}).status_code == 422
