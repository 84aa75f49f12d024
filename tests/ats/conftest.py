from __future__ import annotations

import json
from typing import Union

import pytest
from fastapi.testclient import TestClient

from ats.app.main import create_app

RESUME_JSON = json.dumps(
    {
        "overallScore": 88,
        "recommendation": "hire",
        "skills": {"technical": ["Python", "FastAPI", "SQL"], "soft": ["Mentoring"], "matchScore": 90},
        "experience": {"years": 6, "relevantRoles": ["Backend Engineer"], "matchScore": 85},
        "education": {"degree": "MSc Computer Science", "institution": "TU Delft", "relevance": 90},
        "strengths": ["API design"],
        "concerns": ["Limited frontend work"],
        "summary": "Strong backend candidate.",
        "reasoning": "Skills align with the role.",
    }
)


class FakeLlm:
    """Stands in for ChatCompletionClient; replies are consumed in order, the last one repeats."""

    def __init__(self, *replies: Union[str, Exception]) -> None:
        self.replies = list(replies) or [RESUME_JSON]
        self.calls: list[dict] = []

    def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture()
def fake_llm() -> FakeLlm:
    return FakeLlm()


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, fake_llm: FakeLlm) -> TestClient:
    monkeypatch.setenv("PERSISTENCE_ENABLED", "false")
    monkeypatch.setenv("AUTH_ENABLED", "false")
    monkeypatch.setenv("SEED_DEMO_DATA", "false")
    app = create_app()
    app.state.llm = fake_llm
    return TestClient(app)


@pytest.fixture()
def make_candidate(client: TestClient):
    def factory(name: str, stage_id: str = "applied", **fields) -> str:
        response = client.post("/candidates", json={"name": name, "stage_id": stage_id, **fields})
        assert response.status_code == 200
        return response.json()["candidate"]["id"]

    return factory
