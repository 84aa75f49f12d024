from __future__ import annotations


def stage_ids(client, stage_id: str) -> list[str]:
    body = client.get("/pipeline").json()
    for stage in body["stages"]:
        if stage["id"] == stage_id:
            return [item["id"] for item in stage["candidates"]]
    raise AssertionError(f"missing stage {stage_id}")


def test_pipeline_lists_default_stages(client) -> None:
    response = client.get("/pipeline")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 0
    assert [(stage["id"], stage["color"]) for stage in body["stages"]] == [
        ("applied", "blue"),
        ("screening", "yellow"),
        ("interview", "purple"),
        ("offer", "green"),
        ("hired", "emerald"),
        ("rejected", "red"),
    ]


def test_move_between_stages(client, make_candidate) -> None:
    a = make_candidate("Ada")
    b = make_candidate("Ben")
    c = make_candidate("Cy", stage_id="interview")

    response = client.post("/pipeline/move", json={"candidate_id": b, "destination": "interview"})

    assert response.status_code == 200
    body = response.json()
    assert body["moved"] is True
    assert body["from_stage"] == "applied"
    assert body["to_stage"] == "interview"
    assert body["candidate"]["status"] == "interview"
    assert stage_ids(client, "applied") == [a]
    assert stage_ids(client, "interview") == [c, b]

    fetched = client.get(f"/candidates/{b}").json()
    assert fetched["stage_id"] == "interview"
    assert fetched["stage_title"] == "Interview"


def test_noop_moves_still_return_200(client, make_candidate) -> None:
    a = make_candidate("Ada")

    unknown = client.post("/pipeline/move", json={"candidate_id": "ghost", "destination": "offer"})
    same = client.post("/pipeline/move", json={"candidate_id": a, "destination": "applied"})

    assert unknown.status_code == 200
    assert unknown.json()["moved"] is False
    assert unknown.json()["candidate"] is None
    assert same.status_code == 200
    assert same.json()["moved"] is False
    assert stage_ids(client, "applied") == [a]


def test_transitions_are_recorded(client, make_candidate) -> None:
    a = make_candidate("Ada")
    client.post("/pipeline/move", json={"candidate_id": a, "destination": "screening"})
    client.post("/pipeline/move", json={"candidate_id": a, "destination": "screening"})
    client.post("/pipeline/move", json={"candidate_id": a, "destination": "offer"})

    response = client.get(f"/candidates/{a}/transitions")

    assert response.status_code == 200
    hops = [(item["from_stage"], item["to_stage"]) for item in response.json()]
    assert hops == [(None, "applied"), ("applied", "screening"), ("screening", "offer")]


def test_create_candidate_validation(client) -> None:
    unknown_stage = client.post("/candidates", json={"name": "Ada", "stage_id": "archived"})
    assert unknown_stage.status_code == 404

    bad_score = client.post("/candidates", json={"name": "Ada", "score": 140})
    assert bad_score.status_code == 422

    missing = client.get("/candidates/nope")
    assert missing.status_code == 404
    assert client.get("/candidates/nope/transitions").status_code == 404


def test_candidate_skills_are_deduplicated(client) -> None:
    response = client.post(
        "/candidates",
        json={"name": "Ada", "skills": ["Python", "python ", "SQL", ""]},
    )
    assert response.status_code == 200
    assert response.json()["candidate"]["skills"] == ["Python", "SQL"]
