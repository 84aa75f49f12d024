from __future__ import annotations

from datetime import date

from ats.app.models import CandidateRecord

POSITION = "Senior Full Stack Developer"

_DEMO_ROWS = (
    (
        "Sarah Johnson",
        "+1-555-0123",
        "San Francisco, CA",
        92,
        ["React", "Node.js", "TypeScript", "AWS", "PostgreSQL"],
        "5+ years",
        "2024-01-20",
        "2024-01-20",
        "Strong technical background with leadership experience",
        "applied",
    ),
    (
        "Michael Chen",
        "+1-555-0124",
        "Seattle, WA",
        76,
        ["Python", "Django", "PostgreSQL", "Docker"],
        "3+ years",
        "2024-01-19",
        "2024-01-19",
        "Good technical skills, needs frontend experience",
        "applied",
    ),
    (
        "Emily Rodriguez",
        "+1-555-0125",
        "Austin, TX",
        88,
        ["React", "Python", "AWS", "MongoDB"],
        "4+ years",
        "2024-01-18",
        "2024-01-21",
        "Excellent problem-solving skills",
        "screening",
    ),
    (
        "David Kim",
        "+1-555-0126",
        "New York, NY",
        85,
        ["React", "Node.js", "GraphQL", "Kubernetes"],
        "6+ years",
        "2024-01-15",
        "2024-01-22",
        "Scheduled for technical interview on Jan 25",
        "interview",
    ),
    (
        "Lisa Wang",
        "+1-555-0127",
        "Los Angeles, CA",
        90,
        ["Vue.js", "Node.js", "TypeScript", "GCP"],
        "5+ years",
        "2024-01-16",
        "2024-01-22",
        "Completed first round, scheduling final interview",
        "interview",
    ),
    (
        "Alex Thompson",
        "+1-555-0128",
        "Chicago, IL",
        94,
        ["React", "Node.js", "TypeScript", "AWS", "Docker"],
        "7+ years",
        "2024-01-10",
        "2024-01-23",
        "Offer extended, awaiting response",
        "offer",
    ),
)


def demo_candidates() -> list[CandidateRecord]:
    """Sample board used for local demos when SEED_DEMO_DATA is on."""
    candidates = []
    for index, row in enumerate(_DEMO_ROWS, start=1):
        name, phone, location, score, skills, experience, applied, last, notes, status = row
        candidates.append(
            CandidateRecord(
                id=f"cand_demo_{index}",
                name=name,
                email=f"{name.lower().replace(' ', '.')}@email.com",
                phone=phone,
                location=location,
                position=POSITION,
                score=score,
                skills=skills,
                experience=experience,
                applied_date=date.fromisoformat(applied),
                last_activity=date.fromisoformat(last),
                notes=notes,
                status=status,
            )
        )
    return candidates
