from __future__ import annotations

import json
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ats.app.models import CandidateRecord, InterviewRecord, JobRecord


class DocumentStoreError(Exception):
    pass


class DocumentNotFoundError(DocumentStoreError):
    pass


class DocumentConflictError(DocumentStoreError):
    pass


class DocumentStoreUnavailableError(DocumentStoreError):
    pass


def _normalize_database_url(database_url: str) -> str:
    value = database_url.strip()
    if value.startswith("sqlite:///"):
        sqlite_path = value[len("sqlite:///") :].split("?", 1)[0]
        if sqlite_path and sqlite_path != ":memory:":
            path = Path(sqlite_path)
            if path.parent:
                path.parent.mkdir(parents=True, exist_ok=True)
        return value
    if "://" in value:
        return value
    path = Path(value)
    if path.parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{str(path).replace(chr(92), '/')}"


def _flat_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


def flatten_record(record: dict[str, Any]) -> dict[str, Any]:
    """Collapse a record to flat key/value pairs; arrays and objects become JSON text."""
    return {key: _flat_value(value) for key, value in record.items()}


def _json_field(value: Any, default: Any) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value


def candidate_to_document(candidate: CandidateRecord) -> dict[str, Any]:
    return flatten_record(
        {
            "id": candidate.id,
            "name": candidate.name,
            "email": candidate.email,
            "phone": candidate.phone,
            "location": candidate.location,
            "position": candidate.position,
            "ai_score": candidate.score,
            "skills": candidate.skills,
            "experience": candidate.experience,
            "applied_date": candidate.applied_date,
            "last_activity": candidate.last_activity,
            "notes": candidate.notes,
            "resume_url": candidate.resume_url,
            "status": candidate.status,
        }
    )


def candidate_from_document(document: dict[str, Any]) -> CandidateRecord:
    skills = _json_field(document.get("skills"), [])
    if not isinstance(skills, list):
        skills = []
    applied_date = document.get("applied_date") or str(document.get("created_at", ""))[:10]
    return CandidateRecord(
        id=document["id"],
        name=document.get("name") or "",
        email=document.get("email") or "",
        phone=document.get("phone") or "",
        location=document.get("location") or "",
        position=document.get("position") or "",
        score=float(document.get("ai_score") or 0),
        skills=[str(skill) for skill in skills],
        experience=document.get("experience") or "",
        applied_date=applied_date,
        last_activity=document.get("last_activity") or applied_date,
        notes=document.get("notes") or "",
        resume_url=document.get("resume_url"),
        status=document["status"],
    )


def job_to_document(job: JobRecord) -> dict[str, Any]:
    return flatten_record(
        {
            "id": job.id,
            "title": job.title,
            "department": job.department,
            "location": job.location,
            "job_type": job.job_type,
            "salary_min": job.salary_min,
            "salary_max": job.salary_max,
            "description": job.description,
            "requirements": job.requirements,
            "skills": job.skills,
            "experience_required": job.experience,
            "posted_date": job.posted_date,
            "status": job.status,
            "applicants": job.applicants,
            "created_at": job.created_at_utc,
        }
    )


def job_from_document(document: dict[str, Any]) -> JobRecord:
    created_at = document.get("created_at") or datetime.now(timezone.utc).isoformat()
    return JobRecord(
        id=document["id"],
        title=document.get("title") or "",
        department=document.get("department") or "",
        location=document.get("location") or "",
        job_type=document.get("job_type") or "full-time",
        salary_min=int(document.get("salary_min") or 0),
        salary_max=int(document.get("salary_max") or 0),
        description=document.get("description") or "",
        requirements=_json_field(document.get("requirements"), []),
        skills=_json_field(document.get("skills"), []),
        experience=document.get("experience_required") or "",
        posted_date=document.get("posted_date") or str(created_at)[:10],
        status=document.get("status") or "active",
        applicants=int(document.get("applicants") or 0),
        created_at_utc=created_at,
    )


def interview_to_document(interview: InterviewRecord) -> dict[str, Any]:
    return flatten_record(
        {
            "id": interview.id,
            "candidate_id": interview.candidate_id,
            "candidate_name": interview.candidate_name,
            "candidate_email": interview.candidate_email,
            "position": interview.position,
            "interview_type": interview.interview_type,
            "interview_date": interview.date,
            "interview_time": interview.time,
            "duration_minutes": interview.duration_minutes,
            "interviewer_name": interview.interviewer,
            "interviewer_email": interview.interviewer_email,
            "location": interview.location,
            "meeting_link": interview.meeting_link,
            "status": interview.status,
            "notes": interview.notes,
            "round_number": interview.round,
            "ai_score": interview.ai_score,
            "created_at": interview.created_at_utc,
        }
    )


def interview_from_document(document: dict[str, Any]) -> InterviewRecord:
    return InterviewRecord(
        id=document["id"],
        candidate_id=document.get("candidate_id"),
        candidate_name=document.get("candidate_name") or "",
        candidate_email=document.get("candidate_email") or "",
        position=document.get("position") or "",
        interview_type=document.get("interview_type") or "video",
        date=document["interview_date"],
        time=document["interview_time"],
        duration_minutes=int(document.get("duration_minutes") or 60),
        interviewer=document.get("interviewer_name") or "",
        interviewer_email=document.get("interviewer_email") or "",
        location=document.get("location"),
        meeting_link=document.get("meeting_link"),
        status=document.get("status") or "scheduled",
        notes=document.get("notes") or "",
        round=int(document.get("round_number") or 1),
        ai_score=document.get("ai_score"),
        created_at_utc=document.get("created_at") or datetime.now(timezone.utc).isoformat(),
    )


class SqlDocumentStore:
    """
    Flat document store over SQLAlchemy. Works with SQLite and PostgreSQL URLs.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = _normalize_database_url(database_url)
        self._lock = Lock()
        self.engine: Engine = create_engine(
            self.database_url,
            future=True,
            pool_pre_ping=True,
        )
        self.metadata = MetaData()
        self.documents = Table(
            "documents",
            self.metadata,
            Column("collection", String(64), primary_key=True),
            Column("id", String(120), primary_key=True),
            Column("payload_json", Text, nullable=False),
            Column("created_at_utc", DateTime, nullable=False),
            Column("updated_at_utc", DateTime, nullable=False),
        )
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.metadata.create_all(self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError:
            return False

    def _key_clause(self, collection: str, document_id: str):
        return (self.documents.c.collection == collection) & (
            self.documents.c.id == document_id
        )

    def create(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        document_id = record.get("id")
        if not isinstance(document_id, str) or not document_id:
            raise DocumentStoreError(f"{collection} record is missing an id")
        now = datetime.now(timezone.utc)
        payload = flatten_record(record)
        payload.setdefault("created_at", now.isoformat())
        payload.setdefault("updated_at", now.isoformat())
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    existing = conn.execute(
                        select(self.documents.c.id).where(
                            self._key_clause(collection, document_id)
                        )
                    ).first()
                    if existing:
                        raise DocumentConflictError(
                            f"{collection} document already exists: {document_id}"
                        )
                    conn.execute(
                        self.documents.insert().values(
                            collection=collection,
                            id=document_id,
                            payload_json=json.dumps(payload),
                            created_at_utc=now,
                            updated_at_utc=now,
                        )
                    )
            except SQLAlchemyError as exc:
                raise DocumentStoreUnavailableError(
                    f"failed to create {collection} document {document_id}"
                ) from exc
        return payload

    def update(
        self, collection: str, document_id: str, partial: dict[str, Any]
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    row = conn.execute(
                        select(self.documents.c.payload_json).where(
                            self._key_clause(collection, document_id)
                        )
                    ).first()
                    if not row:
                        raise DocumentNotFoundError(
                            f"{collection} document not found: {document_id}"
                        )
                    payload = json.loads(row[0])
                    payload.update(flatten_record(partial))
                    payload["id"] = document_id
                    conn.execute(
                        self.documents.update()
                        .where(self._key_clause(collection, document_id))
                        .values(payload_json=json.dumps(payload), updated_at_utc=now)
                    )
            except SQLAlchemyError as exc:
                raise DocumentStoreUnavailableError(
                    f"failed to update {collection} document {document_id}"
                ) from exc
        return payload

    def get(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            try:
                with self.engine.connect() as conn:
                    row = conn.execute(
                        select(self.documents.c.payload_json).where(
                            self._key_clause(collection, document_id)
                        )
                    ).first()
            except SQLAlchemyError as exc:
                raise DocumentStoreUnavailableError(
                    f"failed to read {collection} document {document_id}"
                ) from exc
        if not row:
            return None
        return json.loads(row[0])

    def list(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            try:
                with self.engine.connect() as conn:
                    rows = conn.execute(
                        select(self.documents.c.payload_json)
                        .where(self.documents.c.collection == collection)
                        .order_by(self.documents.c.created_at_utc, self.documents.c.id)
                    ).all()
            except SQLAlchemyError as exc:
                raise DocumentStoreUnavailableError(
                    f"failed to list {collection} documents"
                ) from exc
        return [json.loads(row[0]) for row in rows]
