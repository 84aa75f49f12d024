from __future__ import annotations

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    app_env: str
    persistence_enabled: bool
    persistence_db_path: str
    database_url: str
    auth_enabled: bool
    jwt_secret: str
    jwt_algorithm: str
    llm_api_url: str
    llm_api_key: str
    llm_model: str
    llm_timeout_seconds: float
    company_name: str
    default_job_requirements: str
    screened_candidate_stage: str
    sync_max_retries: int
    sync_retry_backoff_seconds: float
    seed_demo_data: bool


def load_settings() -> Settings:
    persistence_db_path = os.getenv("PERSISTENCE_DB_PATH", "data/ats.sqlite3").strip()
    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        database_url = f"sqlite:///{persistence_db_path.replace(chr(92), '/')}"
    llm_api_key = os.getenv("LLM_API_KEY", "").strip() or os.getenv("GROQ_API_KEY", "").strip()
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        persistence_enabled=_bool_env("PERSISTENCE_ENABLED", True),
        persistence_db_path=persistence_db_path,
        database_url=database_url,
        auth_enabled=_bool_env("AUTH_ENABLED", False),
        jwt_secret=os.getenv("JWT_SECRET", "dev-only-secret-change-in-prod").strip(),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256").strip(),
        llm_api_url=os.getenv(
            "LLM_API_URL", "https://api.groq.com/openai/v1/chat/completions"
        ).strip(),
        llm_api_key=llm_api_key,
        llm_model=os.getenv("LLM_MODEL", "llama-3.1-70b-versatile").strip(),
        llm_timeout_seconds=max(1.0, _float_env("LLM_TIMEOUT_SECONDS", 30.0)),
        company_name=os.getenv("COMPANY_NAME", "Our Company").strip(),
        default_job_requirements=os.getenv(
            "DEFAULT_JOB_REQUIREMENTS",
            "Software Developer position with React, TypeScript, and Node.js experience",
        ).strip(),
        screened_candidate_stage=os.getenv("SCREENED_CANDIDATE_STAGE", "screening").strip(),
        sync_max_retries=max(0, _int_env("SYNC_MAX_RETRIES", 0)),
        sync_retry_backoff_seconds=max(0.0, _float_env("SYNC_RETRY_BACKOFF_SECONDS", 0.5)),
        seed_demo_data=_bool_env("SEED_DEMO_DATA", False),
    )
