"""Environment-backed settings for the backend service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

SECURE_FIELD_SECRET_ENV = "SECURE_FIELD_SECRET"


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    secure_field_secret: Optional[str]
    log_level: str = "INFO"
    cors_allow_origins: Tuple[str, ...] = ("*",)


def _split_origins(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ("*",)
    origins = tuple(part.strip() for part in raw.split(",") if part.strip())
    return origins or ("*",)


def get_settings() -> Settings:
    """Read settings from the environment.

    Values are read on every call so tests can adjust them with monkeypatch.
    """
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=(
            os.getenv("SUPABASE_ANON_KEY")
            or os.getenv("SUPABASE_KEY")
            or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        ),
        secure_field_secret=os.getenv(SECURE_FIELD_SECRET_ENV),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        cors_allow_origins=_split_origins(os.getenv("CORS_ALLOW_ORIGINS")),
    )
