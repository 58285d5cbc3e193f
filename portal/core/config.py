"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SESSION_COOKIE = "supabase-access-token"


@dataclass(frozen=True)
class Settings:
    database_url: str
    supabase_url: str
    supabase_anon_key: str
    session_cookie_name: str = DEFAULT_SESSION_COOKIE
    port: int = 8080
    db_statement_timeout_ms: int = 5000
    http_timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    supabase_anon_key = os.getenv("SUPABASE_ANON_KEY", "")
    session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "").strip() or DEFAULT_SESSION_COOKIE
    port = int(os.getenv("PORT", "8080"))
    db_statement_timeout_ms = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))
    http_timeout_seconds = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not supabase_url:
        logger.warning("SUPABASE_URL is not configured; session resolution will fail.")
    if not supabase_anon_key:
        logger.warning("SUPABASE_ANON_KEY is not configured; session resolution will fail.")

    return Settings(
        database_url=database_url,
        supabase_url=supabase_url,
        supabase_anon_key=supabase_anon_key,
        session_cookie_name=session_cookie_name,
        port=port,
        db_statement_timeout_ms=db_statement_timeout_ms,
        http_timeout_seconds=http_timeout_seconds,
    )
