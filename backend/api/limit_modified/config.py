from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# backend/api/limit_modified/config.py -> parents[1] == backend/api
BACKEND_API_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SUPPORTED_TYPES = "post"
DEFAULT_CSRF_SECRET = "dev-only-change-me"

_env_loaded = False


def load_env_once() -> None:
    """
    Loads .env from:
      1) ENV_PATH if provided
      2) backend/api/.env (project default)
      3) current working directory .env (fallback)
    """
    global _env_loaded
    if _env_loaded:
        return
    _env_loaded = True

    env_path = os.getenv("ENV_PATH")
    if env_path:
        p = Path(env_path)
        if p.exists():
            load_dotenv(p, override=False)
            return

    p2 = BACKEND_API_DIR / ".env"
    if p2.exists():
        load_dotenv(p2, override=False)
        return

    p3 = Path.cwd() / ".env"
    if p3.exists():
        load_dotenv(p3, override=False)


def get_database_url() -> str:
    load_env_once()

    db_url = os.getenv("DATABASE_URL") or os.getenv("DB_URL")
    if not db_url:
        tried = [
            f"ENV_PATH={os.getenv('ENV_PATH')}",
            str(BACKEND_API_DIR / ".env"),
            str(Path.cwd() / ".env"),
        ]
        raise RuntimeError(
            "DATABASE_URL is not set. Ensure it exists in backend/api/.env or set ENV_PATH.\n"
            f"Tried: {', '.join(tried)}"
        )
    return db_url


def get_site_timezone() -> str:
    load_env_once()
    return (os.getenv("SITE_TIMEZONE") or "UTC").strip()


def get_csrf_secret() -> str:
    load_env_once()
    return os.getenv("CSRF_SECRET") or DEFAULT_CSRF_SECRET


def get_log_level() -> str:
    load_env_once()
    return (os.getenv("LOG_LEVEL") or "INFO").strip().upper()


def get_supported_types() -> set[str]:
    """
    Content types that may opt out of modified-date updates.

    LIMIT_MODIFIED_DATE_TYPES is a comma separated list, e.g. "post,page".
    """
    load_env_once()
    raw = os.getenv("LIMIT_MODIFIED_DATE_TYPES") or DEFAULT_SUPPORTED_TYPES
    return {t.strip() for t in raw.split(",") if t.strip()}
