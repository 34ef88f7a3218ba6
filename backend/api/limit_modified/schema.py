"""Idempotent DDL shared by the Alembic revision and local bootstrapping.

Timestamps are stored as text in the host's native format
("YYYY-MM-DD HH:MM:SS"), site-local and UTC side by side.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Engine


DDL: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id text PRIMARY KEY,
        role text NOT NULL DEFAULT 'author'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_items (
        id text PRIMARY KEY,
        type text NOT NULL DEFAULT 'post',
        title text NOT NULL,
        body text NOT NULL DEFAULT '',
        author_id text,
        created_at text NOT NULL,
        created_at_gmt text NOT NULL,
        modified_at text NOT NULL,
        modified_at_gmt text NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_meta (
        item_id text NOT NULL,
        meta_key text NOT NULL,
        meta_value text,
        PRIMARY KEY (item_id, meta_key)
    )
    """,
]


def create_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        for stmt in DDL:
            conn.execute(text(stmt))
