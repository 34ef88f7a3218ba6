from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.engine import Engine


_CONTENT_COLUMNS = """
    id,
    type,
    title,
    body,
    author_id,
    created_at,
    created_at_gmt,
    modified_at,
    modified_at_gmt
"""

# Columns the save pipeline is allowed to write.
WRITABLE_COLUMNS = ("title", "body", "modified_at", "modified_at_gmt")


# ----------------------------
# Content items
# ----------------------------

def create_content(
    engine: Engine,
    *,
    type: str,
    title: str,
    body: str,
    author_id: Optional[str],
    created_at: str,
    created_at_gmt: str,
) -> Dict[str, Any]:
    item_id = str(uuid4())

    sql = text("""
        INSERT INTO content_items
            (id, type, title, body, author_id,
             created_at, created_at_gmt, modified_at, modified_at_gmt)
        VALUES
            (:id, :type, :title, :body, :author_id,
             :created_at, :created_at_gmt, :created_at, :created_at_gmt);
    """)

    with engine.begin() as conn:
        conn.execute(
            sql,
            {
                "id": item_id,
                "type": type,
                "title": title,
                "body": body,
                "author_id": author_id,
                "created_at": created_at,
                "created_at_gmt": created_at_gmt,
            },
        )

    return get_content(engine, item_id)


def get_content(engine: Engine, item_id: str) -> Dict[str, Any]:
    """
    Raises KeyError when the item does not exist.
    """
    sql = text(f"""
        SELECT {_CONTENT_COLUMNS}
        FROM content_items
        WHERE id = :id;
    """)

    with engine.begin() as conn:
        row = conn.execute(sql, {"id": str(item_id)}).mappings().first()

    if not row:
        raise KeyError(f"Content item not found: {item_id}")
    return dict(row)


def get_item_type(engine: Engine, item_id: str) -> Optional[str]:
    sql = text("SELECT type FROM content_items WHERE id = :id;")

    with engine.begin() as conn:
        return conn.execute(sql, {"id": str(item_id)}).scalar()


def update_content(engine: Engine, item_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Write the whitelisted columns present in `data`. Unknown keys are ignored.
    """
    cols = [c for c in WRITABLE_COLUMNS if c in data]
    if cols:
        assignments = ", ".join(f"{c} = :{c}" for c in cols)
        params = {c: data[c] for c in cols}
        params["id"] = str(item_id)

        with engine.begin() as conn:
            updated = conn.execute(
                text(f"UPDATE content_items SET {assignments} WHERE id = :id;"),
                params,
            ).rowcount
        if updated == 0:
            raise KeyError(f"Content item not found: {item_id}")

    return get_content(engine, item_id)


# ----------------------------
# Per-item metadata
# ----------------------------

def get_meta(engine: Engine, item_id: str, key: str) -> Optional[str]:
    sql = text("""
        SELECT meta_value
        FROM content_meta
        WHERE item_id = :item_id
          AND meta_key = :key;
    """)

    with engine.begin() as conn:
        return conn.execute(sql, {"item_id": str(item_id), "key": key}).scalar()


def list_meta(engine: Engine, item_id: str) -> Dict[str, Optional[str]]:
    sql = text("""
        SELECT meta_key, meta_value
        FROM content_meta
        WHERE item_id = :item_id
        ORDER BY meta_key ASC;
    """)

    with engine.begin() as conn:
        rows = conn.execute(sql, {"item_id": str(item_id)}).mappings().all()

    return {r["meta_key"]: r["meta_value"] for r in rows}


def set_meta(engine: Engine, item_id: str, key: str, value: Any) -> None:
    """
    Upsert one value. Written as UPDATE-then-INSERT so it runs unchanged on
    Postgres and SQLite.
    """
    params = {"item_id": str(item_id), "key": key, "value": None if value is None else str(value)}

    sql_update = text("""
        UPDATE content_meta
        SET meta_value = :value
        WHERE item_id = :item_id
          AND meta_key = :key;
    """)

    sql_insert = text("""
        INSERT INTO content_meta (item_id, meta_key, meta_value)
        VALUES (:item_id, :key, :value);
    """)

    with engine.begin() as conn:
        result = conn.execute(sql_update, params)
        if result.rowcount == 0:
            conn.execute(sql_insert, params)


def delete_meta(engine: Engine, item_id: str, key: str) -> None:
    sql = text("""
        DELETE FROM content_meta
        WHERE item_id = :item_id
          AND meta_key = :key;
    """)

    with engine.begin() as conn:
        conn.execute(sql, {"item_id": str(item_id), "key": key})


# ----------------------------
# Users
# ----------------------------

def create_user(engine: Engine, user_id: str, role: str) -> Dict[str, Any]:
    sql = text("INSERT INTO users (id, role) VALUES (:id, :role);")

    with engine.begin() as conn:
        conn.execute(sql, {"id": user_id, "role": role})

    return {"id": user_id, "role": role}


def get_user(engine: Engine, user_id: str) -> Optional[Dict[str, Any]]:
    sql = text("SELECT id, role FROM users WHERE id = :id LIMIT 1;")

    with engine.begin() as conn:
        row = conn.execute(sql, {"id": user_id}).mappings().first()

    return dict(row) if row else None

