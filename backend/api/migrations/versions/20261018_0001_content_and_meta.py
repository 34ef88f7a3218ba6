"""Content items, per-item metadata and users

- content_items: native-format timestamps (site-local + UTC)
- content_meta: one value per (item_id, meta_key)
- users: id + role for edit permissions

Idempotent.
"""

from __future__ import annotations

from alembic import op

from limit_modified.schema import DDL

revision = "20261018_0001_content_and_meta"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    for stmt in DDL:
        op.execute(stmt)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS content_meta;")
    op.execute("DROP TABLE IF EXISTS content_items;")
    op.execute("DROP TABLE IF EXISTS users;")
