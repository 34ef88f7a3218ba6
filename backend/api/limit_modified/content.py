from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine

from limit_modified import repo
from limit_modified.hooks import HookRegistry, api_pre_insert
from limit_modified.limit_date import LimitModifiedDate
from limit_modified.meta import MetaRegistry, from_storage, to_storage
from limit_modified.models import User
from limit_modified.timestamps import gmt_from_local, now_local

logger = logging.getLogger(__name__)

# Every content type shares the "post" meta schema.
META_OBJECT_TYPE = "post"

EDITABLE_FIELDS = ("title", "body")

_TYPE_RE = re.compile(r"^[a-z0-9_-]{1,20}$")


class ContentError(Exception):
    """Raised when a content request is invalid."""


@dataclass
class Host:
    engine: Engine
    hooks: HookRegistry
    registry: MetaRegistry
    limiter: LimitModifiedDate


def build_host(engine: Engine, limiter: Optional[LimitModifiedDate] = None) -> Host:
    hooks = HookRegistry()
    registry = MetaRegistry()
    limiter = limiter or LimitModifiedDate(engine)
    limiter.bind(hooks, registry)
    return Host(engine=engine, hooks=hooks, registry=registry, limiter=limiter)


def _normalize_type(content_type: str) -> str:
    t = (content_type or "").strip().lower()
    if not _TYPE_RE.match(t):
        raise ContentError(f"Invalid content type: {content_type!r}")
    return t


# ----------------------------
# Metadata
# ----------------------------

def item_meta(host: Host, item_id: str) -> Dict[str, Any]:
    """API-exposed metadata of one item, decoded by field type."""
    stored = repo.list_meta(host.engine, item_id)
    return {
        f.key: from_storage(f, stored.get(f.key))
        for f in host.registry.exposed_fields(META_OBJECT_TYPE)
        if f.key in stored
    }


def save_registered_meta(host: Host, item_id: str, meta: Optional[Dict[str, Any]]) -> None:
    """Generic metadata save: only registered, API-exposed keys are written."""
    if not meta:
        return

    for key, value in meta.items():
        field = host.registry.get(META_OBJECT_TYPE, key)
        if field is None or not field.show_in_api:
            logger.warning(f"Ignoring unregistered meta key {key!r} for item {item_id}")
            continue
        if value is None:
            repo.delete_meta(host.engine, item_id, key)
        else:
            repo.set_meta(host.engine, item_id, key, to_storage(field, value))


def with_meta(host: Host, item: Dict[str, Any]) -> Dict[str, Any]:
    return {**item, "meta": item_meta(host, item["id"])}


# ----------------------------
# Save pipeline
# ----------------------------

def create_item(
    host: Host,
    *,
    type: str,
    title: str,
    body: str = "",
    author_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    content_type = _normalize_type(type)
    request: Dict[str, Any] = {"type": content_type, "title": title, "body": body, "meta": meta}

    # No id yet; filters see the record before it exists.
    prepared = {"type": content_type, "title": title, "body": body}
    prepared = host.hooks.apply_filters(api_pre_insert(content_type), prepared, request)

    created_at = now_local()
    item = repo.create_content(
        host.engine,
        type=content_type,
        title=prepared.get("title", title),
        body=prepared.get("body", body),
        author_id=author_id,
        created_at=created_at,
        created_at_gmt=gmt_from_local(created_at),
    )

    host.hooks.do_action("after_persist", item["id"], item)

    save_registered_meta(host, item["id"], request.get("meta"))
    logger.info(f"Created {content_type} {item['id']}")
    return with_meta(host, item)


def save_content(
    host: Host,
    item_id: str,
    changes: Dict[str, Any],
    *,
    form: Optional[Dict[str, Any]] = None,
    user: Optional[User] = None,
    autosave: bool = False,
) -> Dict[str, Any]:
    """
    Persist an update to an existing item.

    The host stamps a fresh modified date, then lets "pre_persist" filters
    adjust the row before it is written. "after_persist" gets the written row,
    then "save_item" fires with the raw form.
    Raises KeyError for unknown items.
    """
    existing = repo.get_content(host.engine, item_id)
    form = form or {}

    postarr = {**existing, **{k: v for k, v in changes.items() if k in EDITABLE_FIELDS}, "id": item_id}

    modified_at = now_local()
    data: Dict[str, Any] = {
        "type": existing["type"],
        "title": postarr["title"],
        "body": postarr["body"],
        "modified_at": modified_at,
        "modified_at_gmt": gmt_from_local(modified_at),
    }

    data = host.hooks.apply_filters("pre_persist", data, postarr, form)
    saved = repo.update_content(host.engine, item_id, data)
    host.hooks.do_action("after_persist", item_id, saved)

    host.hooks.do_action("save_item", item_id, form, user, autosave)
    return saved


def api_update(
    host: Host,
    item_id: str,
    request: Dict[str, Any],
    user: Optional[User] = None,
) -> Dict[str, Any]:
    """
    Structured API update: "api_pre_insert:<type>" filters see the prepared
    record and may rewrite request["meta"] before the save and before the
    generic meta save consumes what is left of it.
    """
    existing = repo.get_content(host.engine, item_id)

    prepared: Dict[str, Any] = {"id": item_id, "type": existing["type"]}
    for k in EDITABLE_FIELDS:
        if request.get(k) is not None:
            prepared[k] = request[k]

    prepared = host.hooks.apply_filters(api_pre_insert(existing["type"]), prepared, request)

    saved = save_content(
        host,
        item_id,
        {k: v for k, v in prepared.items() if k in EDITABLE_FIELDS},
        user=user,
    )

    save_registered_meta(host, item_id, request.get("meta"))
    return with_meta(host, saved)
