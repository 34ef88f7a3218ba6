from __future__ import annotations

import logging
from dataclasses import asdict
from html import escape

from limit_modified.config import get_log_level, load_env_once

# -------------------------------------------------------------------
# ENV LOADING (must run before anything reads env)
# -------------------------------------------------------------------
load_env_once()

from fastapi import FastAPI, HTTPException, Header, Request  # noqa: E402
from fastapi.responses import HTMLResponse, RedirectResponse  # noqa: E402
from starlette.concurrency import run_in_threadpool  # noqa: E402

from limit_modified.db import get_engine, db_ping  # noqa: E402
from limit_modified.schemas import (  # noqa: E402
    ContentCreateIn,
    ContentUpdateIn,
    ContentOut,
    MetaFieldsOut,
)
from limit_modified import repo  # noqa: E402
from limit_modified.auth import AuthError, can_edit, require_user  # noqa: E402
from limit_modified.content import (  # noqa: E402
    ContentError,
    Host,
    api_update,
    build_host,
    create_item,
    save_content,
    with_meta,
)

logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Limit Modified Date API", version="1.0.0")

_host: Host | None = None


def get_host() -> Host:
    global _host

    if _host is None:
        _host = build_host(get_engine())
    return _host


def reset_host() -> None:
    global _host
    _host = None


def _user_or_401(host: Host, x_user_id: str | None):
    try:
        return require_user(host.engine, x_user_id)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


# -----------------------------
# Health checks
# -----------------------------
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/readyz")
def readyz():
    engine = get_engine()
    db_ping(engine)
    return {"status": "ready", "db": "ok"}


@app.get("/meta/fields", response_model=MetaFieldsOut)
def meta_fields():
    return {"fields": [asdict(f) for f in get_host().registry.all_fields()]}


# -----------------------------
# Structured API surface
# -----------------------------
@app.post("/api/content", response_model=ContentOut)
def create_content(
    body: ContentCreateIn,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
):
    host = get_host()
    user = _user_or_401(host, x_user_id)

    try:
        return create_item(
            host,
            type=body.type,
            title=body.title,
            body=body.body,
            author_id=user.id,
            meta=body.meta,
        )
    except ContentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/content/{content_id}", response_model=ContentOut)
def get_content(content_id: str):
    host = get_host()

    try:
        return with_meta(host, repo.get_content(host.engine, content_id))
    except KeyError:
        raise HTTPException(status_code=404, detail="Not found")


@app.put("/api/content/{content_id}", response_model=ContentOut)
def update_content(
    content_id: str,
    body: ContentUpdateIn,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
):
    host = get_host()
    user = _user_or_401(host, x_user_id)

    try:
        repo.get_content(host.engine, content_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Not found")

    if not can_edit(host.engine, user, content_id):
        raise HTTPException(status_code=403, detail="Not allowed to edit this item")

    return api_update(host, content_id, body.model_dump(exclude_unset=True), user=user)


# -----------------------------
# Interactive form surface
# -----------------------------
def _render_edit_page(host: Host, item: dict, user_id: str) -> str:
    toggle = host.limiter.render_interactive_toggle(item["id"], item["type"], user_id)
    return (
        "<!doctype html><html><body>"
        f'<form method="post" action="/content/{escape(item["id"])}/edit">'
        f'<input type="hidden" name="type" value="{escape(item["type"])}" />'
        f'<input type="text" name="title" value="{escape(item["title"])}" />'
        f'<textarea name="body">{escape(item["body"])}</textarea>'
        f"<p>Last modified: {escape(item['modified_at'])}</p>"
        f"{toggle}"
        '<button type="submit">Update</button>'
        "</form></body></html>"
    )


@app.get("/content/{content_id}/edit", response_class=HTMLResponse)
def edit_content_form(
    content_id: str,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
):
    host = get_host()
    user = _user_or_401(host, x_user_id)

    try:
        item = repo.get_content(host.engine, content_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Not found")

    if not can_edit(host.engine, user, content_id):
        raise HTTPException(status_code=403, detail="Not allowed to edit this item")

    return HTMLResponse(_render_edit_page(host, item, user.id))


def _submit_edit(content_id: str, form: dict, x_user_id: str | None):
    host = get_host()
    user = _user_or_401(host, x_user_id)

    try:
        repo.get_content(host.engine, content_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Not found")

    if not can_edit(host.engine, user, content_id):
        raise HTTPException(status_code=403, detail="Not allowed to edit this item")

    changes = {k: form[k] for k in ("title", "body") if form.get(k) is not None}
    save_content(
        host,
        content_id,
        changes,
        form=form,
        user=user,
        autosave=form.get("autosave") == "1",
    )
    return RedirectResponse(url=f"/content/{content_id}/edit", status_code=303)


@app.post("/content/{content_id}/edit")
async def edit_content_submit(
    content_id: str,
    request: Request,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
):
    form = {k: v for k, v in (await request.form()).items() if isinstance(v, str)}
    return await run_in_threadpool(_submit_edit, content_id, form, x_user_id)
