"""
Form tokens bound to an action and a user.

A token is an HMAC over (action, user, tick) where a tick is half of
TOKEN_LIFETIME; tokens from the current and previous tick verify. A token
is therefore good for between half and all of TOKEN_LIFETIME, depending on
when in its tick it was issued. Changing CSRF_SECRET invalidates every
outstanding token at once.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from html import escape
from typing import Optional

from limit_modified.config import get_csrf_secret

TOKEN_LIFETIME = 24 * 60 * 60


def _tick(now: Optional[float] = None) -> int:
    now = time.time() if now is None else now
    return int(now // (TOKEN_LIFETIME / 2))


def _digest(action: str, user_id: str, tick: int) -> str:
    msg = f"{action}|{user_id}|{tick}".encode("utf-8")
    return hmac.new(get_csrf_secret().encode("utf-8"), msg, hashlib.sha256).hexdigest()[:20]


def create_token(action: str, user_id: str, now: Optional[float] = None) -> str:
    return _digest(action, user_id or "", _tick(now))


def verify_token(token: Optional[str], action: str, user_id: str, now: Optional[float] = None) -> bool:
    if not token:
        return False
    token = token.strip()
    tick = _tick(now)
    for t in (tick, tick - 1):
        if hmac.compare_digest(token, _digest(action, user_id or "", t)):
            return True
    return False


def render_token_field(action: str, field_name: str, user_id: str) -> str:
    return (
        f'<input type="hidden" id="{escape(field_name)}" name="{escape(field_name)}" '
        f'value="{escape(create_token(action, user_id))}" />'
    )
