"""
Keep an item's modified date when an editor asks for it.

Two metadata keys per content item:
  - limit_modified_date: "1" while the editor wants the modified date frozen
  - last_modified_date: ISO-8601 modified date to reuse while frozen

The flag reaches the store from two surfaces. API saves carry it in the
request "meta" bag and it is written before the item is persisted. Form
saves carry it as a raw field, read during persist and written afterwards
in the "save_item" action.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.engine import Engine

from limit_modified import auth, repo
from limit_modified.config import get_supported_types
from limit_modified.hooks import HookRegistry, api_pre_insert
from limit_modified.meta import MetaRegistry, is_truthy
from limit_modified.models import User
from limit_modified.security import render_token_field, verify_token
from limit_modified.timestamps import from_rfc3339, gmt_from_local, to_rfc3339

logger = logging.getLogger(__name__)

META_KEY = "limit_modified_date"
LAST_MOD_META_KEY = "last_modified_date"
NONCE_KEY = f"{META_KEY}_nonce"

# Runs after other pre_persist filters at the default priority.
PERSIST_PRIORITY = 20

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def absint(value: Any) -> int:
    """Absolute integer value of a raw form field; anything unparsable is 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return abs(value)
    m = _LEADING_INT.match(str(value if value is not None else ""))
    return abs(int(m.group(1))) if m else 0


def default_force_update(item_id: str) -> Optional[bool]:
    """Default for should_force_timestamp_update: never force."""
    return None


def apply_original_modified_date(
    data: Dict[str, Any],
    postarr: Dict[str, Any],
    *,
    use_original: Any,
    last_modified: Optional[str],
    form_flag: bool,
) -> Optional[str]:
    """
    Substitute the modified date on `data` in place.

    Returns where the kept date came from: "cache" (stored last_modified_date),
    "form" (the item's current row, for form saves with the box ticked), or
    None when the host's new timestamp stands.
    """
    if is_truthy(use_original) and last_modified:
        try:
            native = from_rfc3339(last_modified)
            native_gmt = gmt_from_local(native)
        except (ValueError, OverflowError):
            # Out-of-range offsets overflow when shifted between zones.
            logger.debug(f"Ignoring unusable {LAST_MOD_META_KEY}={last_modified!r}")
        else:
            data["modified_at"] = native
            data["modified_at_gmt"] = native_gmt
            return "cache"

    if not form_flag:
        return None

    replaced = False
    if postarr.get("modified_at") is not None:
        data["modified_at"] = postarr["modified_at"]
        replaced = True
    if postarr.get("modified_at_gmt") is not None:
        data["modified_at_gmt"] = postarr["modified_at_gmt"]
        replaced = True
    return "form" if replaced else None


class LimitModifiedDate:
    """
    Binds the modified-date override to a host.

    Extension points:
      - supported_types(): content types offering the toggle (default: config)
      - force_update(item_id): truthy means save the new modified date anyway
        and treat the toggle as unchecked
      - can_edit(user, item_id): permission check for form saves
    """

    def __init__(
        self,
        engine: Engine,
        *,
        supported_types: Optional[Callable[[], Iterable[str]]] = None,
        force_update: Optional[Callable[[str], Any]] = None,
        can_edit: Optional[Callable[[Optional[User], str], bool]] = None,
    ) -> None:
        self.engine = engine
        self._supported_types = supported_types or get_supported_types
        self._force_update = force_update or default_force_update
        self._can_edit = can_edit or (lambda user, item_id: auth.can_edit(engine, user, item_id))
        self._api_types: set[str] = set()
        # Items whose pending write reuses the cached date.
        self._kept_from_cache: set[str] = set()

    # ----------------------------
    # Wiring
    # ----------------------------

    def bind(self, hooks: HookRegistry, registry: MetaRegistry) -> None:
        self.register_flag_fields(registry)
        hooks.add_filter("pre_persist", self.on_before_persist, PERSIST_PRIORITY)
        hooks.add_action("after_persist", self.on_after_persist)
        hooks.add_action("save_item", self.on_interactive_save)
        self.sync_api_surface_flag(hooks)

    def supported_types(self) -> set[str]:
        return set(self._supported_types())

    def is_supported_type(self, content_type: Optional[str]) -> bool:
        return bool(content_type) and content_type in self.supported_types()

    @staticmethod
    def register_flag_fields(registry: MetaRegistry) -> None:
        registry.register("post", META_KEY, show_in_api=True, single=True, type="boolean")
        registry.register("post", LAST_MOD_META_KEY, show_in_api=True, single=True, type="string")

    def sync_api_surface_flag(self, hooks: HookRegistry, supported_types: Optional[Iterable[str]] = None) -> None:
        types = self.supported_types() if supported_types is None else set(supported_types)
        for content_type in sorted(types - self._api_types):
            hooks.add_filter(api_pre_insert(content_type), self.save_api_meta)
            self._api_types.add(content_type)

    # ----------------------------
    # Persist path
    # ----------------------------

    def on_before_persist(
        self,
        data: Dict[str, Any],
        postarr: Dict[str, Any],
        form: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        item_id = postarr.get("id")
        if not item_id:
            return data

        content_type = data.get("type") or postarr.get("type") or repo.get_item_type(self.engine, item_id)
        if not self.is_supported_type(content_type):
            return data

        self._kept_from_cache.discard(item_id)

        if self._force_update(item_id):
            # Same as saving with the toggle unchecked: the cache follows the new date.
            return data

        use_original = repo.get_meta(self.engine, item_id, META_KEY)
        last_modified = repo.get_meta(self.engine, item_id, LAST_MOD_META_KEY)
        form_flag = (form or {}).get(META_KEY) == "1"

        source = apply_original_modified_date(
            data,
            postarr,
            use_original=use_original,
            last_modified=last_modified,
            form_flag=form_flag,
        )

        if source:
            logger.debug(f"Kept modified date {data.get('modified_at')} from {source} for item {item_id}")
        if source == "cache":
            self._kept_from_cache.add(item_id)
        return data

    def on_after_persist(self, item_id: str, saved: Dict[str, Any]) -> None:
        """
        Cache the modified date that was just written, unless it came from
        the cache. Runs for new items too, so a first freeze has a date to keep.
        """
        if item_id in self._kept_from_cache:
            self._kept_from_cache.discard(item_id)
            return

        if not self.is_supported_type(saved.get("type")):
            return

        modified = saved.get("modified_at")
        if not modified:
            return
        try:
            value = to_rfc3339(modified)
        except (ValueError, OverflowError):
            logger.debug(f"Not caching unparsable modified_at={modified!r} for item {item_id}")
            return
        repo.set_meta(self.engine, item_id, LAST_MOD_META_KEY, value)

    # ----------------------------
    # API surface
    # ----------------------------

    def save_api_meta(self, prepared: Dict[str, Any], request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write the flag keys from the request "meta" bag before the item is
        persisted, and drop them from the bag so the generic meta save skips them.
        """
        if not prepared.get("id"):
            return prepared

        meta = request.get("meta")
        if not meta or not isinstance(meta, dict):
            return prepared

        meta = dict(meta)
        mutated = False

        if meta.get(META_KEY) is not None:
            value = meta.pop(META_KEY)
            repo.set_meta(self.engine, prepared["id"], META_KEY, "1" if is_truthy(value) else "0")
            mutated = True

        if meta.get(LAST_MOD_META_KEY) is not None:
            repo.set_meta(self.engine, prepared["id"], LAST_MOD_META_KEY, meta.pop(LAST_MOD_META_KEY))
            mutated = True

        if mutated:
            request["meta"] = meta

        return prepared

    # ----------------------------
    # Form surface
    # ----------------------------

    def render_interactive_toggle(self, item_id: str, content_type: Optional[str], user_id: str) -> str:
        if not self.is_supported_type(content_type):
            return ""

        checked = ' checked="checked"' if repo.get_meta(self.engine, item_id, META_KEY) == "1" else ""

        return (
            render_token_field(META_KEY, NONCE_KEY, user_id)
            + '<div class="misc-pub-section">'
            + f'<input type="checkbox" name="{META_KEY}" id="{META_KEY}" value="1"{checked} />'
            + f'<label for="{META_KEY}">Don\'t update the modified date</label>'
            + "</div>"
        )

    def on_interactive_save(
        self,
        item_id: str,
        form: Dict[str, Any],
        user: Optional[User],
        autosave: bool = False,
    ) -> None:
        if "type" not in form or autosave:
            return

        if not self.is_supported_type(repo.get_item_type(self.engine, item_id)):
            return

        user_id = user.id if user else ""
        if not verify_token(form.get(NONCE_KEY), META_KEY, user_id):
            logger.info(f"Skipping {META_KEY} update for item {item_id}: bad or missing token")
            return

        if not self._can_edit(user, item_id):
            logger.info(f"Skipping {META_KEY} update for item {item_id}: user {user_id!r} cannot edit")
            return

        if META_KEY not in form:
            # Saving the item refreshes the cached date anyway.
            repo.delete_meta(self.engine, item_id, META_KEY)
        elif absint(form[META_KEY]) == 1:
            repo.set_meta(self.engine, item_id, META_KEY, "1")
