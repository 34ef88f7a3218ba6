"""
Named lifecycle points of the content host.

Filters transform a value and return it; actions are called for their side
effects. Callbacks run by ascending priority, then registration order.

Points fired by the host:
  - "pre_persist"              filter(data, postarr, form)
  - "api_pre_insert:<type>"    filter(prepared, request)
  - "after_persist"            action(item_id, saved_row), also on create
  - "save_item"                action(item_id, form, user, autosave)
"""

from __future__ import annotations

from typing import Any, Callable

DEFAULT_PRIORITY = 10


def api_pre_insert(content_type: str) -> str:
    return f"api_pre_insert:{content_type}"


class HookRegistry:
    def __init__(self) -> None:
        self._callbacks: dict[str, list[tuple[int, int, Callable[..., Any]]]] = {}
        self._seq = 0

    def _add(self, name: str, fn: Callable[..., Any], priority: int) -> None:
        self._seq += 1
        entries = self._callbacks.setdefault(name, [])
        entries.append((priority, self._seq, fn))
        entries.sort(key=lambda e: (e[0], e[1]))

    def add_filter(self, name: str, fn: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        self._add(name, fn, priority)

    def add_action(self, name: str, fn: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        self._add(name, fn, priority)

    def has(self, name: str) -> bool:
        return bool(self._callbacks.get(name))

    def apply_filters(self, name: str, value: Any, *args: Any) -> Any:
        for _, _, fn in list(self._callbacks.get(name, [])):
            value = fn(value, *args)
        return value

    def do_action(self, name: str, *args: Any) -> None:
        for _, _, fn in list(self._callbacks.get(name, [])):
            fn(*args)
