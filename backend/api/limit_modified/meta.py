from __future__ import annotations

from typing import Any, Dict, List, Optional

from limit_modified.models import MetaField


META_TYPES = ("string", "boolean")


class MetaRegistry:
    """Metadata fields declared on an object schema (e.g. "post")."""

    def __init__(self) -> None:
        self._fields: Dict[tuple[str, str], MetaField] = {}

    def register(
        self,
        object_type: str,
        key: str,
        *,
        show_in_api: bool = False,
        single: bool = True,
        type: str = "string",
    ) -> MetaField:
        if type not in META_TYPES:
            raise ValueError(f"Unsupported meta type: {type}")
        field = MetaField(object_type=object_type, key=key, type=type, show_in_api=show_in_api, single=single)
        # Same key re-registered with the same args is a no-op.
        self._fields[(object_type, key)] = field
        return field

    def get(self, object_type: str, key: str) -> Optional[MetaField]:
        return self._fields.get((object_type, key))

    def is_exposed(self, object_type: str, key: str) -> bool:
        field = self.get(object_type, key)
        return bool(field and field.show_in_api)

    def exposed_fields(self, object_type: str) -> List[MetaField]:
        return sorted(
            (f for f in self._fields.values() if f.object_type == object_type and f.show_in_api),
            key=lambda f: f.key,
        )

    def all_fields(self) -> List[MetaField]:
        return sorted(self._fields.values(), key=lambda f: (f.object_type, f.key))


def is_truthy(value: Any) -> bool:
    """Stored meta truthiness: None, "", "0", 0 and False are false."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    return bool(value)


def to_storage(field: Optional[MetaField], value: Any) -> Any:
    if field is not None and field.type == "boolean":
        return "1" if is_truthy(value) else "0"
    return value


def from_storage(field: Optional[MetaField], value: Optional[str]) -> Any:
    if field is not None and field.type == "boolean":
        return is_truthy(value)
    return value
