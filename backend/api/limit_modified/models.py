from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class MetaField:
    object_type: str
    key: str
    type: str = "string"
    show_in_api: bool = False
    single: bool = True

@dataclass(frozen=True)
class User:
    id: str
    role: str
