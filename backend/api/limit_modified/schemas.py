from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict


class ContentCreateIn(BaseModel):
    type: str = Field("post", min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=400)
    body: str = ""
    meta: Optional[Dict[str, Any]] = None


class ContentUpdateIn(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=400)
    body: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class ContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    title: str
    body: str
    author_id: Optional[str] = None
    created_at: datetime
    created_at_gmt: datetime
    modified_at: datetime
    modified_at_gmt: datetime
    meta: Dict[str, Any] = Field(default_factory=dict)


class MetaFieldOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    object_type: str
    key: str
    type: str
    show_in_api: bool
    single: bool


class MetaFieldsOut(BaseModel):
    fields: List[MetaFieldOut]
