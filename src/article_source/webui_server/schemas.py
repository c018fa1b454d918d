from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ArticleWriteRequest(BaseModel):
    fields: dict[str, Any] = Field(default_factory=dict)


class ConflictCheckRequest(BaseModel):
    fields: dict[str, Any] = Field(default_factory=dict)
    exclude_identity: str | None = None


class HashtagRequest(BaseModel):
    tag: str = Field(min_length=1)


class SummaryRequest(BaseModel):
    link: str = Field(min_length=1)
