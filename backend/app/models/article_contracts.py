from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_json_ld_objects() -> list[Any]:
    return []


class ArticleSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    url: str
    title: str | None = None
    tags: list[str] = Field(default_factory=list)
    scraping_status: str | None = None
    has_structured_data: bool = False


class StructuredDataRenderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    json_ld_objects: list[Any] = Field(default_factory=_default_json_ld_objects)

    @field_validator("json_ld_objects", mode="before")
    @classmethod
    def _wrap_single_object(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value


class StructuredDataRenderResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    html: str
    buckets: dict[str, int] = Field(default_factory=dict)


class ArticleStructuredDataResponse(StructuredDataRenderResponse):
    article_id: str
