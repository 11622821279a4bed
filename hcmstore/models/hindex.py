"""Classification, scope and search-result models for the hindex router."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClassificationRule(BaseModel):
    """A keyword rule: any keyword match selects ``class_``, highest priority wins."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    class_: str = Field(alias="class")
    keywords: list[str] = Field(default_factory=list)
    priority: float = 0
    targets: list[str] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def _no_blank_keywords(cls, value: list[str]) -> list[str]:
        # A blank keyword would be a substring of every query.
        if any(not kw.strip() for kw in value):
            raise ValueError("keywords must be non-blank strings")
        return value


class ClassificationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    classifications: list[ClassificationRule] = Field(default_factory=list)


class Scope(BaseModel):
    """Include/exclude glob lists (``*`` = one segment, ``**`` = any depth)."""

    model_config = ConfigDict(frozen=True)

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class ScopeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    scopes: dict[str, Scope] = Field(default_factory=dict)


class RoutingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    routing: dict[str, str] = Field(default_factory=dict)


class SearchHit(BaseModel):
    """One file returned by a scoped search."""

    model_config = ConfigDict(frozen=True)

    source: str
    content: Any


class SearchResult(BaseModel):
    """Aggregated result of ``HindexRouter.search``."""

    model_config = ConfigDict(frozen=True)

    query: str
    classification: str
    routing_mode: str | None = None
    count: int = 0
    results: list[SearchHit] = Field(default_factory=list)
    note: str | None = None
