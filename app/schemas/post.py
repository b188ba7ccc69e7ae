"""Pydantic schemas for post requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.utils.field_update import FieldUpdate


class ContentSectionIn(BaseModel):
    """A body section supplied by the client; list position is its display order."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field("", description="Section body (Markdown).")
    points: list[str] = Field(default_factory=list, description="Key points, in order.")
    examples: list[str] = Field(default_factory=list, description="Worked examples, in order.")


class ResourceIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    type: str = Field("link", max_length=50, description="e.g. article, video, repo")


class PostCreate(BaseModel):
    """Body of ``POST /posts``."""

    title: str = Field(..., description="Post title; also the slug source when slug is omitted.")
    content: str = Field(..., description="Post body (Markdown).")
    slug: str | None = Field(
        None,
        description="Optional URL slug; derived from the title when omitted.",
    )
    description: str | None = Field(None, description="Short summary shown in listings.")
    tags: list[str] = Field(default_factory=list)
    is_published: bool = False
    sections: list[ContentSectionIn] = Field(default_factory=list)
    resources: list[ResourceIn] = Field(default_factory=list)


_NOT_NULLABLE = ("title", "content", "is_published")


class PostUpdate(BaseModel):
    """Body of ``PUT /posts/{slug}``.

    Omitted fields are left alone, ``null`` clears a field, a value replaces
    it. ``slug`` is not a field here: slugs never change after creation, so a
    slug in the payload is ignored.
    """

    title: str | None = None
    content: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    is_published: bool | None = None
    sections: list[ContentSectionIn] | None = None
    resources: list[ResourceIn] | None = None

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> PostUpdate:
        for name in _NOT_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_patch(self) -> PostPatch:
        return PostPatch(
            title=FieldUpdate.from_model(self, "title"),
            content=FieldUpdate.from_model(self, "content"),
            description=FieldUpdate.from_model(self, "description"),
            tags=FieldUpdate.from_model(self, "tags"),
            is_published=FieldUpdate.from_model(self, "is_published"),
            sections=FieldUpdate.from_model(self, "sections"),
            resources=FieldUpdate.from_model(self, "resources"),
        )


@dataclass(frozen=True)
class PostPatch:
    """Per-attribute update instructions consumed by ``PostStore.update``."""

    title: FieldUpdate[str] = field(default_factory=FieldUpdate)
    content: FieldUpdate[str] = field(default_factory=FieldUpdate)
    description: FieldUpdate[str] = field(default_factory=FieldUpdate)
    tags: FieldUpdate[list[str]] = field(default_factory=FieldUpdate)
    is_published: FieldUpdate[bool] = field(default_factory=FieldUpdate)
    sections: FieldUpdate[list[ContentSectionIn]] = field(default_factory=FieldUpdate)
    resources: FieldUpdate[list[ResourceIn]] = field(default_factory=FieldUpdate)

    def is_empty(self) -> bool:
        return all(
            getattr(self, name).is_unset
            for name in (
                "title",
                "content",
                "description",
                "tags",
                "is_published",
                "sections",
                "resources",
            )
        )


class ContentSectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    content: str
    points: list[str]
    examples: list[str]
    display_order: int


class ResourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    url: str
    type: str


class PostResponse(BaseModel):
    """A fully materialised post, children included."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    title: str
    content: str
    description: str | None = None
    tags: list[str]
    is_published: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    sections: list[ContentSectionOut] = Field(default_factory=list)
    resources: list[ResourceOut] = Field(default_factory=list)
