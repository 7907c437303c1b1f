"""Request schemas for the autodesc API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Payload sent by an editor integration."""

    content: str = Field(
        ...,
        max_length=200_000,
        description="Full text of the document, including any existing front matter.",
    )
    category: str | None = Field(
        default=None,
        description="Category to write. Created in the configured list when new. Omit to skip.",
    )
    tags: list[str] | None = Field(
        default=None,
        description="Subset of generated tags to keep when tag review is enabled.",
    )


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
