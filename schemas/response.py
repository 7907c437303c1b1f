"""Result and response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ── Generation ─────────────────────────────────────────────────────────

class GenerationResult(BaseModel):
    """Everything one invocation produces for the front matter."""

    description: str = ""
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list, max_length=1)


class GenerationOutcome(BaseModel):
    ok: bool
    result: GenerationResult | None = None
    error: str | None = None
    error_kind: str | None = Field(
        default=None, description="precondition | configuration | upstream | io"
    )
    content: str | None = Field(default=None, description="New document text on success.")


# ── HTTP ───────────────────────────────────────────────────────────────

class GenerateResponse(BaseModel):
    content: str
    description: str
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class CategoriesResponse(BaseModel):
    categories: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
