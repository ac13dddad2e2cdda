"""
Journal entry request / response schemas.

POST  /entries        → EntryCreateRequest → EntryResponse
GET   /entries        → EntryListResponse
GET   /entries/{id}   → EntryResponse
PATCH /entries/{id}   → EntryUpdateRequest → EntryResponse
"""
from __future__ import annotations

import re
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENTRY_MIN_LENGTH = 10
ENTRY_MAX_LENGTH = 10_000

# Control characters except \t, \n and \r.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_entry_content(content: str) -> str:
    """Trim, drop control characters and normalize line endings to \\n."""
    if not content:
        return ""
    cleaned = _CONTROL_CHARS_RE.sub("", content.strip())
    return cleaned.replace("\r\n", "\n").replace("\r", "\n")


class _EntryContent(BaseModel):
    content: Annotated[str, Field(
        min_length=ENTRY_MIN_LENGTH,
        max_length=ENTRY_MAX_LENGTH,
        description=(
            f"Entry text ({ENTRY_MIN_LENGTH}–{ENTRY_MAX_LENGTH:,} characters after trimming). "
            "Control characters are removed and line endings normalized."
        ),
        examples=["Went for a long walk after work and finally felt my shoulders drop."],
    )]

    @field_validator("content", mode="before")
    @classmethod
    def sanitize_and_check_empty(cls, v: str) -> str:
        if not isinstance(v, str):
            return v
        cleaned = sanitize_entry_content(v)
        if not cleaned:
            raise ValueError("Entry content cannot be empty")
        return cleaned


class EntryCreateRequest(_EntryContent):
    """A new journal entry for the authenticated user."""


class EntryUpdateRequest(_EntryContent):
    """Replacement content for an existing entry."""


class EntryResponse(BaseModel):
    """A stored journal entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Opaque entry id.")
    content: str = Field(description="Sanitized entry text as stored.")
    created_at: str = Field(description="UTC timestamp of creation (ISO 8601).")
    updated_at: Optional[str] = Field(
        default=None,
        description="UTC timestamp of the last edit, if any.",
    )


class EntryListResponse(BaseModel):
    """Paginated list of the user's entries, newest first."""
    total: int
    items: list[EntryResponse]
