"""News digest document model.

The digest is the JSON artifact shared by the producer and the consumer:

    {
      "date": "2026-10-16",
      "updatedAt": "2026-10-16T06:00:00+00:00",
      "version": "1.0",
      "source": "Gemini AI",
      "stories": [{"headline": ..., "summary": ..., ...}],
      "fallback": true            # only on republished digests
    }

The producer manipulates the document as a plain dict so that unknown keys
and malformed story fields pass through byte-for-byte. `Digest` is the typed
view used for rendering.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.story import Story


class Digest(BaseModel):
    """Typed, lenient view over a digest document.

    Attributes:
        date: Calendar date (YYYY-MM-DD) the stories pertain to
        updated_at: ISO 8601 timestamp of the last write (JSON key 'updatedAt')
        version: Free-form provenance string
        source: Free-form provenance string
        stories: Ordered stories (any length)
        fallback: True when the producer republished previous content
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date: str = ""
    updated_at: str = Field(default="", alias="updatedAt")
    version: str = ""
    source: str = ""
    stories: list[Story] = Field(default_factory=list)
    fallback: bool = False

    @field_validator("date", "updated_at", "version", "source", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("stories", mode="before")
    @classmethod
    def _coerce_stories(cls, value: Any) -> list[Any]:
        # Non-object entries cannot be rendered as stories
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("fallback", mode="before")
    @classmethod
    def _coerce_fallback(cls, value: Any) -> bool:
        return value is True

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Digest":
        """Build a Digest from a raw JSON document."""
        return cls.model_validate(payload)

    @property
    def updated_at_datetime(self) -> datetime | None:
        """Parse updatedAt, or None if missing or malformed."""
        return parse_timestamp(self.updated_at)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp, accepting a trailing 'Z'."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
