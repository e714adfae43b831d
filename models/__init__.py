"""Pydantic models for the news digest.

Story:
    One news item (headline, summary, category, region, urgency).

Category, Region, Urgency:
    Closed enumerations the generator is prompted to choose from.

Digest:
    Lenient typed view over the published JSON document.

Example:
    >>> from models import Digest
    >>> digest = Digest.from_payload({"date": "2026-10-16", "stories": []})
"""

from models.story import Story, Category, Region, Urgency, STORY_ENUMS, enum_values
from models.digest import Digest, parse_timestamp

__all__ = [
    "Story",
    "Category",
    "Region",
    "Urgency",
    "STORY_ENUMS",
    "enum_values",
    "Digest",
    "parse_timestamp",
]
