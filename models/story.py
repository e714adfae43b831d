"""Story data model and the closed enumerations stories are prompted with.

Category Design:
    The generator is asked to pick every category/region/urgency from the
    enums below, but the digest contract does not reject other values. The
    Story model therefore keeps those fields as plain strings; use
    `unknown_fields()` to find values outside the enumerations (strict
    validation mode does exactly that).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Topic of a story."""

    POLITICS = "Politics"
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    SCIENCE = "Science"
    HEALTH = "Health"
    WORLD = "World"


class Region(str, Enum):
    """Geographic focus of a story."""

    GLOBAL = "Global"
    US = "US"
    EUROPE = "Europe"
    ASIA = "Asia"
    AFRICA = "Africa"
    AMERICAS = "Americas"
    MIDDLE_EAST = "Middle East"


class Urgency(str, Enum):
    """How time-critical a story is."""

    BREAKING = "breaking"
    HIGH = "high"
    MEDIUM = "medium"


# Enum-constrained story fields and their allowed values
STORY_ENUMS: dict[str, type[Enum]] = {
    "category": Category,
    "region": Region,
    "urgency": Urgency,
}


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Return the string values of an enum, in declaration order."""
    return [member.value for member in enum_cls]


class Story(BaseModel):
    """One news item in a digest.

    Text fields are coerced to strings for display; missing optional fields
    default to "" so renderers never need to special-case them.

    Attributes:
        headline: Plain-text headline (~80 chars)
        summary: Plain-text summary (~150 chars)
        category: Category value, ideally one of Category
        region: Region value, ideally one of Region
        urgency: Urgency value, ideally one of Urgency
    """

    model_config = ConfigDict(extra="allow")

    headline: str = Field(default="", description="Headline, under 80 characters")
    summary: str = Field(default="", description="1-2 sentence summary, under 150 characters")
    category: str = Field(default="", description="One of the Category values")
    region: str = Field(default="", description="One of the Region values")
    urgency: str = Field(default="", description="One of the Urgency values")

    @field_validator("headline", "summary", "category", "region", "urgency", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    def unknown_fields(self) -> dict[str, str]:
        """Return enum-constrained fields whose values fall outside their enum."""
        unknown = {}
        for name, enum_cls in STORY_ENUMS.items():
            value = getattr(self, name)
            if value not in enum_values(enum_cls):
                unknown[name] = value
        return unknown

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"Story('{self.headline[:50]}', {self.category or '-'}/{self.region or '-'})"
