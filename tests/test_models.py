from __future__ import annotations

from datetime import datetime, timezone

from conftest import make_payload, make_story
from models import Digest, Story, parse_timestamp


def test_story_coerces_and_defaults_fields() -> None:
    story = Story.model_validate({"headline": 12, "category": None, "source_url": "kept"})
    assert story.headline == "12"
    assert story.category == ""
    assert story.summary == ""
    assert story.model_extra == {"source_url": "kept"}


def test_story_unknown_fields() -> None:
    assert Story.model_validate(make_story()).unknown_fields() == {}
    story = Story.model_validate(make_story(category="Sports", urgency="low"))
    assert story.unknown_fields() == {"category": "Sports", "urgency": "low"}


def test_digest_reads_camel_case_payload() -> None:
    payload = make_payload(3)
    payload.update({"updatedAt": "2026-10-16T06:00:00.000Z", "version": "1.0", "fallback": True})

    digest = Digest.from_payload(payload)

    assert digest.updated_at == "2026-10-16T06:00:00.000Z"
    assert digest.updated_at_datetime == datetime(2026, 10, 16, 6, tzinfo=timezone.utc)
    assert digest.fallback is True
    assert len(digest.stories) == 3


def test_digest_keeps_unknown_top_level_keys() -> None:
    payload = make_payload(1)
    payload.update({"updatedAt": "2026-10-16T06:00:00.000Z", "lang": "en"})

    digest = Digest.from_payload(payload)

    assert digest.model_extra == {"lang": "en"}
    assert digest.fallback is False
    assert digest.stories[0].headline == "Headline 1"


def test_digest_updated_at_datetime_missing_or_malformed() -> None:
    assert Digest.from_payload({}).updated_at_datetime is None
    assert Digest.from_payload({"updatedAt": "soon"}).updated_at_datetime is None


def test_digest_tolerates_malformed_documents() -> None:
    digest = Digest.from_payload({"stories": "none", "fallback": "yes", "date": 20261016})
    assert digest.stories == []
    assert digest.fallback is False
    assert digest.date == "20261016"


def test_parse_timestamp() -> None:
    assert parse_timestamp("2026-10-16T06:00:00Z") == datetime(2026, 10, 16, 6, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp("yesterday") is None
