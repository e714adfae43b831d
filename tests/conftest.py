"""Shared fixtures for the digest test suite."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from config import Config


T0 = datetime(2026, 10, 16, 6, 0, 0, tzinfo=timezone.utc)


def make_story(index: int = 1, **overrides: Any) -> dict[str, Any]:
    story = {
        "headline": f"Headline {index}",
        "summary": f"Summary of story {index}.",
        "category": "World",
        "region": "Global",
        "urgency": "high",
    }
    story.update(overrides)
    return story


def make_payload(count: int = 5, date: str = "2026-10-16") -> dict[str, Any]:
    return {"date": date, "stories": [make_story(i) for i in range(1, count + 1)]}


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class StubGenerator:
    """Text generator returning canned responses (or raising them)."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        news_file=tmp_path / "news.json",
        cache_path=tmp_path / "cache" / "news_cache.json",
        log_dir=tmp_path / "log",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))
