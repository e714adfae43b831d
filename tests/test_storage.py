from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_payload
from storage import read_digest, write_digest


def test_write_then_read(tmp_path: Path) -> None:
    path = tmp_path / "public" / "news.json"
    digest = make_payload(5)
    digest["stories"][0]["headline"] = "Café talks résumé"

    write_digest(path, digest)

    assert read_digest(path) == digest
    assert "Café talks résumé" in path.read_text(encoding="utf-8")


def test_write_fully_overwrites(tmp_path: Path) -> None:
    path = tmp_path / "news.json"
    write_digest(path, {**make_payload(5), "extra": "old"})
    write_digest(path, make_payload(1))

    assert read_digest(path) == make_payload(1)
    assert [p.name for p in tmp_path.iterdir()] == ["news.json"]


def test_failed_write_keeps_previous_artifact(tmp_path: Path) -> None:
    path = tmp_path / "news.json"
    write_digest(path, make_payload(5))

    with pytest.raises(TypeError):
        write_digest(path, {"stories": [object()]})

    assert read_digest(path) == make_payload(5)
    assert [p.name for p in tmp_path.iterdir()] == ["news.json"]


@pytest.mark.parametrize("content", ["", "{broken", json.dumps(["list"])])
def test_read_invalid_artifact_returns_none(tmp_path: Path, content: str) -> None:
    path = tmp_path / "news.json"
    path.write_text(content, encoding="utf-8")
    assert read_digest(path) is None


def test_read_missing_artifact(tmp_path: Path) -> None:
    assert read_digest(tmp_path / "news.json") is None
