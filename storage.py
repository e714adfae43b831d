"""Reading and writing the published digest artifact.

The artifact is a single UTF-8 JSON file that is overwritten in place on
every run. Writes go to a temporary file in the same directory and are
moved over the target with os.replace, so readers never observe a
partially written document.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Serialize payload to path, replacing any existing file atomically.

    Raises:
        OSError: If the directory is not writable
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_digest(path: Path, digest: dict[str, Any]) -> None:
    """Publish a digest, fully overwriting the previous artifact."""
    write_json_atomic(path, digest)
    stories = digest.get("stories")
    logger.info(
        "Digest published | file=%s stories=%d fallback=%s",
        path, len(stories) if isinstance(stories, list) else 0, digest.get("fallback") is True,
    )


def read_digest(path: Path) -> dict[str, Any] | None:
    """Load the previously published digest.

    Returns:
        The digest document, or None if it is missing or unreadable
    """
    if not path.exists():
        logger.info("No previous digest | file=%s", path)
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Previous digest unreadable | file=%s error=%s", path, e)
        return None
    if not isinstance(payload, dict):
        logger.error("Previous digest is not an object | file=%s", path)
        return None
    return payload
