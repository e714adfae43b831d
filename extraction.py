"""JSON extraction and validation for generator responses.

Models are asked for raw JSON but sometimes wrap it in prose or markdown
code fences. Parsing runs in two stages:

    1. parse_strict: the whole response is JSON.
    2. extract_braced: the first balanced {...} block in the response,
       found with a string-aware brace scan. If that block never closes,
       the span from the first '{' to the last '}' is tried instead.

Validation is structural: the payload must be an object with a `stories`
list. Story fields are passed through untouched unless strict mode is on,
in which case stories must be objects and their category, region and
urgency must come from the closed enumerations.
"""

import json
import logging
from typing import Any

from errors import InvalidSchemaError, MalformedJsonError
from models.story import Story

logger = logging.getLogger(__name__)


def parse_strict(text: str) -> Any:
    """Parse the full text as JSON.

    Raises:
        json.JSONDecodeError: If the text is not a JSON document
    """
    return json.loads(text)


def extract_braced(text: str) -> str | None:
    """Return the first balanced {...} substring of text, or None.

    Braces inside JSON string literals are ignored. When the first '{' is
    never closed, falls back to the widest '{' ... '}' span.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    end = text.rfind("}")
    if end > start:
        return text[start:end + 1]
    return None


def parse_json_payload(text: str) -> Any:
    """Parse a generator response using the two-stage strategy.

    Raises:
        MalformedJsonError: If neither stage yields valid JSON
    """
    try:
        return parse_strict(text)
    except json.JSONDecodeError as strict_error:
        candidate = extract_braced(text)
        if candidate is None:
            raise MalformedJsonError(text, strict_error) from strict_error
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise MalformedJsonError(text, e) from e
        logger.debug("Recovered embedded JSON | offset=%d chars=%d", text.find(candidate), len(candidate))
        return payload


def validate_structure(payload: Any, strict: bool = False) -> dict[str, Any]:
    """Check that a parsed payload has the digest structure.

    Args:
        payload: Parsed JSON value
        strict: Also reject stories outside the closed enumerations

    Returns:
        The payload, unchanged

    Raises:
        InvalidSchemaError: If the structure is wrong
    """
    if not isinstance(payload, dict):
        raise InvalidSchemaError(f"Expected a JSON object, got {type(payload).__name__}")

    stories = payload.get("stories")
    if not isinstance(stories, list):
        raise InvalidSchemaError("Payload has no 'stories' list")

    if strict:
        for index, raw in enumerate(stories):
            if not isinstance(raw, dict):
                raise InvalidSchemaError(f"Story {index} is not an object")
            unknown = Story.model_validate(raw).unknown_fields()
            if unknown:
                raise InvalidSchemaError(f"Story {index} has unknown values: {unknown}")
    else:
        for index, raw in enumerate(stories):
            if isinstance(raw, dict) and (unknown := Story.model_validate(raw).unknown_fields()):
                logger.debug("Story outside enumerations | index=%d fields=%s", index, unknown)

    return payload
