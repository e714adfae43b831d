"""Rendering of a digest for the popup (HTML) and the terminal (text).

All story text is untrusted model output. Every value that reaches the HTML
output goes through html.escape, including values used in class names, so a
headline like "<script>" is shown as literal text. Missing category,
region or urgency values render as a neutral badge instead of failing.
"""

import html
import re
from datetime import date, datetime, timezone
from typing import Any

from models.digest import Digest, parse_timestamp
from models.story import Story

_CLASS_TOKEN = re.compile(r"[^a-z0-9]+")
# Terminal control sequences (ANSI escapes start with ESC)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

EMPTY_MESSAGE = "No stories in today's digest."
ERROR_MESSAGE = "Unable to load news. Please check your connection."


def format_date(value: str) -> str:
    """Format an ISO date as e.g. 'Friday, October 16, 2026'.

    Unparseable input is returned unchanged.
    """
    try:
        parsed = date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return value
    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def format_relative_time(timestamp: str | datetime | None, now: datetime) -> str:
    """Describe how long ago timestamp was, relative to now.

    Accepts an ISO 8601 string or a parsed datetime. Returns 'Just now',
    'Nm ago', 'Nh ago' or 'Nd ago'; '' if the timestamp is missing or
    cannot be parsed.
    """
    moment = parse_timestamp(timestamp) if isinstance(timestamp, str) else timestamp
    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    seconds = max(0.0, (now - moment).total_seconds())
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{days}d ago"


def class_token(value: str) -> str:
    """Reduce a field value to a CSS class suffix ('' for blank values)."""
    return _CLASS_TOKEN.sub("-", value.lower()).strip("-")


def _esc(value: str) -> str:
    return html.escape(value, quote=True)


def _badge_class(prefix: str, value: str) -> str:
    token = class_token(value)
    return f"{prefix}-{token}" if token else f"{prefix}-neutral"


def render_story_html(story: Story, index: int) -> str:
    """Render one story card."""
    category_class = _badge_class("category", story.category)
    urgency_class = _badge_class("urgency", story.urgency)
    return "\n".join([
        f'<div class="news-card" data-index="{index}">',
        '  <div class="news-header">',
        "    <div>",
        f'      <span class="category-badge {_esc(category_class)}">{_esc(story.category)}</span>',
        f'      <span class="region-tag">{_esc(story.region)}</span>',
        f'      <span class="urgency-indicator {_esc(urgency_class)}"></span>',
        "    </div>",
        "  </div>",
        f'  <h3 class="news-headline">{_esc(story.headline)}</h3>',
        f'  <p class="news-summary">{_esc(story.summary)}</p>',
        "</div>",
    ])


def render_html(payload: dict[str, Any] | Digest, now: datetime) -> str:
    """Render a digest as an HTML fragment (header plus story cards).

    Args:
        payload: Digest document or model
        now: Render time used for the relative 'Updated' label
    """
    digest = payload if isinstance(payload, Digest) else Digest.from_payload(payload)
    updated = format_relative_time(digest.updated_at_datetime, now)

    lines = [
        '<header class="digest-header">',
        f'  <div id="dateDisplay">{_esc(format_date(digest.date))}</div>',
        f'  <div id="updateTime">Updated: {_esc(updated)}</div>' if updated else '  <div id="updateTime"></div>',
        "</header>",
        '<div id="newsContainer">',
    ]
    if digest.stories:
        lines.extend(render_story_html(story, i) for i, story in enumerate(digest.stories))
    else:
        lines.append(f'<p class="news-empty">{_esc(EMPTY_MESSAGE)}</p>')
    lines.append("</div>")
    return "\n".join(lines)


def render_error_html(message: str = ERROR_MESSAGE) -> str:
    """Render the retryable error state shown when no digest is available."""
    return "\n".join([
        '<div id="error" class="error-state">',
        f"  <p>{_esc(message)}</p>",
        '  <button id="retryBtn" type="button">Retry</button>',
        "</div>",
    ])


def _plain(value: str) -> str:
    return _CONTROL_CHARS.sub("", value)


def render_text(payload: dict[str, Any] | Digest, now: datetime) -> str:
    """Render a digest for a terminal, with control characters stripped."""
    digest = payload if isinstance(payload, Digest) else Digest.from_payload(payload)
    updated = format_relative_time(digest.updated_at_datetime, now)

    lines = [f"=== {_plain(format_date(digest.date)) or 'Daily News'} ==="]
    if updated:
        lines.append(f"Updated: {updated}")
    lines.append("")

    if not digest.stories:
        lines.append(EMPTY_MESSAGE)

    for i, story in enumerate(digest.stories, start=1):
        tags = " | ".join(_plain(tag) for tag in (story.category, story.region, story.urgency) if tag)
        lines.append(f"{i}. {_plain(story.headline) or 'Untitled'}")
        if tags:
            lines.append(f"   [{tags}]")
        if story.summary:
            lines.append(f"   {_plain(story.summary)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
