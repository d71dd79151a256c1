"""Jinja2 template filters and environment setup."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates" / "html"


def section_title(key: str) -> str:
    """Title for a section without a dedicated layout: "awards" -> "Awards"."""
    if not key:
        return ""
    return key[0].upper() + key[1:]


def css_slug(key: str) -> str:
    """Reduce a section key to a safe CSS class fragment."""
    slug = re.sub(r"[^a-z0-9_-]+", "-", str(key).lower()).strip("-")
    return slug or "section"


def compact_json(value: Any) -> str:
    """Serialize a raw section value the way JSON.stringify would."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def date_range(start: Any, end: Any, ongoing: str = "") -> str:
    """Format "start - end"; an empty end becomes ``ongoing``."""
    start = "" if start is None else str(start)
    end = "" if end is None else str(end)
    return f"{start} - {end or ongoing}"


def setup_jinja_env() -> Environment:
    """Create and configure the Jinja2 template environment.

    Autoescaping is on: every value interpolated from caller data is
    HTML-escaped before it reaches the markup.
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["section_title"] = section_title
    env.filters["css_slug"] = css_slug
    env.filters["compact_json"] = compact_json
    env.filters["date_range"] = date_range
    return env
