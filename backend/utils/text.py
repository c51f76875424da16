"""
Small text helpers shared by the project routes and the importer.
"""

import json
import re
from typing import Any, List

_WHITESPACE_RUN = re.compile(r"\s+")
_SLUG_DISALLOWED = re.compile(r"[^a-z0-9\-_]")
_TOKEN_SEPARATORS = re.compile(r"[,|\n]+")


def slugify(value: Any) -> str:
    """
    Lowercase, turn whitespace runs into one hyphen, drop anything outside [a-z0-9-_].

    Applying it twice gives the same result as applying it once.
    """
    text = "" if value is None else str(value)
    text = text.lower()
    text = _WHITESPACE_RUN.sub("-", text)
    return _SLUG_DISALLOWED.sub("", text)


def split_tokens(value: Any) -> List[str]:
    """Split a comma/pipe/newline delimited cell into trimmed, non-empty tokens."""
    if value is None:
        return []
    parts = _TOKEN_SEPARATORS.split(str(value))
    return [p.strip() for p in parts if p.strip()]


def coerce_string_list(value: Any) -> List[str]:
    """
    Turn a list cell into a list of strings.

    Accepts a real list, a JSON array string or a delimited string. Anything else
    (numbers, dicts, empty values) yields an empty list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return coerce_string_list(parsed)
        return split_tokens(stripped)
    return []


def parse_configurations(value: Any) -> List[Any]:
    """
    Structured text is parsed as JSON; on failure the cell falls back to a flat
    delimited list. A non-string, non-list value gives an empty list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, str):
        return []
    stripped = value.strip()
    if not stripped:
        return []
    try:
        parsed = json.loads(stripped)
    except ValueError:
        return split_tokens(stripped)
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        return [parsed]
    return split_tokens(stripped)


def normalize_phone(phone: Any) -> str:
    """Keep a leading '+' if present and drop every other non-digit."""
    if not phone:
        return ""
    s = str(phone).strip()
    digits = re.sub(r"\D", "", s)
    return f"+{digits}" if s.startswith("+") else digits


def digits_only(value: Any) -> str:
    return re.sub(r"\D", "", str(value or ""))
