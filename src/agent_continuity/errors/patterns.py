"""Case-insensitive text matching over raw upstream error payloads."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any, Union

# A string is a substring test, a compiled regex is searched, and a tuple
# matches only when every member matches (checked independently).
Pattern = Union[str, re.Pattern, tuple]


def _compact_json(value: Any) -> str | None:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        return None


def normalize_error_text(raw: Any) -> list[str]:
    """Return the lowercased forms of *raw* worth matching against.

    Plain strings yield themselves. A string that parses as a JSON object or
    array also yields its compact re-serialization, so ``{ "status" : 402 }``
    and ``{"status":402}`` look the same to patterns. Already-parsed dicts
    and lists are serialized the same way. Empty or unusable input yields
    nothing; JSON too deep to decode is matched as plain text.
    """
    if raw is None:
        return []
    if isinstance(raw, (dict, list)):
        dumped = _compact_json(raw)
        return [dumped.lower()] if dumped else []
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raw = str(raw)

    text = raw.strip()
    if not text:
        return []
    forms = [text.lower()]
    if text[0] in "{[" and text[-1] in "}]":
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError):
            parsed = None
        if isinstance(parsed, (dict, list)):
            dumped = _compact_json(parsed)
            if dumped and dumped.lower() not in forms:
                forms.append(dumped.lower())
    return forms


def _matches(form: str, pattern: Pattern) -> bool:
    if isinstance(pattern, tuple):
        return all(_matches(form, p) for p in pattern)
    if isinstance(pattern, str):
        return pattern.lower() in form
    return pattern.search(form) is not None


def matches_forms(forms: list[str], patterns: Iterable[Pattern]) -> bool:
    """True if any already-normalized form matches any pattern."""
    patterns = list(patterns)
    return any(_matches(form, p) for form in forms for p in patterns)


def matches_any(text: Any, patterns: Iterable[Pattern]) -> bool:
    """True if any normalized form of *text* contains or matches any pattern.

    String patterns are case-insensitive substrings. Compiled regexes are
    searched against the lowercased text, so they should be written in
    lowercase or carry ``re.IGNORECASE``.
    """
    return matches_forms(normalize_error_text(text), patterns)
