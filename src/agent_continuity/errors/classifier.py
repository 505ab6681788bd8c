"""Classify raw upstream inference errors as billing or context-overflow failures.

The two categories are mutually exclusive. Overflow is checked first and
wins, because both kinds of provider message can mention 402 and talk
about limits, and retrying an oversized prompt never succeeds.

Rules are kept as small named tables so each one can be tested and
audited on its own.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .patterns import Pattern, matches_forms, normalize_error_text
from .types import FailureKind

log = logging.getLogger(__name__)

_OVERFLOW_RULES: tuple[tuple[str, tuple[Pattern, ...]], ...] = (
    ("context_overflow", ("context overflow",)),
    ("context_length_exceeded", (re.compile(r"context[ _]length[ _]exceeded"),)),
    ("maximum_context_length", ("maximum context length",)),
    ("prompt_too_long", (re.compile(r"prompt (?:is )?too long"),)),
    ("too_large", ("too large", "request_too_large")),
    (
        "exceeds_context_window",
        (re.compile(r"exceed(?:s|ed)? (?:the )?(?:model(?:'s)? )?(?:maximum )?context"),),
    ),
    (
        "window_or_length_exceeded",
        (re.compile(r"\b(?:context|prompt|input|request)[ _](?:length|window|size)[ _]exceeded\b"),),
    ),
    (
        "exceeds_maximum_size",
        (re.compile(r"\b(?:request|prompt|input|payload)\b[\w ]{0,20}?\bexceeds? (?:the )?max(?:imum)?\b"),),
    ),
    (
        "tokens_over_max",
        (re.compile(r"(?<![\d,])\d[\d,]*\s*tokens?\b[^.\n]{0,20}?\bmax(?:imum)?(?: is| of|:)?\s*\d"),),
    ),
    ("model_token_cap", (re.compile(r"can only (?:accept|handle|process) \d[\d,]* tokens"),)),
    ("input_tokens_exceed_limit", ("input tokens exceed the configured limit",)),
)

# Keyword pairs are checked separately so either order matches in linear time.
_BILLING_WORD = re.compile(r"\bbilling\b")

_BILLING_RULES: tuple[tuple[str, tuple[Pattern, ...]], ...] = (
    ("credit_balance", ("credit balance",)),
    ("insufficient_credits", (re.compile(r"insufficient[ _]credit"),)),
    ("payment_required", (re.compile(r"payment[ _]required"),)),
    ("plans_and_billing", (re.compile(r"plans? (?:&|and) billing"),)),
    (
        "billing_plan",
        ((_BILLING_WORD, re.compile(r"\bplans?\b")),),
    ),
    (
        "billing_hard_limit",
        ((_BILLING_WORD, re.compile(r"\bhard limit\b")),),
    ),
    ("more_credits", (re.compile(r"(?:requires|add) more credits"),)),
    ("can_only_afford", ("can only afford",)),
)

# A bare 402 with no digit, word or hyphen glued to either side.
_NUMERAL_402 = re.compile(r"(?<![\w-])402(?![\w-])")

_STATUS_WINDOW = 24

# Must end exactly where the numeral starts, so "returned, not 402" fails.
_STATUS_PREFIX = re.compile(
    r"(?:"
    r"\bhttp(?:/\d(?:\.\d)?)?"
    r"|\bstatus(?:[ _]?code)?"
    r"|\berror(?:[ _]?code)?"
    r"|\b(?:got|received|returned)(?: an?)?"
    r")[\s:=]*$"
    r"|\bcode\s*[:=]\s*$"
    r'|"(?:status|code|status_?code|statuscode)"\s*:\s*"?$'
)

_STATUS_SUFFIX = re.compile(r"^[\s:-]*payment required")

# A count or identifier noun right after the numeral ("returned 402 records")
# vetoes a status keyword before it.
_COUNT_NOUN_SUFFIX = re.compile(
    r"^\s*(?:records?|items?|rows?|results?|entries|entry|files?|lines?|bytes?"
    r"|messages?|users?|documents?|matches|hits|objects?|tokens?|times"
    r"|tickets?|issues?|rooms?|ports?|bolts?|main|street|near me)\b"
)

_RuleTable = tuple[tuple[str, tuple[Pattern, ...]], ...]


def _first_rule(forms: list[str], rules: _RuleTable) -> str | None:
    for name, patterns in rules:
        if matches_forms(forms, patterns):
            return name
    return None


def _has_402_status(forms: list[str]) -> bool:
    for form in forms:
        for m in _NUMERAL_402.finditer(form):
            before = form[max(0, m.start() - _STATUS_WINDOW):m.start()]
            after = form[m.end():m.end() + _STATUS_WINDOW]
            if _STATUS_SUFFIX.match(after):
                return True
            if _STATUS_PREFIX.search(before) and not _COUNT_NOUN_SUFFIX.match(after):
                return True
    return False


def _billing_rule(forms: list[str]) -> str | None:
    if _first_rule(forms, _OVERFLOW_RULES):
        return None
    rule = _first_rule(forms, _BILLING_RULES)
    if rule:
        return rule
    if _has_402_status(forms):
        return "http_402_status"
    return None


def is_http_402_status(text: Any) -> bool:
    """True if 402 appears in *text* as an HTTP/error status, not an incidental number.

    Looks at a short window on each side of every standalone ``402``. The
    text just before it must end in a status keyword (``http``, ``status``,
    ``error code``, ``code:``, ``got a``, ``returned`` ...) or a JSON
    ``"status"``/``"code"`` key and must not be followed by a count noun
    (``records``, ``items`` ...), or the text right after it must read
    ``payment required``. Ticket numbers, room numbers, ports, counts and
    street addresses fail both.
    """
    return _has_402_status(normalize_error_text(text))


def match_overflow_rule(text: Any) -> str | None:
    """Name of the first context-overflow rule matching *text*, or None."""
    return _first_rule(normalize_error_text(text), _OVERFLOW_RULES)


def is_context_overflow_error(text: Any) -> bool:
    """True if *text* says the prompt/context/request exceeds the model's window."""
    rule = match_overflow_rule(text)
    if rule:
        log.debug("Context overflow detected (rule=%s).", rule)
    return rule is not None


def match_billing_rule(text: Any) -> str | None:
    """Name of the billing rule matching *text*, or None.

    Returns None for anything that is a context overflow, whatever else the
    text contains.
    """
    return _billing_rule(normalize_error_text(text))


def is_billing_error_message(text: Any) -> bool:
    """True if *text* is a billing/payment failure (out of credit, payment required)."""
    rule = match_billing_rule(text)
    if rule:
        log.debug("Billing error detected (rule=%s).", rule)
    return rule is not None


def classify_failure(text: Any) -> FailureKind:
    """Bucket an upstream error for the retry/abort decision."""
    forms = normalize_error_text(text)
    overflow = _first_rule(forms, _OVERFLOW_RULES)
    if overflow:
        log.debug("Context overflow detected (rule=%s).", overflow)
        return FailureKind.CONTEXT_OVERFLOW
    billing = _billing_rule(forms)
    if billing:
        log.debug("Billing error detected (rule=%s).", billing)
        return FailureKind.BILLING
    return FailureKind.OTHER
