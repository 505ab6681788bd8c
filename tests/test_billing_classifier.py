"""Tests for billing error classification."""

from __future__ import annotations

import time

from agent_continuity.errors.classifier import (
    classify_failure,
    is_billing_error_message,
    is_http_402_status,
    match_billing_rule,
)
from agent_continuity.errors.types import FailureKind

BILLING_SAMPLES = [
    "Your credit balance is too low to access the Anthropic API.",
    "insufficient credits",
    "Payment Required",
    "HTTP 402 Payment Required",
    "plans & billing",
    "status: 402",
    "error code 402",
    '{"status":402,"type":"error"}',
]

REAL_402_ERRORS = [
    "HTTP 402 Payment Required",
    "status: 402",
    "error code 402",
    "http 402",
    "status=402 payment required",
    "got a 402 from the API",
    "returned 402",
    "received a 402 response",
    '{"status":402,"type":"error"}',
    '{"code":402,"message":"payment required"}',
    '{"error":{"code":402,"message":"billing hard limit reached"}}',
]

INCIDENTAL_402 = [
    "Fixed issue CHE-402 in the latest release",
    "See ticket #402 for details",
    "ISSUE-402 has been resolved",
    "Room 402 is available",
    "#402 ticket",
    "Error code 403 was returned, not 402-related",
    "The building at 402 Main Street",
    "processed 402 records",
    "402 items found in the database",
    "port 402 is open",
    "Use a 402 stainless bolt",
    "Book a 402 room",
    "There is a 402 near me",
    "Query returned 402 records",
    "got 402 items from the database",
    "received 402 rows",
    "status: 402 results",
    "402",
]


def test_matches_credit_and_payment_failures() -> None:
    for sample in BILLING_SAMPLES:
        assert is_billing_error_message(sample) is True, sample


def test_ignores_unrelated_errors() -> None:
    for sample in ["rate limit exceeded", "invalid api key", "timeout", "", None]:
        assert is_billing_error_message(sample) is False, sample


def test_matches_real_http_402_errors() -> None:
    for sample in REAL_402_ERRORS:
        assert is_billing_error_message(sample) is True, sample


def test_incidental_402_is_not_billing() -> None:
    for sample in INCIDENTAL_402:
        assert is_billing_error_message(sample) is False, sample
        assert is_http_402_status(sample) is False, sample


def test_overflow_and_billing_are_distinguished() -> None:
    overflow = [
        "Request exceeds the maximum size limit. Context overflow.",
        "Prompt length exceeded: 130000 tokens, max is 128000",
        "Context window exceeded error: model can only accept 8192 tokens",
    ]
    billing = [
        "Error 402: insufficient credits to run model",
        "HTTP 402 Payment Required: your billing plan has been exhausted",
    ]
    for sample in overflow:
        assert is_billing_error_message(sample) is False, sample
    for sample in billing:
        assert is_billing_error_message(sample) is True, sample


def test_status_window_variants() -> None:
    assert is_http_402_status("HTTP/1.1 402") is True
    assert is_http_402_status("status code 402") is True
    assert is_http_402_status("code: 402") is True
    assert is_http_402_status('{"status_code": "402"}') is True
    assert is_http_402_status('{ "status" : 402 }') is True
    assert is_http_402_status("upstream said 402 - payment required") is True
    assert is_http_402_status("zip code 402") is False
    assert is_http_402_status("status: 4021") is False
    assert is_http_402_status("status: 1402") is False


def test_parsed_payload_accepted() -> None:
    assert is_billing_error_message({"error": {"status": 402}}) is True
    assert is_billing_error_message({"error": {"count": 402}}) is False


def test_rule_names() -> None:
    assert match_billing_rule("Your credit balance is too low") == "credit_balance"
    assert match_billing_rule("insufficient_credits") == "insufficient_credits"
    assert match_billing_rule("payment_required") == "payment_required"
    assert match_billing_rule("Visit Plans and Billing") == "plans_and_billing"
    assert match_billing_rule("you have reached your billing hard limit") == "billing_hard_limit"
    assert match_billing_rule("This request requires more credits") == "more_credits"
    assert match_billing_rule("You can only afford 100 tokens") == "can_only_afford"
    assert match_billing_rule("received a 402") == "http_402_status"
    assert match_billing_rule("context overflow, payment required") is None


def test_classify_failure() -> None:
    assert classify_failure("context length exceeded") is FailureKind.CONTEXT_OVERFLOW
    assert classify_failure("HTTP 402: prompt is too long") is FailureKind.CONTEXT_OVERFLOW
    assert classify_failure("HTTP 402 Payment Required") is FailureKind.BILLING
    assert classify_failure("Room 402 is available") is FailureKind.OTHER
    assert classify_failure(None) is FailureKind.OTHER


def test_status_verb_with_count_noun_is_not_billing() -> None:
    assert is_http_402_status("Query returned 402 records") is False
    assert is_http_402_status("returned 402 payment required") is True
    assert is_http_402_status("returned 402 response") is True


def test_malformed_and_nested_input_never_raises() -> None:
    samples = [
        "[" * 50_000 + "]" * 50_000,
        "{" * 50_000 + "}" * 50_000,
        '{"status": 402' + "," * 10_000,
        '{"status":402,"nested":' + "[" * 50_000 + "]" * 50_000 + "}",
    ]
    for sample in samples:
        assert classify_failure(sample) in set(FailureKind)
        assert isinstance(is_billing_error_message(sample), bool)


def test_large_repetitive_text_is_classified_quickly() -> None:
    samples = [
        "billing " * 20_000,
        "hard limit " * 20_000,
        "plan " * 20_000,
        "1" * 40_000,
        "1," * 40_000,
        "402 " * 20_000,
        "returned " * 20_000,
        "request " * 20_000,
        "tokens " * 20_000,
        "a" * 200_000,
    ]
    for sample in samples:
        start = time.perf_counter()
        classify_failure(sample)
        is_billing_error_message(sample)
        assert time.perf_counter() - start < 2.0, sample[:20]
