"""Failure classification types."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Category of an upstream inference failure."""

    BILLING = "billing"
    CONTEXT_OVERFLOW = "context_overflow"
    OTHER = "other"
