"""Memory flush data types."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryFlushMode(str, Enum):
    """Which trigger policy decides when a memory flush runs."""

    RESERVE_BASED = "reserve-based"
    TOKEN_LIMIT = "token-limit"

    @classmethod
    def parse(cls, value: Any) -> MemoryFlushMode:
        """Map a configured value to a mode. Anything unknown is reserve-based."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.RESERVE_BASED


class UsageEntry(BaseModel):
    """Per-run token accounting, owned and updated by the orchestrator."""

    model_config = ConfigDict(populate_by_name=True)

    total_tokens: int | None = Field(default=None, alias="totalTokens")
    compaction_count: int = Field(default=0, alias="compactionCount")
    memory_flush_compaction_count: int | None = Field(
        default=None, alias="memoryFlushCompactionCount"
    )


class MemoryFlushSettings(BaseModel):
    """Resolved memory flush configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    mode: MemoryFlushMode = MemoryFlushMode.RESERVE_BASED
    context_token_limit: int | None = None
    soft_threshold_tokens: int
    reserve_tokens_floor: int
    prompt: str
    system_prompt: str
