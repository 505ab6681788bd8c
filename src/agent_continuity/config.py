"""Runtime configuration dataclasses.

Mirrors the ``agents.defaults`` block of CONFIG.yaml. Only the fields this
package consumes (or hands to the prompt templating collaborator) are
modelled; everything else in the file is ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _as_dict(data: Any) -> Mapping:
    return data if isinstance(data, Mapping) else {}


def _get(data: Mapping, *keys: str, default: Any = None) -> Any:
    """First present key wins. Accepts snake_case and camelCase spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class MemoryFlushConfig:
    """Raw ``compaction.memory_flush`` block. Unset fields stay ``None``."""

    enabled: bool = True
    mode: str | None = None
    context_token_limit: Any = None
    soft_threshold_tokens: Any = None
    reserve_tokens_floor: Any = None
    prompt: str | None = None
    system_prompt: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> MemoryFlushConfig:
        d = _as_dict(data)
        return cls(
            enabled=_get(d, "enabled", default=True) is not False,
            mode=_get(d, "mode"),
            context_token_limit=_get(d, "context_token_limit", "contextTokenLimit"),
            soft_threshold_tokens=_get(d, "soft_threshold_tokens", "softThresholdTokens"),
            reserve_tokens_floor=_get(d, "reserve_tokens_floor", "reserveTokensFloor"),
            prompt=_get(d, "prompt"),
            system_prompt=_get(d, "system_prompt", "systemPrompt"),
        )


@dataclass
class CompactionConfig:
    """History compaction settings."""

    memory_flush: MemoryFlushConfig = field(default_factory=MemoryFlushConfig)

    @classmethod
    def from_dict(cls, data: Any) -> CompactionConfig:
        d = _as_dict(data)
        return cls(
            memory_flush=MemoryFlushConfig.from_dict(_get(d, "memory_flush", "memoryFlush")),
        )


@dataclass
class AgentDefaults:
    """``agents.defaults``. Timezone and time format are for prompt templating."""

    user_timezone: str = "UTC"
    time_format: str | None = None
    compaction: CompactionConfig = field(default_factory=CompactionConfig)

    @classmethod
    def from_dict(cls, data: Any) -> AgentDefaults:
        d = _as_dict(data)
        return cls(
            user_timezone=_get(d, "user_timezone", "userTimezone", default="UTC"),
            time_format=_get(d, "time_format", "timeFormat"),
            compaction=CompactionConfig.from_dict(d.get("compaction")),
        )


@dataclass
class RuntimeConfig:
    """Top-level configuration."""

    defaults: AgentDefaults = field(default_factory=AgentDefaults)

    @classmethod
    def from_dict(cls, data: Any) -> RuntimeConfig:
        """Build from a config dict, filling defaults for missing keys."""
        agents = _as_dict(_as_dict(data).get("agents"))
        return cls(defaults=AgentDefaults.from_dict(agents.get("defaults")))
