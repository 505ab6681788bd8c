"""Pre-compaction memory flush: decide when the agent must persist context before truncation."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from ..config import RuntimeConfig
from .types import MemoryFlushMode, MemoryFlushSettings, UsageEntry

log = logging.getLogger(__name__)

SILENT_TOKEN = "NO_REPLY"

DEFAULT_SOFT_THRESHOLD_TOKENS = 4000
DEFAULT_RESERVE_FLOOR_TOKENS = 20000

DEFAULT_FLUSH_PROMPT = (
    "Pre-compaction memory flush. "
    "Store durable memories now (use memory/YYYY-MM-DD.md; create memory/ if needed). "
    f"If nothing to store, reply with {SILENT_TOKEN}."
)

DEFAULT_FLUSH_SYSTEM_PROMPT = (
    "Pre-compaction memory flush turn. "
    "The session is near auto-compaction; capture durable memories to disk. "
    f"You may reply, but usually {SILENT_TOKEN} is correct."
)

_SILENT_HINT = f"If nothing to store, reply with {SILENT_TOKEN}."

_KNOWN_MODES = frozenset(m.value for m in MemoryFlushMode)


def _as_token_count(value: Any) -> int | None:
    """Return *value* as a non-negative int, or None if it is not a well-formed count."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value) if value >= 0 else None
    return None


def _positive_or_none(value: Any) -> int | None:
    count = _as_token_count(value)
    return count if count else None


def _text_or_default(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _ensure_silent_hint(prompt: str) -> str:
    if SILENT_TOKEN in prompt:
        return prompt
    return f"{prompt} {_SILENT_HINT}"


def _read_entry(entry: UsageEntry | Mapping[str, Any] | None) -> tuple[int | None, int, int | None]:
    """Pull (total, compaction count, last flush generation) out of any entry shape."""
    if isinstance(entry, UsageEntry):
        raw = (entry.total_tokens, entry.compaction_count, entry.memory_flush_compaction_count)
    elif isinstance(entry, Mapping):
        raw = tuple(
            entry.get(snake, entry.get(camel))
            for snake, camel in (
                ("total_tokens", "totalTokens"),
                ("compaction_count", "compactionCount"),
                ("memory_flush_compaction_count", "memoryFlushCompactionCount"),
            )
        )
    else:
        raw = (None, None, None)
    total, compactions, last_flush = (_as_token_count(v) for v in raw)
    return total, compactions or 0, last_flush


def resolve_memory_flush_settings(
    cfg: RuntimeConfig | Mapping[str, Any] | None = None,
) -> MemoryFlushSettings:
    """Resolve ``agents.defaults.compaction.memory_flush`` into a full settings record.

    Every default lives here. A missing or unrecognized ``mode`` resolves to
    reserve-based; a missing, zero or malformed ``context_token_limit`` resolves
    to None, which the token-limit policy treats as "never flush".
    """
    runtime = cfg if isinstance(cfg, RuntimeConfig) else RuntimeConfig.from_dict(cfg)
    raw = runtime.defaults.compaction.memory_flush

    mode = MemoryFlushMode.parse(raw.mode)
    if raw.mode is not None and not (
        isinstance(raw.mode, str) and raw.mode.strip().lower() in _KNOWN_MODES
    ):
        log.warning("Unknown memory flush mode %r; falling back to %s.", raw.mode, mode.value)

    soft = _as_token_count(raw.soft_threshold_tokens)
    floor = _as_token_count(raw.reserve_tokens_floor)
    return MemoryFlushSettings(
        enabled=raw.enabled,
        mode=mode,
        context_token_limit=_positive_or_none(raw.context_token_limit),
        soft_threshold_tokens=DEFAULT_SOFT_THRESHOLD_TOKENS if soft is None else soft,
        reserve_tokens_floor=DEFAULT_RESERVE_FLOOR_TOKENS if floor is None else floor,
        prompt=_ensure_silent_hint(_text_or_default(raw.prompt, DEFAULT_FLUSH_PROMPT)),
        system_prompt=_text_or_default(raw.system_prompt, DEFAULT_FLUSH_SYSTEM_PROMPT),
    )


def should_run_memory_flush(
    *,
    entry: UsageEntry | Mapping[str, Any] | None,
    context_window_tokens: Any,
    reserve_tokens_floor: Any = DEFAULT_RESERVE_FLOOR_TOKENS,
    soft_threshold_tokens: Any = DEFAULT_SOFT_THRESHOLD_TOKENS,
    mode: MemoryFlushMode | str | None = None,
    context_token_limit: Any = None,
) -> bool:
    """Check if a memory flush should be spliced into the next turn.

    Only fires once per compaction cycle: once the entry records a flush at
    the current compaction count, nothing fires until compaction advances.

    reserve-based: totalTokens >= contextWindow - reserveFloor - softThreshold
    token-limit:   totalTokens >= contextTokenLimit (a positive limit is required)
    """
    total, compaction_count, last_flush = _read_entry(entry)

    if last_flush is not None and last_flush == compaction_count:
        log.debug("Memory flush already issued at compaction %d.", compaction_count)
        return False
    if not total:
        return False

    resolved = MemoryFlushMode.parse(mode)
    if resolved is MemoryFlushMode.TOKEN_LIMIT:
        limit = _positive_or_none(context_token_limit)
        if limit is None:
            return False
        fire = total >= limit
        log.debug("token-limit flush check: %d/%d tokens -> %s", total, limit, fire)
        return fire

    window = _as_token_count(context_window_tokens)
    if window is None:
        return False
    floor = _as_token_count(reserve_tokens_floor) or 0
    soft = _as_token_count(soft_threshold_tokens) or 0
    threshold = window - floor - soft
    if threshold <= 0:
        return False
    fire = total >= threshold
    log.debug("reserve-based flush check: %d/%d tokens -> %s", total, threshold, fire)
    return fire


def evaluate_memory_flush(
    entry: UsageEntry | Mapping[str, Any] | None,
    settings: MemoryFlushSettings,
    *,
    context_window_tokens: int,
) -> bool:
    """Run the trigger policy with a resolved settings record."""
    if not settings.enabled:
        return False
    return should_run_memory_flush(
        entry=entry,
        context_window_tokens=context_window_tokens,
        reserve_tokens_floor=settings.reserve_tokens_floor,
        soft_threshold_tokens=settings.soft_threshold_tokens,
        mode=settings.mode,
        context_token_limit=settings.context_token_limit,
    )



def is_silent_flush_reply(text: Any) -> bool:
    """True if the agent answered a flush turn with nothing but the silent token.

    The orchestrator drops such replies instead of showing them to the user.
    """
    if not isinstance(text, str):
        return False
    return text.strip().strip("`*.! \n") == SILENT_TOKEN
