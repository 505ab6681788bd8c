"""agent_continuity: failure classification and memory-flush triggering for LLM agent runs."""

from pathlib import Path

import yaml

_CONFIG_PATH = Path(__file__).parent / "CONFIG.yaml"


def load_config(path: Path | None = None) -> dict:
    """Load and return the CONFIG.yaml as a dict."""
    p = path or _CONFIG_PATH
    with open(p) as f:
        return yaml.safe_load(f) or {}


# Public API
from .config import AgentDefaults, CompactionConfig, MemoryFlushConfig, RuntimeConfig  # noqa: E402
from .context.memory_flush import (  # noqa: E402
    evaluate_memory_flush,
    is_silent_flush_reply,
    resolve_memory_flush_settings,
    should_run_memory_flush,
)
from .errors.classifier import (  # noqa: E402
    classify_failure,
    is_billing_error_message,
    is_context_overflow_error,
)
from .errors.patterns import matches_any  # noqa: E402
from .context.types import MemoryFlushMode, MemoryFlushSettings, UsageEntry  # noqa: E402
from .errors.types import FailureKind  # noqa: E402

__all__ = [
    "load_config",
    "RuntimeConfig",
    "AgentDefaults",
    "CompactionConfig",
    "MemoryFlushConfig",
    "matches_any",
    "is_context_overflow_error",
    "is_billing_error_message",
    "classify_failure",
    "resolve_memory_flush_settings",
    "should_run_memory_flush",
    "evaluate_memory_flush",
    "is_silent_flush_reply",
    "FailureKind",
    "MemoryFlushMode",
    "MemoryFlushSettings",
    "UsageEntry",
]
