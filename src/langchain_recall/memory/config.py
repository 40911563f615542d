"""
Memory processing configuration and model context window mappings.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .messages import PartKind
from .processors import (
    ContentTypeFilter,
    TokenLimiter,
    ToolCallFilter,
    ToolResultTruncator,
)
from .tokenizer import encoding_for_model

# Model → context window size (tokens)
MODEL_CONTEXT_WINDOWS: dict[str, int] = {
    # Anthropic
    "claude-sonnet-4-5-20250929": 200_000,
    "claude-sonnet-4-20250514": 200_000,
    "claude-opus-4-20250514": 200_000,
    "claude-opus-4-5-20251101": 200_000,
    "claude-3-5-sonnet": 200_000,
    "claude-3-haiku": 200_000,
    # OpenAI compatible
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
    "gpt-4-turbo": 128_000,
    # DeepSeek
    "deepseek-chat": 64_000,
    "deepseek-reasoner": 64_000,
    # GLM
    "glm-4": 128_000,
    "glm-4-flash": 128_000,
    "glm-4.7-flash": 128_000,
}

DEFAULT_CONTEXT_WINDOW = 128_000


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes")


def _env_list(name: str) -> tuple:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass
class MemoryConfig:
    """Configuration for the recalled-message processor pipeline."""

    # Token budget (0 = derive from the model's context window)
    token_limit: int = 0
    context_window: int = 0  # 0 = auto-detect from model name

    # Tokenizer encoding name ("" = pick by model name)
    encoding: str = ""

    # Tool-call filtering; empty exclude_tools with the filter on removes
    # every tool call
    filter_tool_calls: bool = False
    exclude_tools: tuple = ()

    # Part kinds to strip, e.g. ("reasoning", "audio")
    exclude_content_types: tuple = ()

    # Truncate tool results longer than this (0 = off)
    tool_result_max_chars: int = 0

    # Safety margin (reserve this fraction of the context window)
    safety_margin: float = 0.10

    def __post_init__(self):
        if self.token_limit < 0:
            raise ConfigurationError(f"token_limit must be >= 0, got {self.token_limit}")
        if self.tool_result_max_chars < 0:
            raise ConfigurationError(
                f"tool_result_max_chars must be >= 0, got {self.tool_result_max_chars}"
            )
        if not 0 <= self.safety_margin < 1:
            raise ConfigurationError(
                f"safety_margin must be in [0, 1), got {self.safety_margin}"
            )
        for kind in self.exclude_content_types:
            try:
                PartKind(kind)
            except ValueError:
                raise ConfigurationError(f"Unknown content type {kind!r}") from None

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "MemoryConfig":
        """Load configuration from environment variables (and a .env file if given)."""
        if env_file:
            load_dotenv(env_file, override=True)
        return cls(
            token_limit=_env_int("MEMORY_TOKEN_LIMIT", 0),
            context_window=_env_int("MEMORY_CONTEXT_WINDOW", 0),
            encoding=os.getenv("MEMORY_TOKEN_ENCODING", "").strip(),
            filter_tool_calls=_env_bool("MEMORY_FILTER_TOOL_CALLS", False),
            exclude_tools=_env_list("MEMORY_EXCLUDE_TOOLS"),
            exclude_content_types=_env_list("MEMORY_EXCLUDE_CONTENT_TYPES"),
            tool_result_max_chars=_env_int("MEMORY_TOOL_RESULT_MAX_CHARS", 0),
            safety_margin=_env_float("MEMORY_SAFETY_MARGIN", 0.10),
        )

    def get_context_window(self, model_name: str) -> int:
        """Resolve context window size from config or model name."""
        if self.context_window > 0:
            return self.context_window
        # Try exact match first, then prefix match
        if model_name in MODEL_CONTEXT_WINDOWS:
            return MODEL_CONTEXT_WINDOWS[model_name]
        for key, size in MODEL_CONTEXT_WINDOWS.items():
            if model_name and (model_name.startswith(key) or key.startswith(model_name)):
                return size
        return DEFAULT_CONTEXT_WINDOW


def resolve_token_limit(
    config: MemoryConfig,
    model_name: str,
    system_prompt_tokens: int = 0,
) -> int:
    """
    Token limit for recalled history.

    An explicit `token_limit` wins. Otherwise:
    available = context_window * (1 - safety_margin) - system_prompt - output_reserve
    """
    if config.token_limit > 0:
        return config.token_limit

    context_window = config.get_context_window(model_name)

    # Reserve space for output (20%, capped at 16k)
    usable = int(context_window * (1 - config.safety_margin))
    output_reserve = min(int(context_window * 0.2), 16000)
    return max(usable - system_prompt_tokens - output_reserve, 0)


def build_processors(
    config: MemoryConfig,
    model_name: str = "",
    system_prompt_tokens: int = 0,
) -> list:
    """
    Assemble the processor list described by `config`.

    Order: content filter → tool-call filter → tool-result truncator →
    token limiter. The limiter runs last so it measures what is actually
    sent.
    """
    processors = []
    if config.exclude_content_types:
        processors.append(ContentTypeFilter(config.exclude_content_types))
    if config.filter_tool_calls or config.exclude_tools:
        processors.append(ToolCallFilter(exclude=config.exclude_tools or None))
    if config.tool_result_max_chars > 0:
        processors.append(ToolResultTruncator(config.tool_result_max_chars))

    processors.append(
        TokenLimiter(
            limit=resolve_token_limit(config, model_name, system_prompt_tokens),
            encoding=config.encoding or encoding_for_model(model_name),
        )
    )
    return processors
