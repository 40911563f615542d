"""
Tokenizer adapter and encoding registry.

Encodings are looked up by name. Every tiktoken encoding (o200k_base,
cl100k_base, ...) is available, plus "estimate", a character heuristic that
needs no encoding table. Extra encodings can be added with
`register_encoding`.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

import tiktoken

from .errors import ConfigurationError, TokenizerError
from .messages import (
    AudioPart,
    FilePart,
    ImagePart,
    Message,
    ReasoningPart,
    RedactedReasoningPart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "o200k_base"
ESTIMATE_ENCODING = "estimate"

# Overhead for role and message framing
TOKENS_PER_MESSAGE = 4
# Flat estimate for image/audio/file parts; their payload isn't text the
# model reads, so encoding base64 would wildly overcount.
MEDIA_PART_TOKENS = 85

# Model family → encoding name
MODEL_ENCODINGS: dict[str, str] = {
    "gpt-4o": "o200k_base",
    "gpt-4.1": "o200k_base",
    "gpt-5": "o200k_base",
    "o1": "o200k_base",
    "o3": "o200k_base",
    "o4": "o200k_base",
    "gpt-4": "cl100k_base",
    "gpt-3.5-turbo": "cl100k_base",
    "text-embedding-3": "cl100k_base",
    "claude": "o200k_base",
    "deepseek": "cl100k_base",
    "glm": "cl100k_base",
}


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~3 chars per token for mixed CJK/English."""
    if not text:
        return 0
    return max(1, len(text) // 3)


@dataclass(frozen=True)
class Tokenizer:
    """A named token counter."""

    name: str
    counter: Callable[[str], int]

    def count(self, text: str) -> int:
        n = self.counter(text)
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise TokenizerError(
                f"Tokenizer {self.name!r} returned invalid token count {n!r}"
            )
        return n


def _tiktoken_factory(name: str) -> Tokenizer:
    encoding = tiktoken.get_encoding(name)
    # disallowed_special=() so text that happens to contain "<|endoftext|>"
    # is counted instead of rejected
    return Tokenizer(
        name=name,
        counter=lambda text: len(encoding.encode(text, disallowed_special=())),
    )


_REGISTRY: dict[str, Callable[[], Tokenizer]] = {
    ESTIMATE_ENCODING: lambda: Tokenizer(ESTIMATE_ENCODING, estimate_tokens),
}


def register_encoding(name: str, factory: Callable[[], Tokenizer]) -> None:
    """Register a tokenizer factory under an encoding name."""
    if not name:
        raise ConfigurationError("Encoding name must be a non-empty string")
    _REGISTRY[name] = factory
    get_tokenizer.cache_clear()


def available_encodings() -> list[str]:
    return sorted(set(_REGISTRY) | set(tiktoken.list_encoding_names()))


@lru_cache(maxsize=None)
def get_tokenizer(name: Optional[str] = None) -> Tokenizer:
    """
    Resolve an encoding name to a tokenizer.

    Tiktoken tables are loaded on first use and cached, so the load happens
    once per process rather than per request.
    """
    name = name or DEFAULT_ENCODING
    if name in _REGISTRY:
        return _REGISTRY[name]()
    if name in tiktoken.list_encoding_names():
        logger.debug("Loading tiktoken encoding %s", name)
        return _tiktoken_factory(name)
    raise ConfigurationError(
        f"Unknown encoding {name!r}; available: {', '.join(available_encodings())}"
    )


def encoding_for_model(model_name: str) -> str:
    """Pick an encoding name for a model, by exact then prefix match."""
    if not model_name:
        return DEFAULT_ENCODING
    if model_name in MODEL_ENCODINGS:
        return MODEL_ENCODINGS[model_name]
    # Longest prefix wins so "gpt-4o-mini" maps to gpt-4o, not gpt-4
    for key in sorted(MODEL_ENCODINGS, key=len, reverse=True):
        if model_name.startswith(key):
            return MODEL_ENCODINGS[key]
    return DEFAULT_ENCODING


def _dump(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def _part_text(part) -> tuple[str, int]:
    """Serialized text of a part plus any fixed overhead."""
    if isinstance(part, (TextPart, ReasoningPart)):
        return part.text, 0
    if isinstance(part, ToolCallPart):
        args = _dump(part.args) if part.args is not None else ""
        return part.tool_name + args, 0
    if isinstance(part, ToolResultPart):
        return (_dump(part.result) if part.result is not None else ""), 0
    if isinstance(part, (ImagePart, AudioPart, FilePart)):
        return part.mime_type, MEDIA_PART_TOKENS
    if isinstance(part, RedactedReasoningPart):
        return part.data, 0
    return _dump(getattr(part, "payload", None)), 0


def count_message_tokens(msg: Message, tokenizer: Tokenizer) -> int:
    """Count tokens for a message, including structural overhead."""
    if isinstance(msg.content, str):
        return tokenizer.count(msg.content) + TOKENS_PER_MESSAGE

    total = TOKENS_PER_MESSAGE
    for part in msg.content:
        text, overhead = _part_text(part)
        total += overhead
        if text:
            total += tokenizer.count(text)
    return total
