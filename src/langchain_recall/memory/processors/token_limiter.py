"""
Token-budget processor.

Keeps the most recent messages whose combined token count fits the limit.
Whole messages are the unit: a message is either kept intact or dropped,
and once one message doesn't fit no older message is considered, so the
result is always a contiguous suffix of the input.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..errors import ConfigurationError
from ..messages import Message
from ..tokenizer import Tokenizer, count_message_tokens, get_tokenizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenLimiter:
    """
    Limit recalled history to `limit` tokens, newest first.

    Usage:
        limiter = TokenLimiter(limit=8000, encoding="cl100k_base")
        trimmed = limiter.process(messages)

    When `limit` is positive the most recent message is always kept, even
    if it alone exceeds the limit. A limit of 0 returns no messages.
    """

    limit: int
    tokenizer: Optional[Tokenizer] = None
    encoding: Optional[str] = None
    name: str = "TokenLimiter"
    _tokenizer: Tokenizer = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise ConfigurationError(
                f"{self.name}: token limit must be an integer, got {self.limit!r}"
            )
        if self.limit < 0:
            raise ConfigurationError(
                f"{self.name}: token limit must be >= 0, got {self.limit}"
            )
        if self.tokenizer is not None and self.encoding is not None:
            raise ConfigurationError(
                f"{self.name}: pass either tokenizer or encoding, not both"
            )
        resolved = self.tokenizer or get_tokenizer(self.encoding)
        object.__setattr__(self, "_tokenizer", resolved)

    def count_tokens(self, msg: Message) -> int:
        return count_message_tokens(msg, self._tokenizer)

    def process(self, messages: Sequence[Message]) -> list[Message]:
        if self.limit == 0 or not messages:
            return []

        kept: list[Message] = []
        total_tokens = 0

        # Walk backwards from the most recent message
        for msg in reversed(messages):
            msg_tokens = self.count_tokens(msg)
            if kept and total_tokens + msg_tokens > self.limit:
                break
            kept.append(msg)
            total_tokens += msg_tokens
            if total_tokens > self.limit:
                # Oversized most recent message, kept alone
                logger.debug(
                    "%s: most recent message (%d tokens) exceeds limit %d",
                    self.name,
                    msg_tokens,
                    self.limit,
                )
                break

        kept.reverse()
        if len(kept) < len(messages):
            logger.debug(
                "%s: kept %d/%d messages (%d tokens, limit %d)",
                self.name,
                len(kept),
                len(messages),
                total_tokens,
                self.limit,
            )
        return kept
