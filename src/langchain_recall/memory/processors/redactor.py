"""
Regex redaction of recalled text.

Useful for blanking out large inline blobs (base64 images pasted into a
message, long hex dumps) that waste context without helping the model.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from ..errors import ConfigurationError
from ..messages import Message, ReasoningPart, TextPart

# 200+ chars of base64 alphabet, optionally padded
BASE64_BLOB_PATTERN = r"[A-Za-z0-9+/]{200,}={0,2}"


@dataclass(frozen=True)
class PatternRedactor:
    """Replace every match of `patterns` in text and reasoning content."""

    patterns: Iterable = (BASE64_BLOB_PATTERN,)
    replacement: str = "[redacted]"
    name: str = "PatternRedactor"
    _compiled: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        patterns = [self.patterns] if isinstance(self.patterns, str) else list(self.patterns)
        if not patterns:
            raise ConfigurationError(f"{self.name}: at least one pattern is required")
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                raise ConfigurationError(
                    f"{self.name}: invalid pattern {pattern!r}: {e}"
                ) from e
            if compiled[-1].fullmatch(""):
                # would insert the replacement between every character
                raise ConfigurationError(
                    f"{self.name}: pattern {pattern!r} matches the empty string"
                )
        object.__setattr__(self, "_compiled", tuple(compiled))

    def redact(self, text: str) -> str:
        for regex in self._compiled:
            text = regex.sub(self.replacement, text)
        return text

    def _redact_part(self, part):
        if isinstance(part, (TextPart, ReasoningPart)):
            redacted = self.redact(part.text)
            if redacted != part.text:
                return replace(part, text=redacted)
        return part

    def process(self, messages: Sequence[Message]) -> list[Message]:
        result = []
        for msg in messages:
            if isinstance(msg.content, str):
                redacted = self.redact(msg.content)
                if redacted != msg.content:
                    msg = replace(msg, content=redacted)
            else:
                parts = [self._redact_part(p) for p in msg.content]
                if any(new is not old for new, old in zip(parts, msg.content)):
                    msg = msg.with_parts(parts)
            result.append(msg)
        return result
