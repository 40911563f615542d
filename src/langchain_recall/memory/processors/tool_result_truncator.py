"""
Shortens long tool results in recalled history.
"""

import json
from dataclasses import dataclass, replace
from typing import Sequence

from ..errors import ConfigurationError
from ..messages import Message, ToolResultPart

TRUNCATION_MARKER = "\n... (truncated)"


def _truncate_part(part: ToolResultPart, max_chars: int) -> ToolResultPart:
    content = part.result
    if content is None:
        return part
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False, default=str)

    if len(content) <= max_chars:
        return part

    return replace(part, result=content[:max_chars] + TRUNCATION_MARKER)


@dataclass(frozen=True)
class ToolResultTruncator:
    """
    Truncate tool results to `max_chars` characters.

    Call ids are left alone so results stay paired with their calls.
    """

    max_chars: int = 200
    name: str = "ToolResultTruncator"

    def __post_init__(self):
        if isinstance(self.max_chars, bool) or not isinstance(self.max_chars, int):
            raise ConfigurationError(f"{self.name}: max_chars must be an integer")
        if self.max_chars <= 0:
            raise ConfigurationError(f"{self.name}: max_chars must be > 0")

    def process(self, messages: Sequence[Message]) -> list[Message]:
        result = []
        for msg in messages:
            if msg.has_parts and any(isinstance(p, ToolResultPart) for p in msg.content):
                parts = [
                    _truncate_part(p, self.max_chars) if isinstance(p, ToolResultPart) else p
                    for p in msg.content
                ]
                msg = msg.with_parts(parts)
            result.append(msg)
        return result
