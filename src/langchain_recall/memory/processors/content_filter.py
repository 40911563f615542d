"""
Content-type filter.

Strips parts of unwanted kinds (reasoning traces, audio, images...) from
recalled messages, the same way the condenser used to strip thinking
blocks. Tool parts are not accepted here; use ToolCallFilter so calls and
results stay paired.
"""

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..errors import ConfigurationError
from ..messages import Message, PartKind, TOOL_KINDS
from .base import drop_empty


def _parse_kinds(kinds, name: str) -> frozenset:
    if isinstance(kinds, (str, PartKind)):
        kinds = [kinds]
    parsed = set()
    for kind in kinds:
        try:
            parsed.add(PartKind(kind))
        except ValueError:
            raise ConfigurationError(f"{name}: unknown content type {kind!r}") from None
    if parsed & TOOL_KINDS:
        raise ConfigurationError(
            f"{name}: tool content can't be filtered here, use ToolCallFilter"
        )
    if PartKind.TEXT in parsed:
        raise ConfigurationError(f"{name}: text content can't be filtered")
    return frozenset(parsed)


@dataclass(frozen=True)
class ContentTypeFilter:
    """Drop parts whose kind is in `exclude_kinds`."""

    exclude_kinds: Iterable = (PartKind.REASONING, PartKind.REDACTED_REASONING)
    name: str = "ContentTypeFilter"
    _kinds: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_kinds", _parse_kinds(self.exclude_kinds, self.name))

    def process(self, messages: Sequence[Message]) -> list[Message]:
        result = []
        for msg in messages:
            if msg.has_parts and any(p.kind in self._kinds for p in msg.content):
                msg = msg.with_parts(p for p in msg.content if p.kind not in self._kinds)
            result.append(msg)
        return drop_empty(result)
