"""
Tool-call filter.

Removes tool invocations and their results from recalled history, either
all of them or only those for a set of named tools. A result is removed
together with its call (matched by call id) so no orphaned result is left
behind for a call that was filtered out.
"""

import logging
from dataclasses import dataclass, field
from collections.abc import Iterable
from typing import Optional, Sequence

from ..errors import ConfigurationError
from ..messages import Message, TOOL_KINDS, ToolCallPart, ToolResultPart
from .base import drop_empty

logger = logging.getLogger(__name__)


def _normalize_exclude(exclude, name: str) -> frozenset:
    if exclude is None:
        return frozenset()
    # A bare string would otherwise be split into characters
    if isinstance(exclude, (str, bytes)) or not isinstance(exclude, Iterable):
        raise ConfigurationError(
            f"{name}: exclude must be a collection of tool names, got {exclude!r}"
        )
    names = frozenset(exclude)
    for tool_name in names:
        if not isinstance(tool_name, str) or not tool_name:
            raise ConfigurationError(
                f"{name}: tool names must be non-empty strings, got {tool_name!r}"
            )
    return names


@dataclass(frozen=True)
class ToolCallFilter:
    """
    Filter tool calls out of recalled messages.

    - exclude empty/None: every tool-call and tool-result part is removed
    - exclude = {"search"}: only `search` calls and their results are removed

    Messages left with no parts are dropped. Plain-text messages are never
    emptied.
    """

    exclude: Optional[Iterable[str]] = None
    name: str = "ToolCallFilter"
    _exclude: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_exclude", _normalize_exclude(self.exclude, self.name))

    @property
    def excluded_tools(self) -> frozenset:
        return self._exclude

    def process(self, messages: Sequence[Message]) -> list[Message]:
        if self._exclude:
            result = self._filter_named(messages)
        else:
            result = self._filter_all(messages)
        return drop_empty(result)

    def _filter_all(self, messages) -> list[Message]:
        result = []
        for msg in messages:
            if not msg.has_parts or not any(p.kind in TOOL_KINDS for p in msg.content):
                result.append(msg)
                continue
            result.append(msg.with_parts(p for p in msg.content if p.kind not in TOOL_KINDS))
        return result

    def _filter_named(self, messages) -> list[Message]:
        # call id → tool name of the most recent removed call with that id.
        # Ids can be reused across turns, so a later kept call clears it.
        removed: dict = {}
        seen_ids: set = set()
        result = []

        for msg in messages:
            if not msg.has_parts:
                result.append(msg)
                continue

            kept = []
            changed = False
            for part in msg.content:
                if isinstance(part, ToolCallPart):
                    seen_ids.add(part.call_id)
                    if part.tool_name in self._exclude:
                        removed[part.call_id] = part.tool_name
                        changed = True
                        continue
                    removed.pop(part.call_id, None)
                elif isinstance(part, ToolResultPart):
                    removed_name = removed.get(part.call_id)
                    if removed_name is not None and part.tool_name in ("", removed_name):
                        changed = True
                        continue
                    if part.call_id not in seen_ids:
                        logger.debug(
                            "%s: tool result %s has no preceding call, leaving it in place",
                            self.name,
                            part.call_id,
                        )
                kept.append(part)

            result.append(msg.with_parts(kept) if changed else msg)

        return result

