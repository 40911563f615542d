"""
Processor interface.

Any object with a `name` and a `process(messages) -> list[Message]` method is
a processor; there is no base class to inherit from. Processors must not
mutate the list or the messages they are given.
"""

from typing import Protocol, Sequence, runtime_checkable

from ..messages import Message


@runtime_checkable
class MemoryProcessor(Protocol):
    name: str

    def process(self, messages: Sequence[Message]) -> list[Message]:
        ...


def drop_empty(messages) -> list[Message]:
    """Remove messages whose part list ended up empty."""
    return [m for m in messages if not m.is_empty]
