"""
Pipeline runner.

Threads recalled messages through an ordered list of processors, each one
receiving the previous one's output. Errors raised by a processor are not
caught: a broken processor fails the whole retrieval instead of silently
dropping history.
"""

import logging
from typing import Sequence

from .errors import ConfigurationError
from .messages import Message
from .processors.base import MemoryProcessor

logger = logging.getLogger(__name__)


def run_processors(
    messages: Sequence[Message],
    processors: Sequence[MemoryProcessor],
) -> list[Message]:
    """
    Apply processors in order and return the final message list.

    With no processors the messages are returned unchanged (as a new list).
    The caller's sequence is never handed to a processor directly.
    """
    current = list(messages)
    for processor in processors:
        before = len(current)
        current = list(processor.process(list(current)))
        logger.debug(
            "Processor %s: %d -> %d messages",
            getattr(processor, "name", type(processor).__name__),
            before,
            len(current),
        )
    return current


class ProcessorPipeline:
    """
    An immutable, ordered list of processors.

    Usage:
        pipeline = ProcessorPipeline([ToolCallFilter(), TokenLimiter(limit=8000)])
        trimmed = pipeline.run(messages)
    """

    def __init__(self, processors: Sequence[MemoryProcessor] = ()):
        for processor in processors:
            if not isinstance(processor, MemoryProcessor):
                raise ConfigurationError(
                    f"{processor!r} is not a memory processor "
                    "(needs a name and a process() method)"
                )
        self._processors = tuple(processors)

    @property
    def processors(self) -> tuple:
        return self._processors

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._processors]

    def run(self, messages: Sequence[Message]) -> list[Message]:
        return run_processors(messages, self._processors)

    def __len__(self) -> int:
        return len(self._processors)

    def __repr__(self) -> str:
        return f"ProcessorPipeline({' -> '.join(self.names) or 'empty'})"
