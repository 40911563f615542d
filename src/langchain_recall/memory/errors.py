"""
Exceptions raised by the memory processing pipeline.
"""


class MemoryProcessorError(Exception):
    """Base class for all memory processing errors."""


class ConfigurationError(MemoryProcessorError, ValueError):
    """A processor or pipeline was assembled with invalid options."""


class TokenizerError(MemoryProcessorError):
    """A tokenizer returned something other than a non-negative integer."""
