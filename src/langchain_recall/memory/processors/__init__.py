"""
Built-in processors for recalled message history.
"""

from .base import MemoryProcessor
from .content_filter import ContentTypeFilter
from .redactor import BASE64_BLOB_PATTERN, PatternRedactor
from .token_limiter import TokenLimiter
from .tool_call_filter import ToolCallFilter
from .tool_result_truncator import ToolResultTruncator

__all__ = [
    "MemoryProcessor",
    "TokenLimiter",
    "ToolCallFilter",
    "ContentTypeFilter",
    "ToolResultTruncator",
    "PatternRedactor",
    "BASE64_BLOB_PATTERN",
]
