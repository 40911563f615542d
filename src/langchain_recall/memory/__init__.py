"""
Processor pipeline for recalled conversation memory.

Recalled history is run through an ordered list of processors before it
reaches the LLM:

- TokenLimiter: keep the most recent messages that fit a token budget
- ToolCallFilter: drop tool calls (all, or for named tools) with their results
- ContentTypeFilter: drop reasoning/audio/image parts
- ToolResultTruncator: shorten long tool results
- PatternRedactor: blank out large inline blobs

Each processor's output is the next one's input, so order matters: put the
filters before the TokenLimiter to spend the budget on what is actually sent.
"""

from .config import MemoryConfig, build_processors, resolve_token_limit
from .convert import (
    from_langchain,
    from_langchain_messages,
    to_langchain,
    to_langchain_messages,
)
from .errors import ConfigurationError, MemoryProcessorError, TokenizerError
from .messages import (
    AudioPart,
    FilePart,
    ImagePart,
    Message,
    PartKind,
    ReasoningPart,
    RedactedReasoningPart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    UnknownPart,
)
from .middleware import MemoryMiddleware
from .pipeline import ProcessorPipeline, run_processors
from .processors import (
    BASE64_BLOB_PATTERN,
    ContentTypeFilter,
    MemoryProcessor,
    PatternRedactor,
    TokenLimiter,
    ToolCallFilter,
    ToolResultTruncator,
)
from .tokenizer import (
    DEFAULT_ENCODING,
    Tokenizer,
    count_message_tokens,
    encoding_for_model,
    estimate_tokens,
    get_tokenizer,
    register_encoding,
)

__all__ = [
    "MemoryConfig",
    "MemoryMiddleware",
    "MemoryProcessor",
    "ProcessorPipeline",
    "run_processors",
    "build_processors",
    "resolve_token_limit",
    "TokenLimiter",
    "ToolCallFilter",
    "ContentTypeFilter",
    "ToolResultTruncator",
    "PatternRedactor",
    "BASE64_BLOB_PATTERN",
    "Message",
    "Role",
    "PartKind",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ImagePart",
    "AudioPart",
    "FilePart",
    "ReasoningPart",
    "RedactedReasoningPart",
    "UnknownPart",
    "Tokenizer",
    "DEFAULT_ENCODING",
    "count_message_tokens",
    "encoding_for_model",
    "estimate_tokens",
    "get_tokenizer",
    "register_encoding",
    "from_langchain",
    "from_langchain_messages",
    "to_langchain",
    "to_langchain_messages",
    "ConfigurationError",
    "MemoryProcessorError",
    "TokenizerError",
]
