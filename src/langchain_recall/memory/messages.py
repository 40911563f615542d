"""
Message model for recalled conversation history.

Messages and content parts are frozen dataclasses. Processors never edit a
message in place; they build new values with `Message.with_parts` or
`dataclasses.replace` and may share untouched parts.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class PartKind(str, Enum):
    TEXT = "text"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    IMAGE = "image"
    AUDIO = "audio"
    FILE = "file"
    REASONING = "reasoning"
    REDACTED_REASONING = "redacted-reasoning"
    OTHER = "other"


TOOL_KINDS = frozenset({PartKind.TOOL_CALL, PartKind.TOOL_RESULT})


@dataclass(frozen=True)
class TextPart:
    text: str
    kind: PartKind = field(default=PartKind.TEXT, init=False)


@dataclass(frozen=True)
class ToolCallPart:
    call_id: str
    tool_name: str
    args: Any = None
    kind: PartKind = field(default=PartKind.TOOL_CALL, init=False)


@dataclass(frozen=True)
class ToolResultPart:
    call_id: str
    tool_name: str = ""
    result: Any = None
    is_error: bool = False
    kind: PartKind = field(default=PartKind.TOOL_RESULT, init=False)


@dataclass(frozen=True)
class ImagePart:
    data: str
    mime_type: str = ""
    kind: PartKind = field(default=PartKind.IMAGE, init=False)


@dataclass(frozen=True)
class AudioPart:
    data: str
    mime_type: str = ""
    kind: PartKind = field(default=PartKind.AUDIO, init=False)


@dataclass(frozen=True)
class FilePart:
    data: str
    mime_type: str = ""
    kind: PartKind = field(default=PartKind.FILE, init=False)


@dataclass(frozen=True)
class ReasoningPart:
    text: str
    signature: str = ""
    kind: PartKind = field(default=PartKind.REASONING, init=False)


@dataclass(frozen=True)
class RedactedReasoningPart:
    data: str
    kind: PartKind = field(default=PartKind.REDACTED_REASONING, init=False)


@dataclass(frozen=True)
class UnknownPart:
    """A content block we don't model; carried through verbatim."""

    kind_name: str
    payload: Any = None
    kind: PartKind = field(default=PartKind.OTHER, init=False)


Part = Union[
    TextPart,
    ToolCallPart,
    ToolResultPart,
    ImagePart,
    AudioPart,
    FilePart,
    ReasoningPart,
    RedactedReasoningPart,
    UnknownPart,
]


@dataclass(frozen=True)
class Message:
    """
    One recalled message.

    `content` is either a plain string or a tuple of parts. Lists are
    frozen into tuples on construction so a message can't be changed
    through an alias of its content.

    `source` is the framework message this one was converted from, if any.
    It isn't compared and lets conversion back keep metadata the model
    doesn't carry.
    """

    role: Role
    content: Union[str, tuple] = ""
    id: Optional[str] = None
    name: Optional[str] = None
    source: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))
        elif not isinstance(self.content, (str, tuple)):
            raise TypeError(
                f"Message content must be str or a sequence of parts, "
                f"got {type(self.content).__name__}"
            )

    @property
    def has_parts(self) -> bool:
        return isinstance(self.content, tuple)

    @property
    def parts(self) -> tuple:
        """Content as parts; a string payload is a single TextPart."""
        if isinstance(self.content, str):
            return (TextPart(self.content),) if self.content else ()
        return self.content

    @property
    def is_empty(self) -> bool:
        if isinstance(self.content, str):
            return False
        return len(self.content) == 0

    def text(self) -> str:
        """Concatenated text of the message, ignoring non-text parts."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    def with_parts(self, parts) -> "Message":
        return replace(self, content=tuple(parts))


def user(content, **kwargs) -> Message:
    return Message(Role.USER, content, **kwargs)


def assistant(content, **kwargs) -> Message:
    return Message(Role.ASSISTANT, content, **kwargs)


def system(content, **kwargs) -> Message:
    return Message(Role.SYSTEM, content, **kwargs)


def tool(content, **kwargs) -> Message:
    return Message(Role.TOOL, content, **kwargs)
