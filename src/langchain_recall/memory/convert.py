"""
Conversion between LangChain messages and the processor message model.

- HumanMessage / SystemMessage: role user / system, content kept as-is
- AIMessage: content blocks become parts, tool_calls become ToolCallParts
- ToolMessage: a tool message holding one ToolResultPart
- anything else (ChatMessage, ...): role taken from its `role`/`type`
"""

import json
import logging

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from .messages import (
    AudioPart,
    FilePart,
    ImagePart,
    Message,
    ReasoningPart,
    RedactedReasoningPart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    UnknownPart,
)

logger = logging.getLogger(__name__)


# ── LangChain → Message ──


def _media_data(block: dict) -> str:
    return (
        block.get("data")
        or block.get("base64")
        or block.get("url")
        or block.get("file_id")
        or ""
    )


def _block_to_part(block):
    """Map one LangChain content block to a part."""
    if isinstance(block, str):
        return TextPart(block)
    if not isinstance(block, dict):
        return UnknownPart(type(block).__name__, block)

    btype = block.get("type", "")
    if btype == "text":
        return TextPart(block.get("text", ""))
    if btype in ("thinking", "reasoning"):
        return ReasoningPart(
            block.get("thinking", "") or block.get("reasoning", ""),
            signature=block.get("signature", ""),
        )
    if btype == "redacted_thinking":
        return RedactedReasoningPart(block.get("data", ""))
    if btype == "image_url":
        image_url = block.get("image_url")
        url = image_url.get("url", "") if isinstance(image_url, dict) else image_url
        return ImagePart(url or "")
    if btype == "image":
        return ImagePart(_media_data(block), block.get("mime_type", ""))
    if btype == "input_audio":
        audio = block.get("input_audio") or {}
        fmt = audio.get("format", "")
        return AudioPart(audio.get("data", ""), f"audio/{fmt}" if fmt else "")
    if btype == "audio":
        return AudioPart(_media_data(block), block.get("mime_type", ""))
    if btype == "file":
        return FilePart(_media_data(block), block.get("mime_type", ""))
    if btype in ("tool_use", "tool_call"):
        return ToolCallPart(
            call_id=block.get("id", ""),
            tool_name=block.get("name", ""),
            args=block.get("input") or block.get("args") or {},
        )
    return UnknownPart(btype, block)


def _ai_parts(msg: AIMessage) -> tuple:
    parts = []
    content = msg.content
    if isinstance(content, str):
        if content:
            parts.append(TextPart(content))
    else:
        parts.extend(_block_to_part(b) for b in content)

    # tool_calls is authoritative; skip tool_use blocks that duplicate it
    call_ids = {tc.get("id") for tc in msg.tool_calls}
    parts = [
        p for p in parts
        if not (isinstance(p, ToolCallPart) and p.call_id in call_ids)
    ]
    for tc in msg.tool_calls:
        parts.append(
            ToolCallPart(
                call_id=tc.get("id") or "",
                tool_name=tc.get("name", ""),
                args=tc.get("args", {}),
            )
        )
    return tuple(parts)


# Non-chat message types by their `type` / ChatMessage role
_ROLES = {
    "human": Role.USER,
    "user": Role.USER,
    "ai": Role.ASSISTANT,
    "assistant": Role.ASSISTANT,
    "system": Role.SYSTEM,
    "developer": Role.SYSTEM,
}


def _convert(msg: BaseMessage) -> tuple:
    """Role and content for a LangChain message."""
    if isinstance(msg, ToolMessage):
        part = ToolResultPart(
            call_id=msg.tool_call_id,
            tool_name=msg.name or "",
            result=msg.content,
            is_error=getattr(msg, "status", "success") == "error",
        )
        return Role.TOOL, (part,)

    if isinstance(msg, AIMessage):
        if isinstance(msg.content, str) and not msg.tool_calls:
            return Role.ASSISTANT, msg.content
        return Role.ASSISTANT, _ai_parts(msg)

    if isinstance(msg, SystemMessage):
        role = Role.SYSTEM
    elif isinstance(msg, HumanMessage):
        role = Role.USER
    else:
        # ChatMessage and other subclasses: keep them as-is and convert
        # back to the original object unless a processor changed them
        kind = getattr(msg, "role", None) or msg.type
        role = _ROLES.get(str(kind).lower())
        if role is None:
            logger.debug("Treating %s message %r as user content", type(msg).__name__, kind)
            role = Role.USER

    content = msg.content
    if not isinstance(content, str):
        content = tuple(_block_to_part(b) for b in content)
    return role, content


def from_langchain(msg: BaseMessage) -> Message:
    """Convert a LangChain message to a Message."""
    role, content = _convert(msg)
    return Message(role, content, id=msg.id, name=msg.name, source=msg)


def from_langchain_messages(messages: list) -> list[Message]:
    return [from_langchain(m) for m in messages]


# ── Message → LangChain ──


def _is_url(data: str) -> bool:
    return data.startswith(("http://", "https://", "data:"))


def _part_to_block(part) -> dict:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ReasoningPart):
        block = {"type": "thinking", "thinking": part.text}
        if part.signature:
            block["signature"] = part.signature
        return block
    if isinstance(part, RedactedReasoningPart):
        return {"type": "redacted_thinking", "data": part.data}
    if isinstance(part, ImagePart):
        if _is_url(part.data):
            return {"type": "image_url", "image_url": {"url": part.data}}
        return {
            "type": "image",
            "source_type": "base64",
            "data": part.data,
            "mime_type": part.mime_type,
        }
    if isinstance(part, (AudioPart, FilePart)):
        return {
            "type": part.kind.value,
            "source_type": "url" if _is_url(part.data) else "base64",
            "data": part.data,
            "mime_type": part.mime_type,
        }
    if isinstance(part, UnknownPart):
        return part.payload
    raise TypeError(f"Part {type(part).__name__} has no content block form")


def _result_text(result):
    if result is None:
        return ""
    if isinstance(result, (str, list)):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def _tool_args(part: ToolCallPart) -> dict:
    args = part.args
    if args is None:
        return {}
    if isinstance(args, str):
        try:
            args = json.loads(args) if args.strip() else {}
        except json.JSONDecodeError:
            raise ValueError(
                f"Tool call {part.call_id} ({part.tool_name}) has non-JSON string args"
            ) from None
    if not isinstance(args, dict):
        raise ValueError(
            f"Tool call {part.call_id} ({part.tool_name}) args must be a JSON object, "
            f"got {type(args).__name__}"
        )
    return args


def _build(msg: Message) -> list[BaseMessage]:
    if msg.role == Role.TOOL:
        results = [p for p in msg.parts if isinstance(p, ToolResultPart)]
        if not results:
            return [ToolMessage(content=msg.text(), tool_call_id=msg.id or "", name=msg.name)]
        return [
            ToolMessage(
                content=_result_text(p.result),
                tool_call_id=p.call_id,
                name=p.tool_name or msg.name,
                status="error" if p.is_error else "success",
                id=msg.id if len(results) == 1 else None,
            )
            for p in results
        ]

    if isinstance(msg.content, str):
        content = msg.content
        tool_calls = []
    else:
        tool_calls = [
            {
                "name": p.tool_name,
                "args": _tool_args(p),
                "id": p.call_id,
                "type": "tool_call",
            }
            for p in msg.content
            if isinstance(p, ToolCallPart)
        ]
        content = [
            _part_to_block(p)
            for p in msg.content
            if not isinstance(p, (ToolCallPart, ToolResultPart))
        ]

    if msg.role == Role.ASSISTANT:
        return [AIMessage(content=content, tool_calls=tool_calls, id=msg.id, name=msg.name)]
    if msg.role == Role.SYSTEM:
        return [SystemMessage(content=content, id=msg.id, name=msg.name)]
    return [HumanMessage(content=content, id=msg.id, name=msg.name)]


def to_langchain(msg: Message) -> list[BaseMessage]:
    """
    Convert a Message back to LangChain messages.

    Returns a list because a tool message holding several results maps to
    one ToolMessage per result.

    A message converted from LangChain comes back as its original object
    when no processor changed it, and as a copy of the original with new
    content otherwise, so additional_kwargs, response_metadata and the like
    survive.
    """
    source = msg.source
    if source is not None and _convert(source) == (msg.role, msg.content):
        return [source]

    built = _build(msg)
    if source is None or len(built) != 1:
        return built

    [fresh] = built
    update = {"content": fresh.content}
    if isinstance(source, AIMessage) and isinstance(fresh, AIMessage):
        update["tool_calls"] = fresh.tool_calls
    elif isinstance(source, ToolMessage) and isinstance(fresh, ToolMessage):
        update["status"] = fresh.status
    return [source.model_copy(update=update)]


def to_langchain_messages(messages: list[Message]) -> list[BaseMessage]:
    result: list[BaseMessage] = []
    for msg in messages:
        result.extend(to_langchain(msg))
    return result
