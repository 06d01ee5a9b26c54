"""Line parser for stream-json session logs."""

import json
from typing import Any

from cc_timeline.models import (
    AssistantMessage,
    AssistantRecord,
    CacheCreation,
    ContentBlock,
    Record,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
    UserMessage,
    UserRecord,
)


def parse_line(line: str) -> Record | None:
    """Decode one log line into a Record.

    Returns None for blank lines, malformed JSON, and anything that is not an
    object with ``type`` of "assistant" or "user" and string ``uuid`` and
    ``session_id``. No further schema validation is done.
    """
    line = line.strip()
    if not line:
        return None

    try:
        raw = json.loads(line)
    except (ValueError, RecursionError):
        # JSONDecodeError, or nesting too deep for the decoder
        return None

    if not isinstance(raw, dict):
        return None
    if raw.get("type") not in ("assistant", "user"):
        return None
    if not isinstance(raw.get("uuid"), str) or not isinstance(raw.get("session_id"), str):
        return None

    return record_from_dict(raw)


def record_from_dict(raw: dict[str, Any]) -> Record:
    """Build a typed record from an already shape-checked dict."""
    parent = raw.get("parent_tool_use_id")
    if not isinstance(parent, str):
        parent = None

    message = raw.get("message")
    if not isinstance(message, dict):
        message = {}

    if raw["type"] == "assistant":
        return AssistantRecord(
            uuid=raw["uuid"],
            session_id=raw["session_id"],
            parent_tool_use_id=parent,
            message=_assistant_message(message, fallback_id=raw["uuid"]),
        )

    return UserRecord(
        uuid=raw["uuid"],
        session_id=raw["session_id"],
        parent_tool_use_id=parent,
        message=UserMessage(content=_tool_result_blocks(message.get("content"))),
        tool_use_result=raw.get("tool_use_result"),
    )


def _assistant_message(message: dict[str, Any], fallback_id: str) -> AssistantMessage:
    # A message without an id still needs a grouping key; use the record's own uuid
    message_id = message.get("id")
    if not isinstance(message_id, str):
        message_id = fallback_id

    stop_reason = message.get("stop_reason")
    return AssistantMessage(
        id=message_id,
        model=str(message.get("model") or ""),
        content=_content_blocks(message.get("content")),
        stop_reason=stop_reason if isinstance(stop_reason, str) else None,
        usage=_usage(message.get("usage")),
    )


def _content_blocks(content: Any) -> list[ContentBlock]:
    if isinstance(content, str):
        return [TextBlock(text=content)] if content else []
    if not isinstance(content, list):
        return []

    blocks: list[ContentBlock] = []
    for block in content:
        if not isinstance(block, dict):
            continue

        block_type = block.get("type")
        if block_type == "text":
            blocks.append(TextBlock(text=str(block.get("text", ""))))
        elif block_type == "tool_use":
            tool_input = block.get("input")
            blocks.append(
                ToolUseBlock(
                    id=str(block.get("id", "")),
                    name=str(block.get("name", "")),
                    input=tool_input if isinstance(tool_input, dict) else {},
                )
            )
        # Skip thinking and other block kinds

    return blocks


def _tool_result_blocks(content: Any) -> list[ToolResultBlock]:
    if not isinstance(content, list):
        return []

    blocks: list[ToolResultBlock] = []
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "tool_result":
            continue
        tool_use_id = block.get("tool_use_id")
        if not isinstance(tool_use_id, str):
            continue
        blocks.append(
            ToolResultBlock(
                tool_use_id=tool_use_id,
                content=result_text(block.get("content")),
                is_error=bool(block.get("is_error", False)),
            )
        )
    return blocks


def result_text(content: Any) -> str:
    """Flatten tool result content to a string.

    Results are usually a plain string but may be a list of text parts.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
            elif isinstance(part, str):
                parts.append(part)
        return "\n".join(parts)
    return json.dumps(content)


def _usage(raw: Any) -> Usage:
    if not isinstance(raw, dict):
        return Usage()

    cache_creation = None
    cc = raw.get("cache_creation")
    if isinstance(cc, dict):
        cache_creation = CacheCreation(
            ephemeral_5m_input_tokens=_coerce_int(cc.get("ephemeral_5m_input_tokens")),
            ephemeral_1h_input_tokens=_coerce_int(cc.get("ephemeral_1h_input_tokens")),
        )

    tier = raw.get("service_tier")
    return Usage(
        input_tokens=_coerce_int(raw.get("input_tokens")),
        output_tokens=_coerce_int(raw.get("output_tokens")),
        cache_creation_input_tokens=_coerce_int(raw.get("cache_creation_input_tokens")),
        cache_read_input_tokens=_coerce_int(raw.get("cache_read_input_tokens")),
        cache_creation=cache_creation,
        service_tier=tier if isinstance(tier, str) else None,
    )


def _coerce_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        # OverflowError: json decodes 1e400 and Infinity to float inf
        return default
