"""Tests for the line parser."""

import json

from cc_timeline.models import AssistantRecord, TextBlock, ToolResultBlock, ToolUseBlock, UserRecord
from cc_timeline.parser import parse_line, result_text


def test_parse_assistant_line(log):
    """Test an assistant line becomes a typed record."""
    line = log.assistant(
        "m1",
        log.text_block("Hello"),
        log.tool_use("t1", "Read", {"file_path": "/a.py"}),
        usage={
            "input_tokens": 3,
            "output_tokens": 7,
            "cache_creation_input_tokens": 100,
            "cache_read_input_tokens": 200,
            "cache_creation": {"ephemeral_5m_input_tokens": 100, "ephemeral_1h_input_tokens": 0},
            "service_tier": "standard",
        },
    )

    record = parse_line(json.dumps(line))

    assert isinstance(record, AssistantRecord)
    assert record.uuid == line["uuid"]
    assert record.session_id == "sess-1"
    assert record.parent_tool_use_id is None
    assert record.message.id == "m1"
    assert record.message.model == "claude-opus-4-5-20251101"
    assert record.message.content == [
        TextBlock(text="Hello"),
        ToolUseBlock(id="t1", name="Read", input={"file_path": "/a.py"}),
    ]
    assert record.message.usage.cache_read_input_tokens == 200
    assert record.message.usage.cache_creation.ephemeral_5m_input_tokens == 100
    assert record.message.usage.service_tier == "standard"


def test_parse_user_line(log):
    """Test a user line keeps tool results and passes metadata through."""
    meta = {"type": "text", "file": {"filePath": "/a.py", "numLines": 3}}
    line = log.user(log.tool_result("t1", "boom", is_error=True), parent="task1", tool_use_result=meta)

    record = parse_line(json.dumps(line))

    assert isinstance(record, UserRecord)
    assert record.parent_tool_use_id == "task1"
    assert record.message.content == [ToolResultBlock(tool_use_id="t1", content="boom", is_error=True)]
    assert record.tool_use_result == meta


def test_blank_lines_yield_nothing():
    """Test whitespace-only lines are not records."""
    assert parse_line("") is None
    assert parse_line("   \t  ") is None
    assert parse_line("\n") is None


def test_malformed_json_rejected():
    """Test malformed payloads are rejected without raising."""
    assert parse_line("not json") is None
    assert parse_line('{"type": "assistant", ') is None


def test_non_object_rejected():
    """Test decoded values that are not objects are rejected."""
    assert parse_line("null") is None
    assert parse_line("42") is None
    assert parse_line('["assistant"]') is None
    assert parse_line('"assistant"') is None


def test_shape_checks():
    """Test type, uuid and session_id requirements."""
    assert parse_line('{"type": "system", "uuid": "u", "session_id": "s"}') is None
    assert parse_line('{"type": "Assistant", "uuid": "u", "session_id": "s"}') is None
    assert parse_line('{"type": "assistant", "session_id": "s"}') is None
    assert parse_line('{"type": "assistant", "uuid": 1, "session_id": "s"}') is None
    assert parse_line('{"type": "user", "uuid": "u", "session_id": null}') is None


def test_missing_optional_fields_tolerated():
    """Test a minimal record still parses with defaults."""
    record = parse_line('  {"type": "assistant", "uuid": "u1", "session_id": "s"}  ')

    assert isinstance(record, AssistantRecord)
    assert record.message.id == "u1"
    assert record.message.content == []
    assert record.message.usage.input_tokens == 0
    assert record.parent_tool_use_id is None

    user = parse_line('{"type": "user", "uuid": "u2", "session_id": "s", "message": {"content": "hi"}}')
    assert isinstance(user, UserRecord)
    assert user.message.content == []
    assert user.tool_use_result is None


def test_unknown_blocks_skipped(log):
    """Test thinking and other block kinds are dropped from content."""
    line = log.assistant("m1", {"type": "thinking", "thinking": "hmm"}, log.text_block("ok"))

    record = parse_line(json.dumps(line))

    assert record.message.content == [TextBlock(text="ok")]


def test_result_text_flattens_parts():
    """Test list-shaped tool result content is joined."""
    assert result_text("plain") == "plain"
    assert result_text(None) == ""
    assert result_text([{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}]) == "a\nb"


def test_non_finite_usage_numbers_default_to_zero(log):
    """Test infinite token counts do not reject an otherwise valid record."""
    line = json.dumps(log.assistant("m1", log.text_block("hi")))
    line = line.replace('"input_tokens": 10', '"input_tokens": 1e400')
    line = line.replace('"output_tokens": 5', '"output_tokens": Infinity')

    record = parse_line(line)

    assert isinstance(record, AssistantRecord)
    assert record.message.usage.input_tokens == 0
    assert record.message.usage.output_tokens == 0
    assert record.message.content == [TextBlock(text="hi")]


def test_too_deeply_nested_payload_rejected():
    """Test nesting beyond the decoder's limit is a rejected line."""
    depth = 100_000
    line = (
        '{"type": "user", "uuid": "u1", "session_id": "s", "tool_use_result": '
        + "[" * depth
        + "]" * depth
        + "}"
    )

    assert parse_line(line) is None
