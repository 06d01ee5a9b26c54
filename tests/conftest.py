"""Pytest fixtures for cc-timeline tests."""

import json
import tempfile
from pathlib import Path
from typing import Any

import pytest


class LogBuilder:
    """Build stream-json log lines in order."""

    def __init__(self, session_id: str = "sess-1"):
        self.session_id = session_id
        self.lines: list[dict[str, Any]] = []
        self._counter = 0

    def _uuid(self) -> str:
        self._counter += 1
        return f"rec-{self._counter:03d}"

    @staticmethod
    def text_block(text: str) -> dict[str, Any]:
        return {"type": "text", "text": text}

    @staticmethod
    def tool_use(tool_id: str, name: str, tool_input: dict[str, Any] | None = None) -> dict[str, Any]:
        return {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input or {}}

    @staticmethod
    def tool_result(tool_use_id: str, content: str, is_error: bool = False) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": tool_use_id,
            "content": content,
            "is_error": is_error,
        }

    def assistant(
        self,
        message_id: str,
        *blocks: dict[str, Any],
        parent: str | None = None,
        model: str = "claude-opus-4-5-20251101",
        usage: dict[str, Any] | None = None,
        uuid: str | None = None,
    ) -> dict[str, Any]:
        line = {
            "type": "assistant",
            "uuid": uuid or self._uuid(),
            "session_id": self.session_id,
            "parent_tool_use_id": parent,
            "message": {
                "id": message_id,
                "type": "message",
                "role": "assistant",
                "model": model,
                "content": list(blocks),
                "stop_reason": None,
                "usage": usage
                or {
                    "input_tokens": 10,
                    "output_tokens": 5,
                    "cache_creation_input_tokens": 0,
                    "cache_read_input_tokens": 0,
                    "service_tier": "standard",
                },
            },
        }
        self.lines.append(line)
        return line

    def user(
        self,
        *results: dict[str, Any],
        parent: str | None = None,
        tool_use_result: Any = None,
        uuid: str | None = None,
    ) -> dict[str, Any]:
        line = {
            "type": "user",
            "uuid": uuid or self._uuid(),
            "session_id": self.session_id,
            "parent_tool_use_id": parent,
            "message": {"role": "user", "content": list(results)},
            "tool_use_result": tool_use_result,
        }
        self.lines.append(line)
        return line

    def text(self) -> str:
        return "\n".join(json.dumps(line) for line in self.lines)

    def records(self):
        from cc_timeline.parser import record_from_dict

        return [record_from_dict(line) for line in self.lines]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def log():
    """Empty log builder."""
    return LogBuilder()


@pytest.fixture
def subagent_log():
    """A session where a Task call spawns a sub-agent that spawns another."""
    b = LogBuilder()
    b.assistant("m1", b.text_block("Let me delegate this."))
    b.assistant("m2", b.tool_use("task1", "Task", {"description": "Explore repo", "prompt": "look"}))
    b.assistant("sub-m1", b.text_block("Sub-agent found the needle."), parent="task1")
    b.assistant("sub-m2", b.tool_use("task2", "Task", {"description": "Dig deeper"}), parent="task1")
    b.assistant("subsub-m1", b.tool_use("read1", "Read", {"file_path": "/src/deep.py"}), parent="task2")
    b.user(
        b.tool_result("read1", "def haystack(): pass"),
        parent="task2",
        tool_use_result={"type": "text", "file": {"filePath": "/src/deep.py", "content": "..."}},
    )
    b.user(b.tool_result("task2", "deeper done"), parent="task1")
    b.user(b.tool_result("task1", "delegation done"))
    b.assistant("m3", b.text_block("All done."))
    return b


@pytest.fixture
def sample_session_jsonl(temp_dir, subagent_log):
    """Write the sub-agent session to a JSONL file."""
    session_file = temp_dir / "test-session.jsonl"
    session_file.write_text(subagent_log.text() + "\n", encoding="utf-8")
    return session_file
