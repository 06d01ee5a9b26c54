"""Data models for cc-timeline."""

from dataclasses import dataclass, field
from typing import Any, Literal, Union

Role = Literal["assistant", "user"]


@dataclass(frozen=True)
class TextBlock:
    """Plain text emitted by the assistant."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolUseBlock:
    """A request from the assistant to run a named tool."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    type: Literal["tool_use"] = "tool_use"


ContentBlock = Union[TextBlock, ToolUseBlock]


@dataclass(frozen=True)
class ToolResultBlock:
    """Outcome of a tool invocation, reported in a user record."""

    tool_use_id: str
    content: str
    is_error: bool = False
    type: Literal["tool_result"] = "tool_result"


@dataclass(frozen=True)
class CacheCreation:
    ephemeral_5m_input_tokens: int = 0
    ephemeral_1h_input_tokens: int = 0


@dataclass(frozen=True)
class Usage:
    """Token accounting attached to an assistant message."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation: CacheCreation | None = None
    service_tier: str | None = None


@dataclass(frozen=True)
class AssistantMessage:
    id: str
    model: str
    content: list[ContentBlock] = field(default_factory=list)
    stop_reason: str | None = None
    usage: Usage = field(default_factory=Usage)


@dataclass(frozen=True)
class UserMessage:
    content: list[ToolResultBlock] = field(default_factory=list)


@dataclass(frozen=True)
class AssistantRecord:
    """One physical assistant line. Several may share a message id."""

    uuid: str
    session_id: str
    message: AssistantMessage
    parent_tool_use_id: str | None = None
    type: Literal["assistant"] = "assistant"

    @property
    def group_key(self) -> str:
        return self.message.id


@dataclass(frozen=True)
class UserRecord:
    """One user line carrying tool results and free-form result metadata."""

    uuid: str
    session_id: str
    message: UserMessage
    parent_tool_use_id: str | None = None
    # Opaque: file reads, todo diffs, sub-agent summaries...
    tool_use_result: Any = None
    type: Literal["user"] = "user"

    @property
    def group_key(self) -> str:
        return self.uuid


Record = Union[AssistantRecord, UserRecord]


@dataclass
class ConversationTurn:
    """A display-ready group of records forming one logical message."""

    message_id: str
    role: Role
    records: list[Record]
    content_blocks: list[ContentBlock]
    parent_tool_use_id: str | None
    session_id: str


@dataclass(frozen=True)
class ToolUse:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    content: str
    is_error: bool = False
    meta: Any = None


@dataclass
class ToolCallPair:
    """A tool invocation and its result, or None while still pending."""

    tool_use: ToolUse
    tool_result: ToolResult | None = None

    @property
    def pending(self) -> bool:
        return self.tool_result is None


@dataclass
class SubAgentNode:
    """Records spawned by one tool invocation, plus nested sub-agents."""

    parent_tool_use_id: str
    records: list[Record] = field(default_factory=list)
    children: list["SubAgentNode"] = field(default_factory=list)


@dataclass
class IndexMaps:
    """Lookup structures over every record seen so far (top-level and nested)."""

    by_uuid: dict[str, Record] = field(default_factory=dict)
    by_message_id: dict[str, list[Record]] = field(default_factory=dict)
    by_tool_use_id: dict[str, ToolCallPair] = field(default_factory=dict)
    by_parent_tool_use_id: dict[str, list[Record]] = field(default_factory=dict)


@dataclass
class Snapshot:
    """Derived state rebuilt from the accumulated record list."""

    turns: list[ConversationTurn] = field(default_factory=list)
    indexes: IndexMaps = field(default_factory=IndexMaps)


@dataclass(frozen=True)
class SessionMeta:
    """Host-supplied description of the loaded log, passed through untouched."""

    file_name: str
    file_size: int
    session_id: str
    loaded_at: str


@dataclass(frozen=True)
class RecentSession:
    file_name: str
    file_size: int
    session_id: str
    loaded_at: str
    record_count: int

    @classmethod
    def from_meta(cls, meta: SessionMeta, record_count: int) -> "RecentSession":
        return cls(
            file_name=meta.file_name,
            file_size=meta.file_size,
            session_id=meta.session_id,
            loaded_at=meta.loaded_at,
            record_count=record_count,
        )
