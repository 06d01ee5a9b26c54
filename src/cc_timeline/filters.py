"""Faceted filtering of top-level turns."""

from dataclasses import dataclass, field, replace
from typing import Literal

from cc_timeline import config
from cc_timeline.models import AssistantRecord, ConversationTurn, UserRecord

RoleFilter = Literal["all", "assistant", "user"]
StatusFilter = Literal["all", "errors", "subagent", "text"]

ROLE_CHOICES: tuple[str, ...] = ("all", "assistant", "user")
STATUS_CHOICES: tuple[str, ...] = ("all", "errors", "subagent", "text")


@dataclass(frozen=True)
class FilterState:
    """Facet selection. Facets combine with AND; tool names with OR."""

    role: RoleFilter = "all"
    tool_names: frozenset[str] = field(default_factory=frozenset)
    status: StatusFilter = "all"
    model: str = ""

    @property
    def is_active(self) -> bool:
        return (
            self.role != "all"
            or bool(self.tool_names)
            or self.status != "all"
            or self.model != ""
        )

    def with_role(self, role: RoleFilter) -> "FilterState":
        return replace(self, role=role)

    def toggle_tool_name(self, name: str) -> "FilterState":
        return replace(self, tool_names=self.tool_names ^ {name})

    def with_status(self, status: StatusFilter) -> "FilterState":
        return replace(self, status=status)

    def with_model(self, model: str) -> "FilterState":
        return replace(self, model=model)

    def cleared(self) -> "FilterState":
        return FilterState()


def filter_turns(turns: list[ConversationTurn], filters: FilterState) -> list[ConversationTurn]:
    return [turn for turn in turns if matches_filters(turn, filters)]


def filter_turn_keys(turns: list[ConversationTurn], filters: FilterState) -> list[str]:
    return [turn.message_id for turn in filter_turns(turns, filters)]


def matches_filters(turn: ConversationTurn, filters: FilterState) -> bool:
    if filters.role != "all" and turn.role != filters.role:
        return False

    if filters.tool_names and not (tool_names_of(turn) & filters.tool_names):
        return False

    if filters.status == "errors" and not has_error(turn):
        return False
    if filters.status == "subagent" and not any(
        block.type == "tool_use" and block.name == config.TASK_TOOL_NAME
        for block in turn.content_blocks
    ):
        return False
    if filters.status == "text" and not any(block.type == "text" for block in turn.content_blocks):
        return False

    if filters.model and filters.model not in models_of(turn):
        return False

    return True


def tool_names_of(turn: ConversationTurn) -> set[str]:
    return {block.name for block in turn.content_blocks if block.type == "tool_use"}


def models_of(turn: ConversationTurn) -> set[str]:
    return {r.message.model for r in turn.records if isinstance(r, AssistantRecord)}


def has_error(turn: ConversationTurn) -> bool:
    return any(
        block.is_error
        for record in turn.records
        if isinstance(record, UserRecord)
        for block in record.message.content
    )


def available_tool_names(turns: list[ConversationTurn]) -> list[str]:
    names: set[str] = set()
    for turn in turns:
        names |= tool_names_of(turn)
    return sorted(names)


def available_models(turns: list[ConversationTurn]) -> list[str]:
    models: set[str] = set()
    for turn in turns:
        models |= models_of(turn)
    return sorted(models)
