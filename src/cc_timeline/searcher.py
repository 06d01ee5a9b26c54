"""Free-text search over conversation turns, including nested sub-agents."""

import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from cc_timeline import config
from cc_timeline.grouper import group_into_turns
from cc_timeline.models import (
    ContentBlock,
    ConversationTurn,
    IndexMaps,
    Snapshot,
    ToolResultBlock,
    UserRecord,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Top-level turn keys that match, in turn order."""

    matched_turn_keys: list[str] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return len(self.matched_turn_keys)


def search(turns: list[ConversationTurn], indexes: IndexMaps, query: str) -> SearchResult:
    """Case-insensitive substring search over top-level turns.

    A match anywhere in a turn's sub-agent subtree is attributed to the
    top-level turn that spawned it, and each turn is reported at most once.
    """
    if not query.strip():
        return SearchResult()

    needle = query.lower()
    cleared: set[str] = set()
    return SearchResult(
        matched_turn_keys=[
            turn.message_id for turn in turns if turn_matches(turn, needle, indexes, cleared)
        ]
    )


def turn_matches(
    turn: ConversationTurn,
    needle: str,
    indexes: IndexMaps,
    cleared: set[str] | None = None,
) -> bool:
    """Check one turn, then its sub-agent subtree, against a lower-cased query.

    The subtree is walked with an explicit stack, so depth is limited only by
    memory. Each Task id is expanded at most once per call, which also ends
    cycles in parent linkage. Ids whose subtree was searched without a match
    are added to ``cleared`` and skipped by later calls sharing the set.
    """
    if own_content_matches(turn, needle):
        return True
    if cleared is None:
        cleared = set()

    visited: set[str] = set()
    stack = list(task_ids(turn))
    while stack:
        tool_use_id = stack.pop()
        if tool_use_id in visited:
            logger.debug("Sub-agent %s already searched for this turn", tool_use_id)
            continue
        if tool_use_id in cleared:
            continue
        visited.add(tool_use_id)

        records = indexes.by_parent_tool_use_id.get(tool_use_id)
        if not records:
            continue
        for nested in group_into_turns(records):
            if own_content_matches(nested, needle):
                return True
            stack.extend(task_ids(nested))

    cleared.update(visited)
    return False


def own_content_matches(turn: ConversationTurn, needle: str) -> bool:
    """Match a turn's own blocks and tool results, without descending."""
    if any(content_block_matches(block, needle) for block in turn.content_blocks):
        return True

    for record in turn.records:
        if not isinstance(record, UserRecord):
            continue
        if any(tool_result_matches(block, needle) for block in record.message.content):
            return True
        file_path = result_file_path(record.tool_use_result)
        if file_path and needle in file_path.lower():
            return True

    return False


def task_ids(turn: ConversationTurn) -> list[str]:
    return [
        block.id
        for block in turn.content_blocks
        if block.type == "tool_use" and block.name == config.TASK_TOOL_NAME
    ]


def content_block_matches(block: ContentBlock, needle: str) -> bool:
    if block.type == "text":
        return needle in block.text.lower()
    if block.type == "tool_use":
        return needle in block.name.lower() or needle in stringify_input(block.input).lower()
    return False


def tool_result_matches(block: ToolResultBlock, needle: str) -> bool:
    return needle in block.content.lower()


def stringify_input(tool_input: dict[str, Any]) -> str:
    """Compact JSON form of tool parameters used for matching."""
    return json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False, default=str)


def result_file_path(meta: Any) -> str | None:
    """Return ``file.filePath`` from tool result metadata, if present."""
    if not isinstance(meta, dict):
        return None
    file_info = meta.get("file")
    if not isinstance(file_info, dict):
        return None
    file_path = file_info.get("filePath")
    return file_path if isinstance(file_path, str) else None


def highlight_matches(text: str, query: str) -> str:
    """Wrap case-insensitive occurrences of query in Rich markup."""
    if not query.strip():
        return text
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    return pattern.sub(lambda m: f"[bold yellow]{m.group()}[/bold yellow]", text)


class SearchSession:
    """Debounced query state with next/previous navigation over matches.

    ``set_query`` records keystrokes; the query used for matching only
    changes once ``debounce`` seconds have passed on ``clock`` (or on
    ``flush()``). Matches are recomputed lazily against the latest snapshot.
    """

    def __init__(
        self,
        debounce: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.debounce = config.SEARCH_DEBOUNCE_SECONDS if debounce is None else debounce
        self.clock = clock
        self.query = ""
        self.current_index = 0
        self._debounced_query = ""
        self._pending: str | None = None
        self._deadline = 0.0
        self._snapshot = Snapshot()
        self._cache: tuple[str, Snapshot, SearchResult] | None = None

    def set_query(self, value: str) -> None:
        self.query = value
        self._pending = value
        self._deadline = self.clock() + self.debounce

    def flush(self) -> None:
        """Commit any pending query immediately."""
        if self._pending is not None:
            self._commit(self._pending)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot

    @property
    def debounced_query(self) -> str:
        self._settle()
        return self._debounced_query

    @property
    def is_active(self) -> bool:
        return bool(self.debounced_query.strip())

    @property
    def result(self) -> SearchResult:
        query = self.debounced_query
        snapshot = self._snapshot
        if self._cache is None or self._cache[0] != query or self._cache[1] is not snapshot:
            result = search(snapshot.turns, snapshot.indexes, query)
            self._cache = (query, snapshot, result)
        return self._cache[2]

    @property
    def match_count(self) -> int:
        return self.result.total_matches

    @property
    def current_match(self) -> str | None:
        keys = self.result.matched_turn_keys
        if not keys:
            return None
        return keys[self.current_index % len(keys)]

    def next_match(self) -> str | None:
        count = self.match_count
        if count:
            self.current_index = (self.current_index + 1) % count
        return self.current_match

    def prev_match(self) -> str | None:
        count = self.match_count
        if count:
            self.current_index = (self.current_index - 1 + count) % count
        return self.current_match

    def clear(self) -> None:
        self.query = ""
        self._pending = None
        self._debounced_query = ""
        self.current_index = 0

    def _settle(self) -> None:
        if self._pending is not None and self.clock() >= self._deadline:
            self._commit(self._pending)

    def _commit(self, value: str) -> None:
        self._pending = None
        self._debounced_query = value
        self.current_index = 0
