"""Multi-index builder over session records."""

from cc_timeline.grouper import group_into_turns
from cc_timeline.models import (
    AssistantRecord,
    IndexMaps,
    Record,
    Snapshot,
    ToolCallPair,
    ToolResult,
    ToolUse,
    UserRecord,
)


def build_indexes(records: list[Record]) -> IndexMaps:
    """Build all four lookup maps from scratch in a single pass.

    The result is a pure function of ``records``: rebuilding from the same
    list always yields value-equal maps. A tool result is attached to its
    invocation whether it appears before or after it in the list.
    """
    indexes = IndexMaps()
    # Results whose invocation has not been seen yet
    early_results: dict[str, ToolResult] = {}

    for record in records:
        indexes.by_uuid[record.uuid] = record
        indexes.by_message_id.setdefault(record.group_key, []).append(record)

        if isinstance(record, AssistantRecord):
            for block in record.message.content:
                if block.type != "tool_use" or block.id in indexes.by_tool_use_id:
                    continue
                indexes.by_tool_use_id[block.id] = ToolCallPair(
                    tool_use=ToolUse(id=block.id, name=block.name, input=block.input),
                    tool_result=early_results.pop(block.id, None),
                )

        elif isinstance(record, UserRecord):
            for block in record.message.content:
                result = ToolResult(
                    content=block.content,
                    is_error=block.is_error,
                    meta=record.tool_use_result,
                )
                pair = indexes.by_tool_use_id.get(block.tool_use_id)
                if pair is not None:
                    pair.tool_result = result
                else:
                    early_results[block.tool_use_id] = result

        if record.parent_tool_use_id is not None:
            indexes.by_parent_tool_use_id.setdefault(record.parent_tool_use_id, []).append(record)

    return indexes


def top_level_records(records: list[Record]) -> list[Record]:
    return [r for r in records if r.parent_tool_use_id is None]


def derive_snapshot(records: list[Record]) -> Snapshot:
    """Rebuild turns (top-level only) and indexes (all records)."""
    return Snapshot(
        turns=group_into_turns(top_level_records(records)),
        indexes=build_indexes(records),
    )
