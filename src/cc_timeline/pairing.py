"""Pair tool invocations with their results."""

from cc_timeline.models import AssistantRecord, Record, ToolCallPair, ToolResult, ToolUse, UserRecord


def pair_tool_calls(records: list[Record]) -> list[ToolCallPair]:
    """Match tool_use blocks to tool_result blocks within a flat record list.

    Pairs come back in first-seen order of the invocation. Results with no
    matching invocation are dropped; invocations with no result stay pending.
    """
    pairs: dict[str, ToolCallPair] = {}

    for record in records:
        if isinstance(record, AssistantRecord):
            for block in record.message.content:
                if block.type == "tool_use" and block.id not in pairs:
                    pairs[block.id] = ToolCallPair(
                        tool_use=ToolUse(id=block.id, name=block.name, input=block.input)
                    )
        elif isinstance(record, UserRecord):
            for result in record.message.content:
                pair = pairs.get(result.tool_use_id)
                if pair is not None:
                    pair.tool_result = ToolResult(
                        content=result.content,
                        is_error=result.is_error,
                        meta=record.tool_use_result,
                    )

    return list(pairs.values())
