"""Group records into conversation turns."""

from cc_timeline.models import AssistantRecord, ContentBlock, ConversationTurn, Record


def group_into_turns(records: list[Record]) -> list[ConversationTurn]:
    """Collapse an ordered record list into turns.

    Assistant records group by message id (a message may arrive in several
    physical chunks); user records are always their own turn. Turns are
    ordered by first appearance of their key, records within a turn by
    arrival.
    """
    groups: dict[str, list[Record]] = {}
    for record in records:
        groups.setdefault(record.group_key, []).append(record)

    turns: list[ConversationTurn] = []
    for key, group in groups.items():
        first = group[0]

        content_blocks: list[ContentBlock] = []
        for record in group:
            if isinstance(record, AssistantRecord):
                content_blocks.extend(record.message.content)

        turns.append(
            ConversationTurn(
                message_id=key,
                role=first.type,
                records=group,
                content_blocks=content_blocks,
                parent_tool_use_id=first.parent_tool_use_id,
                session_id=first.session_id,
            )
        )

    return turns
