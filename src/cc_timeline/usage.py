"""Token usage aggregation."""

import re
from dataclasses import dataclass, field

from cc_timeline.models import AssistantRecord, Record, SubAgentNode
from cc_timeline.subagents import walk

_DATE_SUFFIX = re.compile(r"-\d{8}$")


@dataclass
class UsageSummary:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    assistant_records: int = 0
    user_records: int = 0
    models: set[str] = field(default_factory=set)

    @property
    def cache_hit_rate(self) -> float:
        """Cache reads as a percentage of all input-side tokens."""
        total = self.cache_read_tokens + self.cache_creation_tokens + self.input_tokens
        if total == 0:
            return 0.0
        return self.cache_read_tokens / total * 100


def summarize_usage(records: list[Record]) -> UsageSummary:
    """Aggregate token counts over records.

    Chunks of one assistant message repeat the same usage block, so tokens
    are counted once per message id. Duplicate records (same uuid) are
    counted once.
    """
    summary = UsageSummary()
    seen_records: set[str] = set()
    seen_messages: set[str] = set()

    for record in records:
        if record.uuid in seen_records:
            continue
        seen_records.add(record.uuid)

        if not isinstance(record, AssistantRecord):
            summary.user_records += 1
            continue

        summary.assistant_records += 1
        if record.message.model:
            summary.models.add(record.message.model)

        if record.message.id in seen_messages:
            continue
        seen_messages.add(record.message.id)

        usage = record.message.usage
        summary.input_tokens += usage.input_tokens
        summary.output_tokens += usage.output_tokens
        summary.cache_creation_tokens += usage.cache_creation_input_tokens
        summary.cache_read_tokens += usage.cache_read_input_tokens

    return summary


def subtree_usage(node: SubAgentNode) -> UsageSummary:
    """Aggregate usage over a sub-agent and all nested sub-agents."""
    records: list[Record] = []
    for descendant in walk(node):
        records.extend(descendant.records)
    return summarize_usage(records)


def format_model_short(model: str) -> str:
    """claude-opus-4-5-20251101 -> opus-4-5"""
    short = model.removeprefix("claude-")
    return _DATE_SUFFIX.sub("", short)
