"""Reconstruct nested sub-agent conversations from parent linkage."""

import logging
from collections.abc import Iterator

from cc_timeline import config
from cc_timeline.models import AssistantRecord, Record, SubAgentNode, ToolUseBlock

logger = logging.getLogger(__name__)


def task_invocations(records: list[Record]) -> Iterator[ToolUseBlock]:
    """Yield every sub-agent spawning tool_use block in record order."""
    for record in records:
        if not isinstance(record, AssistantRecord):
            continue
        for block in record.message.content:
            if block.type == "tool_use" and block.name == config.TASK_TOOL_NAME:
                yield block


def children_by_parent(records: list[Record]) -> dict[str, list[Record]]:
    children: dict[str, list[Record]] = {}
    for record in records:
        if record.parent_tool_use_id is not None:
            children.setdefault(record.parent_tool_use_id, []).append(record)
    return children


def build_subagent_tree(records: list[Record]) -> list[SubAgentNode]:
    """Build one node per top-level Task invocation that has child records.

    Nested Task invocations found among a node's children become child
    nodes, to any depth. An id already on the current path is not expanded
    again, so cyclic parent linkage terminates.
    """
    children = children_by_parent(records)

    roots: list[str] = []
    top_level = [r for r in records if r.parent_tool_use_id is None]
    for block in task_invocations(top_level):
        if block.id in children and block.id not in roots:
            roots.append(block.id)

    return [build_node(root, children, frozenset()) for root in roots]


def build_node(
    tool_use_id: str,
    children: dict[str, list[Record]],
    path: frozenset[str] = frozenset(),
) -> SubAgentNode:
    """Materialize the node for ``tool_use_id`` and its nested sub-agents.

    Expansion uses an explicit stack, so nesting depth is not bounded by the
    interpreter's recursion limit. Each pending node carries the ids on its
    own path from the root.
    """
    root = SubAgentNode(parent_tool_use_id=tool_use_id, records=children.get(tool_use_id, []))
    stack = [(root, path | {tool_use_id})]
    while stack:
        node, node_path = stack.pop()
        seen: set[str] = set()
        for block in task_invocations(node.records):
            if block.id not in children or block.id in seen:
                continue
            if block.id in node_path:
                logger.debug(
                    "Parent cycle at %s under %s, not descending", block.id, node.parent_tool_use_id
                )
                continue
            seen.add(block.id)
            child = SubAgentNode(parent_tool_use_id=block.id, records=children[block.id])
            node.children.append(child)
            stack.append((child, node_path | {block.id}))

    return root


def walk(node: SubAgentNode) -> Iterator[SubAgentNode]:
    """Depth-first, pre-order iteration over a node and its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def subagent_for(tool_use_id: str, by_parent: dict[str, list[Record]]) -> SubAgentNode | None:
    """Materialize the sub-agent view for one invocation from the by-parent index.

    Returns None when the invocation spawned no records.
    """
    if tool_use_id not in by_parent:
        return None
    return build_node(tool_use_id, by_parent, frozenset())
