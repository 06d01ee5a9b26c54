"""Tunable constants for cc-timeline."""

# Records per flush during streaming ingestion
BATCH_SIZE = 50

# Delay applied to query input before the match set is recomputed
SEARCH_DEBOUNCE_SECONDS = 0.3

# Tool invocations with this name spawn a sub-agent conversation
TASK_TOOL_NAME = "Task"
