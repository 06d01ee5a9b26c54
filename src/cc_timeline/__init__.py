"""cc-timeline: ingest, index and search coding-agent session logs."""

__version__ = "0.1.0"
