"""Integration tests for the CLI."""

import json
import subprocess
import sys


def _run(*args):
    return subprocess.run(
        [sys.executable, "-m", "cc_timeline.cli", *args],
        capture_output=True,
        text=True,
    )


def test_cli_help():
    """Test that --help works."""
    result = _run("--help")
    assert result.returncode == 0
    assert "search" in result.stdout
    assert "filter" in result.stdout
    assert "tree" in result.stdout


def test_cli_version():
    """Test that --version works."""
    result = _run("--version")
    assert result.returncode == 0
    assert "cc-timeline" in result.stdout


def test_show(sample_session_jsonl):
    """Test that show lists top-level turns."""
    result = _run("show", str(sample_session_jsonl))
    assert result.returncode == 0
    assert "4 turns from 9 records" in result.stdout
    assert "opus-4-5" in result.stdout


def test_search_json_output(sample_session_jsonl):
    """Test that search --json reports turns matched through sub-agents."""
    result = _run("search", str(sample_session_jsonl), "haystack", "--json")
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data == {"query": "haystack", "matches": ["m2"], "total_matches": 1}


def test_search_empty_query(sample_session_jsonl):
    """Test that an empty query is an error."""
    result = _run("search", str(sample_session_jsonl), "  ")
    assert result.returncode == 1
    assert "Query required" in result.stdout


def test_filter_json_output(sample_session_jsonl):
    """Test that filter --json applies facets."""
    result = _run("filter", str(sample_session_jsonl), "--status", "subagent", "--json")
    assert result.returncode == 0
    assert json.loads(result.stdout) == {"matches": ["m2"], "total": 1}


def test_stats_json_output(sample_session_jsonl):
    """Test that stats --json reports counts."""
    result = _run("stats", str(sample_session_jsonl), "--json")
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["assistant_records"] == 6
    assert data["user_records"] == 3
    assert data["turns"] == 4


def test_tree(sample_session_jsonl):
    """Test that tree renders nested sub-agents."""
    result = _run("tree", str(sample_session_jsonl))
    assert result.returncode == 0
    assert "task1" in result.stdout
    assert "task2" in result.stdout


def test_tool_pending_and_resolved(temp_dir, log):
    """Test that tool shows results or a pending marker."""
    log.assistant("m1", log.tool_use("t1", "Bash", {"command": "ls"}), log.tool_use("t2", "Bash"))
    log.user(log.tool_result("t1", "README.md"))
    path = temp_dir / "tools.jsonl"
    path.write_text(log.text(), encoding="utf-8")

    done = _run("tool", str(path), "t1")
    assert done.returncode == 0
    assert "README.md" in done.stdout

    pending = _run("tool", str(path), "t2")
    assert pending.returncode == 0
    assert "Awaiting result" in pending.stdout


def test_empty_file_fails(temp_dir):
    """Test that an empty log exits with an error."""
    path = temp_dir / "empty.jsonl"
    path.write_text("\n\n", encoding="utf-8")

    result = _run("show", str(path))
    assert result.returncode == 1
    assert "empty input" in result.stdout
