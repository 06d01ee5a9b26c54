"""CLI for cc-timeline."""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.tree import Tree

from cc_timeline import __version__
from cc_timeline.models import ConversationTurn, SessionMeta, SubAgentNode

app = typer.Typer(
    name="cc-timeline",
    help="Inspect stream-json coding-agent session logs: turns, sub-agents, search and filters.",
    no_args_is_help=True,
)
console = Console()

PREVIEW_CHARS = 80


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cc-timeline {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Inspect coding-agent session logs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def load_session(path: Path, batch_size: int | None = None):
    """Ingest a log file, exiting with an error if nothing usable was found."""
    from cc_timeline.streaming import load_text

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error: cannot read {escape(str(path))}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    meta = SessionMeta(
        file_name=path.name,
        file_size=len(text.encode("utf-8")),
        session_id=path.stem,
        loaded_at=datetime.now(tz=timezone.utc).isoformat(),
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
        disable=not console.is_terminal,
    ) as progress:
        task = progress.add_task(f"Parsing {path.name}...", total=None)
        parsed = 0

        def on_batch(batch) -> None:
            nonlocal parsed
            parsed += len(batch.records)
            progress.update(task, description=f"Parsing {path.name}... {parsed} records")

        state = load_text(text, meta, batch_size=batch_size, on_batch=on_batch)

    if state.error:
        console.print(f"[red]Error: {state.error}[/red]")
        raise typer.Exit(1)

    return state


def turn_preview(turn: ConversationTurn) -> str:
    """One-line summary of a turn's text, tool calls or tool results."""
    parts: list[str] = []
    for block in turn.content_blocks:
        if block.type == "text":
            parts.append(block.text)
        elif block.type == "tool_use":
            parts.append(f"<{block.name}>")
    for record in turn.records:
        if record.type == "user":
            parts.extend(block.content for block in record.message.content)

    text = " ".join(" ".join(parts).split())
    if len(text) > PREVIEW_CHARS:
        text = text[: PREVIEW_CHARS - 3] + "..."
    return text


def print_turn(turn: ConversationTurn, query: str | None = None) -> None:
    from cc_timeline.searcher import highlight_matches

    role_style = "green" if turn.role == "assistant" else "cyan"
    preview = escape(turn_preview(turn))
    if query:
        preview = highlight_matches(preview, escape(query))
    model = turn_model(turn)
    model_label = f" [magenta]{escape(model)}[/magenta]" if model else ""
    console.print(
        f"[{role_style}]{turn.role:<9}[/{role_style}] [dim]{escape(turn.message_id)}[/dim]"
        f"{model_label}  {preview}"
    )


def turn_model(turn: ConversationTurn) -> str:
    """Short model name of an assistant turn, empty for user turns."""
    from cc_timeline.usage import format_model_short

    for record in turn.records:
        if record.type == "assistant" and record.message.model:
            return format_model_short(record.message.model)
    return ""


@app.command()
def show(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max turns to print (0 = all)")] = 0,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", help="Records per ingestion batch")
    ] = None,
) -> None:
    """Print the top-level conversation turns."""
    state = load_session(file, batch_size=batch_size)
    turns = state.snapshot.turns
    for turn in turns[:limit] if limit > 0 else turns:
        print_turn(turn)

    console.print("─" * 50)
    console.print(
        f"{len(turns)} turns from {state.record_count} records ({state.skipped_lines} lines skipped)"
    )


@app.command()
def search(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
    query: Annotated[str, typer.Argument(help="Case-insensitive substring")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Find turns matching a query, including inside sub-agent conversations."""
    if not query.strip():
        console.print("[red]Error: Query required[/red]")
        raise typer.Exit(1)

    from cc_timeline.searcher import search as run_search

    state = load_session(file)
    snapshot = state.snapshot
    result = run_search(snapshot.turns, snapshot.indexes, query)

    if json_output:
        console.print_json(
            data={
                "query": query,
                "matches": result.matched_turn_keys,
                "total_matches": result.total_matches,
            }
        )
        return

    if not result.total_matches:
        console.print("[yellow]No matching turns.[/yellow]")
        return

    by_key = {turn.message_id: turn for turn in snapshot.turns}
    for key in result.matched_turn_keys:
        print_turn(by_key[key], query=query)
    console.print("─" * 50)
    console.print(f"Found {result.total_matches} matching turns")


@app.command(name="filter")
def filter_command(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
    role: Annotated[str, typer.Option("--role", "-r", help="all, assistant or user")] = "all",
    tool: Annotated[
        list[str] | None, typer.Option("--tool", "-t", help="Tool name (can repeat, OR)")
    ] = None,
    status: Annotated[
        str, typer.Option("--status", "-s", help="all, errors, subagent or text")
    ] = "all",
    model: Annotated[str, typer.Option("--model", "-m", help="Exact model id")] = "",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show turns matching every selected facet."""
    from cc_timeline.filters import ROLE_CHOICES, STATUS_CHOICES, FilterState, filter_turns

    if role not in ROLE_CHOICES:
        console.print(f"[red]Error: --role must be one of {', '.join(ROLE_CHOICES)}[/red]")
        raise typer.Exit(1)
    if status not in STATUS_CHOICES:
        console.print(f"[red]Error: --status must be one of {', '.join(STATUS_CHOICES)}[/red]")
        raise typer.Exit(1)

    facets = FilterState(role=role, tool_names=frozenset(tool or []), status=status, model=model)
    state = load_session(file)
    turns = filter_turns(state.snapshot.turns, facets)

    if json_output:
        console.print_json(data={"matches": [t.message_id for t in turns], "total": len(turns)})
        return

    for turn in turns:
        print_turn(turn)
    console.print("─" * 50)
    console.print(f"{len(turns)} of {len(state.snapshot.turns)} turns")


def _add_subagents(root: Tree, forest: list[SubAgentNode], descriptions: dict[str, str]) -> None:
    from cc_timeline.usage import subtree_usage

    stack = [(root, node) for node in reversed(forest)]
    while stack:
        parent, node = stack.pop()
        usage = subtree_usage(node)
        label = descriptions.get(node.parent_tool_use_id, "")
        branch = parent.add(
            f"[cyan]{escape(node.parent_tool_use_id)}[/cyan] {escape(label)} "
            f"[dim]({len(node.records)} records, {usage.output_tokens:,} output tokens)[/dim]"
        )
        stack.extend((branch, child) for child in reversed(node.children))


@app.command()
def tree(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
) -> None:
    """Show nested sub-agent invocations."""
    from cc_timeline.subagents import build_subagent_tree

    state = load_session(file)
    forest = build_subagent_tree(state.records)
    if not forest:
        console.print("[yellow]No sub-agent invocations found.[/yellow]")
        return

    descriptions = {
        key: str(pair.tool_use.input.get("description", ""))
        for key, pair in state.snapshot.indexes.by_tool_use_id.items()
    }
    root = Tree(f"[bold]{escape(file.name)}[/bold]")
    _add_subagents(root, forest, descriptions)
    console.print(root)


@app.command()
def stats(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show token usage and record counts."""
    from cc_timeline.usage import format_model_short, summarize_usage

    state = load_session(file)
    summary = summarize_usage(state.records)
    models = sorted(summary.models)

    if json_output:
        data = asdict(summary)
        data["models"] = models
        data["cache_hit_rate"] = round(summary.cache_hit_rate, 1)
        data["turns"] = len(state.snapshot.turns)
        data["skipped_lines"] = state.skipped_lines
        console.print_json(data=data)
        return

    console.print(f"Records: {state.record_count} ({state.skipped_lines} lines skipped)")
    console.print(f"Turns: {len(state.snapshot.turns)}")
    console.print(f"Messages: {summary.assistant_records}A / {summary.user_records}U")
    console.print(f"Input: {summary.input_tokens:,}")
    console.print(f"Output: {summary.output_tokens:,}")
    console.print(f"Cache create: {summary.cache_creation_tokens:,}")
    console.print(f"Cache read: {summary.cache_read_tokens:,}")
    console.print(f"Cache hit: {summary.cache_hit_rate:.1f}%")
    if models:
        console.print("Models: " + ", ".join(format_model_short(m) for m in models))


@app.command()
def tool(
    file: Annotated[Path, typer.Argument(help="Session log (.jsonl)")],
    tool_use_id: Annotated[str, typer.Argument(help="Tool invocation id")],
) -> None:
    """Show one tool invocation and its result."""
    state = load_session(file)
    pair = state.snapshot.indexes.by_tool_use_id.get(tool_use_id)
    if pair is None:
        console.print(f"[red]Tool call not found: {escape(tool_use_id)}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{escape(pair.tool_use.name)}[/bold] [dim]{escape(tool_use_id)}[/dim]")
    console.print_json(data=pair.tool_use.input)

    if pair.tool_result is None:
        console.print("[yellow]Awaiting result[/yellow]")
    elif pair.tool_result.is_error:
        console.print(f"[red]{escape(pair.tool_result.content)}[/red]")
    else:
        console.print(escape(pair.tool_result.content))


if __name__ == "__main__":
    app()
