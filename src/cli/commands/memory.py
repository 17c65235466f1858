"""Memory CLI commands: extract, remember, list, search, stats, delete, reset."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.utils import get_components
from memory.models import MemorySource, MemoryType
from observability import log_run_summary

console = Console()

_TYPE_CHOICE = click.Choice([t.value for t in MemoryType])


@click.group()
def memory():
    """Memories extracted from conversations."""
    pass


@memory.command("extract")
@click.argument("message")
@click.option("--reply", default="", help="Assistant reply for the same turn")
@click.option("--conversation", "conversation_id", default="cli", help="Conversation id")
def memory_extract(message: str, reply: str, conversation_id: str):
    """Run extraction on one user message and store new memories."""
    c = get_components()
    if not c["config"]["memory"]["enabled"]:
        console.print("[yellow]Memory extraction is disabled in config.[/]")
        return

    stored = c["pipeline"].extract_and_store_memories(message, reply, conversation_id)
    log_run_summary()
    if not stored:
        console.print("No new memories.")
        return

    for m in stored:
        embedded = "yes" if m.embedding else "no"
        line = escape(f"[{m.type.value}] {m.content}")
        console.print(
            f"[green]+[/] [dim]{m.id[:8]}[/] {line} "
            f"(importance={m.importance:g}, embedding={embedded})"
        )


@memory.command("remember")
@click.argument("content")
@click.option("--type", "-t", "memory_type", type=_TYPE_CHOICE, default="fact")
@click.option("--importance", "-i", type=float, default=None)
def memory_remember(content: str, memory_type: str, importance: float | None):
    """Store a memory directly, without extraction or dedup."""
    c = get_components()
    try:
        m = c["pipeline"].remember(
            content, MemoryType(memory_type), source=MemorySource.MANUAL.value,
            importance=importance,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)
    console.print(f"Remembered {m.id[:8]}: {escape(m.content)}")


@memory.command("list")
@click.option("--type", "-t", "memory_type", type=_TYPE_CHOICE, default=None)
@click.option("--limit", "-n", default=50)
def memory_list(memory_type: str | None, limit: int):
    """List memories, newest first."""
    c = get_components(with_embeddings=False)
    memories = c["store"].list_memories(
        MemoryType(memory_type) if memory_type else None, limit=limit
    )

    if not memories:
        console.print("No memories stored.")
        return

    table = Table(title="Memories")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Type", width=10)
    table.add_column("Memory")
    table.add_column("Imp", width=5)
    table.add_column("Source", width=15)
    table.add_column("Created", width=19)

    for m in memories:
        table.add_row(
            m.id[:8],
            m.type.value,
            escape(m.content[:80]),
            f"{m.importance:g}",
            m.source,
            m.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


@memory.command("search")
@click.argument("query")
@click.option("--limit", "-n", default=None, type=int)
def memory_search(query: str, limit: int | None):
    """Find memories relevant to QUERY."""
    c = get_components()
    mem_cfg = c["config"]["memory"]
    results = c["search"].get_relevant_memories(
        query,
        limit=limit or mem_cfg["search_limit"],
        min_similarity=mem_cfg["relevant_min_similarity"],
    )

    if not results:
        console.print("No matching memories.")
        return

    for r in results:
        line = escape(f"[{r.type}] {r.content}")
        console.print(f"[dim]{r.id[:8]}[/] {line} ({r.similarity:.0%})")


@memory.command("stats")
def memory_stats():
    """Show memory counts by type."""
    c = get_components(with_embeddings=False)
    stats = c["store"].get_stats()

    console.print(f"Total memories: {stats['total']}")
    console.print(f"With embedding: {stats['with_embedding']}")
    if stats["by_type"]:
        console.print("\nBy type:")
        for mem_type, cnt in sorted(stats["by_type"].items()):
            console.print(f"  {mem_type}: {cnt}")


@memory.command("delete")
@click.argument("memory_id")
@click.confirmation_option(prompt="Delete this memory?")
def memory_delete(memory_id: str):
    """Delete one memory by id."""
    c = get_components(with_embeddings=False)
    if not c["store"].delete(memory_id):
        console.print(f"[red]Memory not found: {memory_id}[/]")
        return
    console.print(f"Deleted memory {memory_id[:8]}")


@memory.command("reset")
@click.confirmation_option(prompt="Delete ALL memories? This cannot be undone.")
def memory_reset():
    """Delete all memories."""
    c = get_components(with_embeddings=False)
    count = c["store"].reset()
    console.print(f"Deleted {count} memories")
