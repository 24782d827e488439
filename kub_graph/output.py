"""Rich terminal output for sync runs and capacity queries."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from kub_graph.models import SyncSummary


def render_sync_summary(summary: SyncSummary, console: Console) -> None:
    """Render the outcome of a sync run."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")

    fail_style = "bold red" if summary.failures else "green"
    table.add_row("Pods observed", str(summary.total))
    table.add_row("Synced", str(summary.synced))
    table.add_row("Terminated", str(summary.terminated))
    table.add_row(
        Text("Failed", style=fail_style),
        Text(str(len(summary.failures)), style=fail_style),
    )
    table.add_row("Duration", f"{summary.duration_ms / 1000:.1f}s")

    console.print(
        Panel(
            table,
            title="[bold]Graph Sync[/bold]",
            border_style="red" if summary.failures else "green",
        )
    )

    if summary.failures:
        failures = Table(title="Failures", show_lines=False)
        failures.add_column("Pod", style="cyan")
        failures.add_column("Error")
        for xid, message in summary.failures:
            failures.add_row(xid, message)
        console.print(failures)


def render_capacity(doc: dict[str, Any], console: Console) -> None:
    """Render a capacity document as a tree of groups and pods."""
    tree = Tree(_label(doc, bold=True))
    for child in doc.get("children", []):
        branch = tree.add(_label(child, bold=child.get("type") != "pod"))
        for grandchild in child.get("children", []):
            branch.add(_label(grandchild))
    console.print(tree)


def _label(doc: dict[str, Any], bold: bool = False) -> Text:
    text = Text()
    text.append(f"{doc['type']}/", style="dim")
    text.append(doc["name"], style="bold cyan" if bold else "cyan")
    text.append(
        f"  cpu {doc['cpuRequest']:.2f}/{doc['cpuLimit']:.2f}"
        f"  mem {_fmt_memory(doc['memoryRequest'])}/{_fmt_memory(doc['memoryLimit'])}"
        f"  storage {_fmt_memory(doc['storageRequest'])}",
        style="dim",
    )
    return text


def _fmt_memory(bytes_val: float) -> str:
    """Format bytes to human-readable."""
    if bytes_val >= 1024**3:
        return f"{bytes_val / 1024**3:.1f}Gi"
    if bytes_val >= 1024**2:
        return f"{bytes_val / 1024**2:.0f}Mi"
    return f"{bytes_val / 1024:.0f}Ki"
