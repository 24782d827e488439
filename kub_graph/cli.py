"""CLI entry point for kub-graph.

Usage:
    kub-graph sync [--namespace NS] [--context CTX] [--watch]
    kub-graph record SOURCE DEST=COUNT [DEST=COUNT ...]
    kub-graph capacity [--kind KIND] [--view logical|physical] [--name NAME] [--json]
"""

from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from kub_graph import __version__
from kub_graph.collector.pods import list_pods, watch_pods
from kub_graph.config import Config
from kub_graph.errors import KubGraphError
from kub_graph.k8s_client import K8sClient
from kub_graph.models import Kind
from kub_graph.output import render_capacity, render_sync_summary
from kub_graph.query import GROUP_PREDICATES, VIEWS, capacity
from kub_graph.store import GraphStore, get_store
from kub_graph.sync.interactions import InteractionRecorder
from kub_graph.sync.lifecycle import LifecycleManager
from kub_graph.sync.runner import run_sync

console = Console()


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _open_store(cfg: Config) -> GraphStore:
    try:
        return get_store(cfg.store)
    except (KubGraphError, ValueError) as exc:
        console.print(f"[bold red]Cannot open graph store:[/bold red] {exc}")
        sys.exit(1)


def _connect(cfg: Config) -> K8sClient:
    k8s = K8sClient(kubeconfig=cfg.kubeconfig or None, context=cfg.context or None)
    try:
        k8s.connect()
    except Exception as exc:
        console.print(f"[bold red]Failed to connect to cluster:[/bold red] {exc}")
        console.print(
            "\n[dim]Make sure your kubeconfig is valid and the cluster is reachable.\n"
            "You can specify a context with --context or a kubeconfig with --kubeconfig.[/dim]"
        )
        sys.exit(1)
    return k8s


@click.group()
@click.version_option(version=__version__, prog_name="kub-graph")
def main():
    """Keep a persistent graph of Kubernetes workloads in sync with the cluster.

    Pods, their nodes, namespaces, controllers, volume claims, containers and
    labels are stored as graph entities so capacity and interaction questions
    can be answered without querying the live API.
    """
    pass


@main.command()
@click.option("--namespace", "-n", default="", help="Limit to a specific namespace (default: all)")
@click.option("--context", "-c", default="", help="Kubernetes context to use")
@click.option("--kubeconfig", "-k", default="", help="Path to kubeconfig file")
@click.option("--config", "config_path", default="", help="Path to config file")
@click.option("--watch", "follow", is_flag=True, help="Keep following pod changes after the initial pass")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def sync(
    namespace: str,
    context: str,
    kubeconfig: str,
    config_path: str,
    follow: bool,
    verbose: bool,
):
    """Synchronize the cluster's pods into the graph."""
    _setup_logging(verbose)

    # Load config (file -> env -> CLI flags)
    cfg = Config.load(config_path or None)
    if namespace:
        cfg.namespace = namespace
    if context:
        cfg.context = context
    if kubeconfig:
        cfg.kubeconfig = kubeconfig

    console.print("[bold]Connecting to Kubernetes cluster...[/bold]")
    k8s = _connect(cfg)
    console.print(
        f"[green]Connected to cluster:[/green] {k8s.get_cluster_name()} "
        f"(context: {k8s.get_context_name()})"
    )

    store = _open_store(cfg)
    manager = LifecycleManager.for_store(store)

    try:
        pods = list_pods(k8s, namespace=cfg.namespace or None, skip_namespaces=cfg.skip_namespaces)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task_id = progress.add_task(f"Syncing {len(pods)} pods...", total=len(pods))
            summary = run_sync(manager, pods, on_pod=lambda _: progress.advance(task_id))
        render_sync_summary(summary, console)

        if follow:
            console.print("[bold]Watching pod changes (Ctrl+C to stop)...[/bold]")
            try:
                summary = run_sync(
                    manager,
                    watch_pods(k8s, namespace=cfg.namespace or None, skip_namespaces=cfg.skip_namespaces),
                )
            except KeyboardInterrupt:
                console.print("[dim]Stopped watching.[/dim]")
            else:
                render_sync_summary(summary, console)
    finally:
        store.close()


@main.command()
@click.argument("source")
@click.argument("destinations", nargs=-1, required=True)
@click.option("--config", "config_path", default="", help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def record(source: str, destinations: tuple[str, ...], config_path: str, verbose: bool):
    """Record observed traffic from SOURCE to each DEST=COUNT (pods as namespace:name)."""
    _setup_logging(verbose)

    xids: list[str] = []
    counts: list[float] = []
    for item in destinations:
        xid, sep, count = item.rpartition("=")
        if not sep or not xid:
            raise click.BadParameter(f"expected DEST=COUNT, got {item!r}", param_hint="DESTINATIONS")
        try:
            counts.append(float(count))
        except ValueError:
            raise click.BadParameter(f"count must be a number in {item!r}", param_hint="DESTINATIONS") from None
        xids.append(xid)

    cfg = Config.load(config_path or None)
    store = _open_store(cfg)
    try:
        edges = InteractionRecorder(store).store_interactions(source, xids, counts)
    except KubGraphError as exc:
        console.print(f"[bold red]Could not record interactions:[/bold red] {exc}")
        sys.exit(1)
    finally:
        store.close()

    console.print(f"[green]Recorded {len(edges)} interaction edge(s) from {source}[/green]")
    skipped = len(xids) - len(edges)
    if skipped:
        console.print(f"[yellow]Skipped {skipped} destination(s) not yet in the graph[/yellow]")


@main.command(name="capacity")
@click.option("--kind", type=click.Choice(sorted(GROUP_PREDICATES)), default=None, help="Group pods by this kind")
@click.option("--view", type=click.Choice(sorted(VIEWS)), default="logical", help="logical (namespaces) or physical (nodes)")
@click.option("--name", default=None, help="Only show the group with this name")
@click.option("--json", "as_json", is_flag=True, help="Print the capacity document as JSON")
@click.option("--config", "config_path", default="", help="Path to config file")
def capacity_cmd(kind: str | None, view: str, name: str | None, as_json: bool, config_path: str):
    """Show requested capacity rolled up from the graph."""
    cfg = Config.load(config_path or None)
    store = _open_store(cfg)
    try:
        doc = capacity(store, kind=kind, view=view, name=name)
    except KubGraphError as exc:
        console.print(f"[bold red]Capacity query failed:[/bold red] {exc}")
        sys.exit(1)
    finally:
        store.close()

    if as_json:
        click.echo(json.dumps(doc, indent=2))
    else:
        render_capacity(doc, console)


@main.command()
@click.option("--config", "config_path", default="", help="Path to config file")
def status(config_path: str):
    """Quick graph store check and entity counts."""
    cfg = Config.load(config_path or None)
    console.print(f"[green]Store backend:[/green] {cfg.store.backend}")
    store = _open_store(cfg)
    try:
        for kind in (Kind.POD, Kind.NODE, Kind.NAMESPACE, Kind.CONTAINER, Kind.PVC):
            entities = store.find(kind.discriminator, ["endTime"])
            active = sum(1 for e in entities if not e.get("endTime"))
            console.print(f"[green]{kind.value.capitalize()}s:[/green] {active}/{len(entities)} active")
    except KubGraphError as exc:
        console.print(f"[yellow]Could not read graph stats:[/yellow] {exc}")
    finally:
        store.close()


@main.command()
def init():
    """Generate a sample configuration file."""
    sample = """\
# kub-graph configuration
# Place this file at .kub-graph.yaml in your project or home directory.

# Kubernetes connection
# kubeconfig: ~/.kube/config
# context: my-cluster
# namespace: ""  # empty = all namespaces
skip_namespaces: []  # e.g., [kube-system]

# Graph store
store:
  backend: memory  # memory, dgraph
  path: ~/.kub-graph/graph.json  # memory backend snapshot file
  # url: http://localhost:8080  # dgraph alpha HTTP endpoint
  timeout: 30
"""
    from pathlib import Path

    out_path = Path.cwd() / ".kub-graph.yaml"
    if out_path.exists():
        console.print(f"[yellow]Config file already exists:[/yellow] {out_path}")
        return

    out_path.write_text(sample)
    console.print(f"[green]Created config file:[/green] {out_path}")
    console.print("[dim]Edit it to choose a graph store backend.[/dim]")


if __name__ == "__main__":
    main()
