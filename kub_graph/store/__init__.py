"""Graph store backends."""

from __future__ import annotations

from kub_graph.store.base import GraphStore, StoreConfig
from kub_graph.store.dgraph import DgraphStore
from kub_graph.store.memory import InMemoryGraphStore


def get_store(config: StoreConfig) -> GraphStore:
    """Factory function to get the configured graph store."""
    if config.backend == "memory":
        return InMemoryGraphStore(path=config.path or None)
    if config.backend == "dgraph":
        store = DgraphStore(config.url, timeout=config.timeout)
        store.ensure_schema()
        return store
    raise ValueError(f"Unknown store backend: {config.backend}. Supported: memory, dgraph")


__all__ = ["DgraphStore", "GraphStore", "InMemoryGraphStore", "StoreConfig", "get_store"]
