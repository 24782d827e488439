"""Configuration management for kub-graph."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kub_graph.store.base import StoreConfig

CONFIG_FILENAME = ".kub-graph.yaml"
DEFAULT_PATHS = [
    Path.cwd() / CONFIG_FILENAME,
    Path.home() / CONFIG_FILENAME,
    Path.home() / ".config" / "kub-graph" / "config.yaml",
]
DEFAULT_SNAPSHOT = str(Path.home() / ".kub-graph" / "graph.json")


@dataclass
class Config:
    """Application configuration."""

    # Kubernetes
    kubeconfig: str = ""
    context: str = ""
    namespace: str = ""  # Empty = all namespaces
    skip_namespaces: list[str] = field(default_factory=list)

    # Graph store
    store: StoreConfig = field(default_factory=lambda: StoreConfig(path=DEFAULT_SNAPSHOT))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from a dictionary (e.g., parsed YAML)."""
        store_data = data.pop("store", {}) or {}
        store_config = StoreConfig(
            backend=store_data.get("backend", "memory"),
            path=os.path.expanduser(store_data.get("path") or DEFAULT_SNAPSHOT),
            url=store_data.get("url", ""),
            timeout=float(store_data.get("timeout", 30.0)),
        )

        return cls(
            kubeconfig=data.get("kubeconfig", ""),
            context=data.get("context", ""),
            namespace=data.get("namespace", ""),
            skip_namespaces=data.get("skip_namespaces", []),
            store=store_config,
        )

    @classmethod
    def load(cls, path: str | None = None) -> Config:
        """Load config from file, with env var overrides."""
        config_data: dict[str, Any] = {}

        # Find config file
        if path:
            config_path = Path(path)
        else:
            config_path = None
            for p in DEFAULT_PATHS:
                if p.exists():
                    config_path = p
                    break

        if config_path and config_path.exists():
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}

        config = cls.from_dict(config_data)

        # Environment variable overrides
        if env_backend := os.environ.get("KUB_GRAPH_STORE"):
            config.store.backend = env_backend

        if env_path := os.environ.get("KUB_GRAPH_STORE_PATH"):
            config.store.path = os.path.expanduser(env_path)

        if env_url := os.environ.get("KUB_GRAPH_DGRAPH_URL"):
            config.store.url = env_url
            if config.store.backend == "memory" and not os.environ.get("KUB_GRAPH_STORE"):
                config.store.backend = "dgraph"

        config.store.__post_init__()  # Re-apply backend defaults
        return config
