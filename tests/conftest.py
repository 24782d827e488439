"""Shared fixtures and helpers for kub-graph tests.

We build lightweight mock objects that replicate the attribute-access interface
of the kubernetes Python client objects, without requiring the kubernetes
package itself for model instantiation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from kub_graph.errors import PersistenceError
from kub_graph.models import Kind, MutationMode
from kub_graph.store.memory import InMemoryGraphStore
from kub_graph.sync.lifecycle import LifecycleManager


# ---------------------------------------------------------------------------
# Generic attribute-bag that behaves like a K8s API object
# ---------------------------------------------------------------------------


class K8sObj:
    """Minimal mock for K8s API objects.  Supports nested attribute access."""

    def __init__(self, **kwargs: Any):
        for k, v in kwargs.items():
            if isinstance(v, dict):
                setattr(self, k, K8sObj(**v))
            else:
                setattr(self, k, v)

    def __getattr__(self, name: str) -> Any:
        # Return None for any attribute not set (mirrors K8s client behaviour)
        return None

    def get(self, key, default=None):
        value = getattr(self, key)
        return default if value is None else value


# ---------------------------------------------------------------------------
# Pod factory
# ---------------------------------------------------------------------------

CREATED = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_container(
    name: str = "main",
    cpu_request: str | None = None,
    cpu_limit: str | None = None,
    memory_request: str | None = None,
    memory_limit: str | None = None,
) -> K8sObj:
    requests = {}
    limits = {}
    if cpu_request is not None:
        requests["cpu"] = cpu_request
    if memory_request is not None:
        requests["memory"] = memory_request
    if cpu_limit is not None:
        limits["cpu"] = cpu_limit
    if memory_limit is not None:
        limits["memory"] = memory_limit
    resources = K8sObj()
    # Plain dicts, as the K8s client returns them
    resources.requests = requests
    resources.limits = limits
    return K8sObj(name=name, resources=resources)


def make_claim_volume(claim_name: str) -> K8sObj:
    return K8sObj(
        name=claim_name,
        persistent_volume_claim=K8sObj(claim_name=claim_name),
    )


def make_pod(
    name: str,
    namespace: str = "default",
    node_name: str | None = "node-1",
    labels: dict | None = None,
    owners: list[tuple[str, str]] | None = None,
    containers: list[K8sObj] | None = None,
    volumes: list | None = None,
    creation_timestamp: datetime | None = None,
    deletion_timestamp: datetime | None = None,
) -> K8sObj:
    meta = K8sObj(
        name=name,
        namespace=namespace,
        owner_references=[K8sObj(kind=kind, name=owner) for kind, owner in owners or []] or None,
        creation_timestamp=creation_timestamp or CREATED,
        deletion_timestamp=deletion_timestamp,
    )
    # Set labels as a plain dict since production code iterates its items
    meta.labels = labels if labels is not None else {"app": name}

    return K8sObj(
        metadata=meta,
        spec=K8sObj(
            node_name=node_name,
            containers=containers if containers is not None else [make_container()],
            volumes=volumes or [],
        ),
    )


# ---------------------------------------------------------------------------
# Graph helpers
# ---------------------------------------------------------------------------


def seed_entity(store: InMemoryGraphStore, kind: Kind, xid: str, **props: Any) -> str:
    """Persist an entity directly and return its uid."""
    payload = {"uid": "_:seed", "xid": xid, kind.discriminator: True, **props}
    return store.mutate(payload, MutationMode.CREATE)["seed"]


POD_READ_FIELDS = [
    "xid",
    "name",
    "type",
    "startTime",
    "endTime",
    "cpuRequest",
    "cpuLimit",
    "memoryRequest",
    "memoryLimit",
    "storageRequest",
    "node",
    "namespace",
    "deployment",
    "replicaset",
    "statefulset",
    "daemonset",
    "job",
    "containers",
    "pvc",
    "label",
    "pod",
]


def read_pod(store: InMemoryGraphStore, uid: str) -> dict[str, Any]:
    return store.get(uid, POD_READ_FIELDS)


class UnreachableStore(InMemoryGraphStore):
    """Store whose identity lookups always fail."""

    def lookup(self, xid: str, discriminator: str) -> str | None:
        raise PersistenceError("connection refused")


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def manager(store: InMemoryGraphStore) -> LifecycleManager:
    return LifecycleManager.for_store(store)
