"""Capacity queries answered from the graph instead of the live API.

Produces JSON-ready documents: a root with cpu/memory/storage rolled up from
its active pods, and children grouped by the relation the caller asks for.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from kub_graph.models import Kind
from kub_graph.store.base import GraphStore

# Kind name accepted by queries -> pod predicate relating the pod to it.
GROUP_PREDICATES: dict[str, str] = {
    "namespace": "namespace",
    "node": "node",
    "deployment": "deployment",
    "replicaset": "replicaset",
    "statefulset": "statefulset",
    "daemonset": "daemonset",
    "job": "job",
}

VIEWS: dict[str, str] = {
    "logical": "namespace",
    "physical": "node",
}

_METRIC_FIELDS = ["cpuRequest", "cpuLimit", "memoryRequest", "memoryLimit", "storageRequest"]
POD_FIELDS = ["xid", "name", "endTime", *_METRIC_FIELDS, *GROUP_PREDICATES.values()]

UNASSIGNED = "unassigned"


def active_pods(store: GraphStore) -> list[dict[str, Any]]:
    """All pods in the graph that have not been marked ended."""
    return [p for p in store.find(Kind.POD.discriminator, POD_FIELDS) if not p.get("endTime")]


def capacity(
    store: GraphStore,
    kind: str | None = None,
    view: str = "logical",
    name: str | None = None,
) -> dict[str, Any]:
    """Build a capacity document.

    Args:
        kind: Group pods by this related kind (overrides ``view``).
        view: "logical" groups by namespace, "physical" by node.
        name: Return only the group with this name (xid or short name).
    """
    if kind is not None and kind not in GROUP_PREDICATES:
        raise ValueError(f"Unknown kind: {kind}. Supported: {', '.join(GROUP_PREDICATES)}")
    if view not in VIEWS:
        raise ValueError(f"Unknown view: {view}. Supported: {', '.join(VIEWS)}")

    group_kind = kind or VIEWS[view]
    predicate = GROUP_PREDICATES[group_kind]

    groups: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for pod in active_pods(store):
        ref = pod.get(predicate)
        groups[ref.get("xid", UNASSIGNED) if ref else UNASSIGNED].append(pod)

    if name is not None:
        for xid, pods in groups.items():
            if xid == name or xid.rsplit(":", 1)[-1] == name:
                return _node(xid, group_kind, [_pod_doc(p) for p in pods])
        return _node(name, group_kind, [])

    children = [
        _node(xid, group_kind, [_pod_doc(p) for p in pods])
        for xid, pods in sorted(groups.items())
    ]
    return _node("cluster", "cluster", children)


def _pod_doc(pod: dict[str, Any]) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": pod.get("xid", pod["uid"]), "type": "pod"}
    for f in _METRIC_FIELDS:
        doc[f] = float(pod.get(f, 0.0))
    return doc


def _node(name: str, type_: str, children: list[dict[str, Any]]) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": name, "type": type_}
    for f in _METRIC_FIELDS:
        doc[f] = sum(c[f] for c in children)
    doc["children"] = children
    return doc
