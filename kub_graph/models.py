"""Data models for the workload graph.

Core concepts:
- Kind: the resource kinds persisted in the graph, each with a discriminator predicate
- EntityRef: a weak (relation-only) reference to another persisted entity
- Pod: the representative entity the synchronization engine builds and mutates
- LookupResult: Found / NotFound / LookupFailed outcome of identity resolution
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class Kind(str, Enum):
    """Resource kinds stored in the graph."""

    POD = "pod"
    NODE = "node"
    NAMESPACE = "namespace"
    DEPLOYMENT = "deployment"
    REPLICASET = "replicaset"
    STATEFULSET = "statefulset"
    DAEMONSET = "daemonset"
    JOB = "job"
    PVC = "pvc"
    CONTAINER = "container"
    LABEL = "label"

    @property
    def discriminator(self) -> str:
        """Boolean predicate that marks an entity as this kind.

        Needed because xid text is not unique across kinds: a namespace and a
        node may both be called "default".
        """
        return {
            Kind.POD: "isPod",
            Kind.NODE: "isNode",
            Kind.NAMESPACE: "isNamespace",
            Kind.DEPLOYMENT: "isDeployment",
            Kind.REPLICASET: "isReplicaset",
            Kind.STATEFULSET: "isStatefulset",
            Kind.DAEMONSET: "isDaemonset",
            Kind.JOB: "isJob",
            Kind.PVC: "isPersistentVolumeClaim",
            Kind.CONTAINER: "isContainer",
            Kind.LABEL: "isLabel",
        }[self]


class MutationMode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


# Predicates that hold edges rather than scalar values.
RELATION_PREDICATES = frozenset(
    {
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
    }
)

# Facet carrying the interaction weight on pod -> pod edges.
INTERACTION_FACET = "pod|count"


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp as RFC 3339, treating naive values as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    text = ts.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def pod_xid(namespace: str, name: str) -> str:
    return f"{namespace}:{name}"


# ---------------------------------------------------------------------------
# Identity resolution outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Found:
    uid: str


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class LookupFailed:
    cause: Exception


LookupResult = Union[Found, NotFound, LookupFailed]


# ---------------------------------------------------------------------------
# Relations and metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityRef:
    """Weak reference to a persisted entity: relation only, no ownership of lifetime."""

    xid: str
    uid: str

    def to_mutation(self) -> dict[str, Any]:
        return {"uid": self.uid, "xid": self.xid}


@dataclass(frozen=True)
class PodEdge:
    """Directed interaction edge to another pod, weighted by observed traffic."""

    xid: str
    uid: str
    count: float

    def to_mutation(self) -> dict[str, Any]:
        return {"uid": self.uid, "xid": self.xid, INTERACTION_FACET: self.count}


@dataclass(frozen=True)
class Metrics:
    """Resource requests and limits: CPU in cores, memory in bytes."""

    cpu_request: float = 0.0
    cpu_limit: float = 0.0
    memory_request: float = 0.0
    memory_limit: float = 0.0


@dataclass(frozen=True)
class Container:
    """A container persisted under its pod, with the metrics it contributes."""

    ref: EntityRef
    metrics: Metrics = field(default_factory=Metrics)


# ---------------------------------------------------------------------------
# Pod entity
# ---------------------------------------------------------------------------

# (attribute, wire predicate)
_POD_SCALARS = [
    ("xid", "xid"),
    ("is_pod", "isPod"),
    ("name", "name"),
    ("type", "type"),
    ("start_time", "startTime"),
    ("end_time", "endTime"),
    ("storage_request", "storageRequest"),
]
_POD_METRICS = [
    ("cpu_request", "cpuRequest"),
    ("cpu_limit", "cpuLimit"),
    ("memory_request", "memoryRequest"),
    ("memory_limit", "memoryLimit"),
]
_POD_RELATIONS = [
    ("node", "node"),
    ("namespace", "namespace"),
    ("deployment", "deployment"),
    ("replicaset", "replicaset"),
    ("statefulset", "statefulset"),
    ("daemonset", "daemonset"),
    ("job", "job"),
]
_POD_LISTS = [
    ("containers", "containers"),
    ("pvcs", "pvc"),
    ("pods", "pod"),
]


@dataclass
class Pod:
    """Pod entity as written to the graph.

    Empty and zero-valued attributes are left out of the mutation so an update
    never blanks what an earlier mutation stored. The label set is the
    exceptions: when ``labels`` is not None it is written as a full replacement,
    and a metric rollup set through set_metrics is always written.
    """

    xid: str
    uid: str = ""
    # Blank-node token used on CREATE; the store maps it to the assigned uid.
    token: str = ""

    is_pod: bool = False
    name: str = ""
    type: str = ""
    start_time: str = ""
    end_time: str = ""

    containers: list[EntityRef] = field(default_factory=list)
    pods: list[PodEdge] = field(default_factory=list)
    pvcs: list[EntityRef] = field(default_factory=list)

    node: EntityRef | None = None
    namespace: EntityRef | None = None
    deployment: EntityRef | None = None
    replicaset: EntityRef | None = None
    statefulset: EntityRef | None = None
    daemonset: EntityRef | None = None
    job: EntityRef | None = None

    cpu_request: float = 0.0
    cpu_limit: float = 0.0
    memory_request: float = 0.0
    memory_limit: float = 0.0
    storage_request: float = 0.0

    labels: list[EntityRef] | None = None

    # Set by set_metrics: the rollup is written even when it sums to zero.
    metrics_set: bool = field(default=False, repr=False)

    def set_metrics(self, metrics: Metrics) -> None:
        self.metrics_set = True
        self.cpu_request = metrics.cpu_request
        self.cpu_limit = metrics.cpu_limit
        self.memory_request = metrics.memory_request
        self.memory_limit = metrics.memory_limit

    def to_mutation(self) -> dict[str, Any]:
        data: dict[str, Any] = {"uid": self.uid or f"_:{self.token}"}
        for attr, pred in _POD_SCALARS:
            value = getattr(self, attr)
            if value:
                data[pred] = value
        if self.metrics_set:
            for attr, pred in _POD_METRICS:
                data[pred] = getattr(self, attr)
        for attr, pred in _POD_RELATIONS:
            ref = getattr(self, attr)
            if ref is not None:
                data[pred] = ref.to_mutation()
        for attr, pred in _POD_LISTS:
            refs = getattr(self, attr)
            if refs:
                data[pred] = [r.to_mutation() for r in refs]
        if self.labels is not None:
            data["label"] = [r.to_mutation() for r in self.labels]
        return data


# ---------------------------------------------------------------------------
# Sync summary (per-run output)
# ---------------------------------------------------------------------------


@dataclass
class SyncSummary:
    """Outcome of feeding a batch or stream of pods through the synchronizer."""

    synced: int = 0
    terminated: int = 0
    # (pod xid, error message)
    failures: list[tuple[str, str]] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def total(self) -> int:
        return self.synced + self.terminated + len(self.failures)
