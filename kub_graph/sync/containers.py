"""Container children of a pod: persistence, metric extraction, termination."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from kub_graph.errors import PersistenceError
from kub_graph.models import Container, EntityRef, Kind, Metrics, MutationMode, format_timestamp
from kub_graph.store.base import GraphStore
from kub_graph.sync.identity import IdentityResolver
from kub_graph.sync.locks import KeyedLocks
from kub_graph.sync.metrics import aggregate_metrics, container_metrics
from kub_graph.sync.relations import CreateOrGetResolver

logger = logging.getLogger(__name__)


class ContainerSync:
    """Keeps a pod's container entities in step with its spec."""

    def __init__(
        self,
        store: GraphStore,
        identity: IdentityResolver | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.store = store
        self.resolver = CreateOrGetResolver(store, Kind.CONTAINER, identity=identity, locks=locks)

    def store_and_retrieve(
        self, k8s_pod: Any, pod_uid: str, namespace_uid: str | None
    ) -> tuple[list[Container], Metrics]:
        """Persist every container in the pod spec and return them with the pod rollup.

        A container that cannot be persisted is logged and left out, so the
        rollup covers only the containers the graph knows about.
        """
        meta = k8s_pod.metadata
        containers: list[Container] = []

        for spec in k8s_pod.spec.containers or []:
            xid = f"{meta.namespace}:{meta.name}:{spec.name}"
            try:
                metrics = container_metrics(spec)
            except ValueError as exc:
                logger.warning("Container %s has unparseable resources, skipping: %s", xid, exc)
                continue

            uid = self.resolver.create_or_get(xid)
            if not uid:
                logger.warning("Container %s of pod %s:%s not persisted", spec.name, meta.namespace, meta.name)
                continue

            payload: dict[str, Any] = {
                "uid": uid,
                "xid": xid,
                "cpuRequest": metrics.cpu_request,
                "cpuLimit": metrics.cpu_limit,
                "memoryRequest": metrics.memory_request,
                "memoryLimit": metrics.memory_limit,
            }
            if namespace_uid:
                payload["namespace"] = {"uid": namespace_uid, "xid": meta.namespace}
            try:
                self.store.mutate(payload, MutationMode.UPDATE)
            except PersistenceError as exc:
                logger.error("error while updating container %s of pod %s: %s", xid, pod_uid, exc)
                continue

            containers.append(Container(ref=EntityRef(xid=xid, uid=uid), metrics=metrics))

        return containers, aggregate_metrics(c.metrics for c in containers)

    def terminate(self, containers: list[EntityRef], end_time: datetime) -> None:
        """Mark each container ended. Best effort: failures are logged only."""
        stamp = format_timestamp(end_time)
        for ref in containers:
            try:
                self.store.mutate({"uid": ref.uid, "endTime": stamp}, MutationMode.UPDATE)
            except PersistenceError as exc:
                logger.error("error while terminating container %s: %s", ref.xid, exc)
