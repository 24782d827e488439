"""Pod entity builder.

Assembles the Pod entity to persist for each lifecycle phase:

- create: identity, start time and the relations fixed at scheduling time
  (node, namespace, volume claims, controller owners)
- update: namespace, containers with their metric rollup, and the label set
- terminate: end time only, plus a best-effort cascade to containers
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from kub_graph.errors import PersistenceError
from kub_graph.models import EntityRef, Pod, format_timestamp, pod_xid
from kub_graph.store.base import GraphStore
from kub_graph.sync.containers import ContainerSync
from kub_graph.sync.owners import OwnerResolver
from kub_graph.sync.relations import RelationResolvers, storage_capacity

logger = logging.getLogger(__name__)

# Blank-node token for the pod introduced by a create mutation.
POD_TOKEN = "pod"


class PodBuilder:
    """Builds Pod entities from K8s pod objects."""

    def __init__(
        self,
        store: GraphStore,
        relations: RelationResolvers,
        containers: ContainerSync,
        owners: OwnerResolver | None = None,
    ):
        self.store = store
        self.relations = relations
        self.containers = containers
        self.owners = owners or OwnerResolver(relations)

    def build_create(self, k8s_pod: Any) -> Pod:
        meta = k8s_pod.metadata
        spec = k8s_pod.spec
        pod = Pod(
            xid=pod_xid(meta.namespace, meta.name),
            token=POD_TOKEN,
            is_pod=True,
            name="pod-" + meta.name,
            type="pod",
        )
        if meta.creation_timestamp:
            pod.start_time = format_timestamp(meta.creation_timestamp)

        if spec.node_name:
            pod.node = self.relations.ref(self.relations.node, spec.node_name)
            if pod.node is None:
                logger.warning("Node %s of pod %s could not be resolved", spec.node_name, pod.xid)

        pod.namespace = self.relations.ref(self.relations.namespace, meta.namespace)
        pod.pvcs, pod.storage_request = self._volumes(k8s_pod)
        self.owners.resolve(pod, meta.namespace, meta.owner_references)
        return pod

    def build_update(self, k8s_pod: Any, uid: str) -> Pod:
        meta = k8s_pod.metadata
        pod = Pod(xid=pod_xid(meta.namespace, meta.name), uid=uid)
        pod.namespace = self.relations.ref(self.relations.namespace, meta.namespace)

        namespace_uid = pod.namespace.uid if pod.namespace else None
        containers, metrics = self.containers.store_and_retrieve(k8s_pod, uid, namespace_uid)
        pod.containers = [c.ref for c in containers]
        pod.set_metrics(metrics)

        pod.labels = self._labels(pod.xid, meta.labels)
        return pod

    def build_terminate(self, xid: str, uid: str, deleted_at: datetime) -> Pod:
        pod = Pod(xid=xid, uid=uid, end_time=format_timestamp(deleted_at))
        # The entity is built fresh, so its container list is empty here and
        # the cascade reaches no containers.
        self.containers.terminate(pod.containers, deleted_at)
        return pod

    def _volumes(self, k8s_pod: Any) -> tuple[list[EntityRef], float]:
        """Resolve claimed volumes and sum the capacity of those that resolved."""
        namespace = k8s_pod.metadata.namespace
        refs: list[EntityRef] = []
        storage = 0.0

        for vol in k8s_pod.spec.volumes or []:
            claim = vol.persistent_volume_claim
            if not claim:
                continue
            xid = f"{namespace}:{claim.claim_name}"
            ref = self.relations.ref(self.relations.pvc, xid)
            if ref is None:
                logger.warning("Persistent volume claim %s could not be resolved, skipping", xid)
                continue
            refs.append(ref)
            try:
                storage += storage_capacity(self.store, ref.uid)
            except PersistenceError as exc:
                logger.error("error while getting pvc from uid: (%s), error: (%s)", ref.uid, exc)

        return refs, storage

    def _labels(self, xid: str, labels: dict[str, str] | None) -> list[EntityRef]:
        logger.debug("k8s pod: (%s), labels: (%s)", xid, labels)
        refs: list[EntityRef] = []
        for key, value in sorted((labels or {}).items()):
            ref = self.relations.label_ref(key, value)
            if ref is None:
                logger.warning("Label %s=%s of pod %s could not be resolved", key, value, xid)
                continue
            refs.append(ref)
        return refs
