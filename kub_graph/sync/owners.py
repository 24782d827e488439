"""Controller owner resolution for pods."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from kub_graph.models import Pod
from kub_graph.sync.relations import RelationResolvers

logger = logging.getLogger(__name__)

# Owner kind -> name of both the resolver on RelationResolvers and the Pod slot.
# New owner kinds are supported by adding an entry here.
OWNER_SLOTS: dict[str, str] = {
    "Deployment": "deployment",
    "ReplicaSet": "replicaset",
    "StatefulSet": "statefulset",
    "Job": "job",
    "DaemonSet": "daemonset",
}


class OwnerResolver:
    """Attaches a relation to each recognized controller owner of a pod.

    References are handled independently: a pod listing both a ReplicaSet and
    a Job owner gets both slots filled. Unknown kinds are logged and skipped.
    """

    def __init__(self, relations: RelationResolvers, slots: dict[str, str] | None = None):
        self.relations = relations
        self.slots = slots if slots is not None else OWNER_SLOTS

    def resolve(self, pod: Pod, namespace: str, owners: Iterable[Any] | None) -> None:
        for owner in owners or []:
            slot = self.slots.get(owner.kind)
            if slot is None:
                logger.warning("Unknown owner type %s for pod %s", owner.kind, pod.xid)
                continue

            owner_xid = f"{namespace}:{owner.name}"
            ref = self.relations.ref(getattr(self.relations, slot), owner_xid)
            if ref is None:
                logger.warning("%s owner %s of pod %s could not be resolved", owner.kind, owner_xid, pod.xid)
                continue
            setattr(pod, slot, ref)
