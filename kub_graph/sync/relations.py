"""Create-or-get resolvers for entities a pod relates to.

Each resolver returns the uid of the entity with a given xid, creating a
minimal entity first when none exists. Failures are logged and reported as
None: a relation that cannot be resolved is left off the pod, it never fails
the pod's synchronization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kub_graph.errors import DuplicateEntityError, PersistenceError
from kub_graph.models import EntityRef, Found, Kind, LookupFailed, MutationMode
from kub_graph.store.base import GraphStore
from kub_graph.sync.identity import IdentityResolver
from kub_graph.sync.locks import KeyedLocks

logger = logging.getLogger(__name__)


class CreateOrGetResolver:
    """Create-or-get for one kind of entity."""

    def __init__(
        self,
        store: GraphStore,
        kind: Kind,
        identity: IdentityResolver | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.store = store
        self.kind = kind
        self.identity = identity or IdentityResolver(store)
        self.locks = locks or KeyedLocks()

    def create_or_get(self, xid: str, **attributes: Any) -> str | None:
        if not xid:
            return None
        with self.locks.hold(f"{self.kind.value}/{xid}"):
            result = self.identity.resolve(xid, self.kind)
            if isinstance(result, Found):
                return result.uid
            if isinstance(result, LookupFailed):
                return None

            try:
                assigned = self.store.mutate(self._new_entity(xid, attributes), MutationMode.CREATE)
            except DuplicateEntityError as exc:
                # Another writer created it first; theirs is the entity.
                logger.debug("%s %s created concurrently as %s", self.kind.value, xid, exc.uid)
                return exc.uid
            except PersistenceError as exc:
                logger.warning("Could not create %s %s: %s", self.kind.value, xid, exc)
                return None

        uid = assigned.get(self.kind.value)
        if uid:
            logger.info("%s with xid: (%s) persisted in graph", self.kind.value, xid)
        return uid

    def _new_entity(self, xid: str, attributes: dict[str, Any]) -> dict[str, Any]:
        short_name = xid.rsplit(":", 1)[-1]
        return {
            "uid": f"_:{self.kind.value}",
            "xid": xid,
            self.kind.discriminator: True,
            "name": f"{self.kind.value}-{short_name}",
            "type": self.kind.value,
            **attributes,
        }


@dataclass
class RelationResolvers:
    """The per-kind create-or-get collaborators used while building a pod."""

    node: CreateOrGetResolver
    namespace: CreateOrGetResolver
    deployment: CreateOrGetResolver
    replicaset: CreateOrGetResolver
    statefulset: CreateOrGetResolver
    daemonset: CreateOrGetResolver
    job: CreateOrGetResolver
    pvc: CreateOrGetResolver
    label: CreateOrGetResolver

    @classmethod
    def for_store(
        cls,
        store: GraphStore,
        identity: IdentityResolver | None = None,
        locks: KeyedLocks | None = None,
    ) -> RelationResolvers:
        identity = identity or IdentityResolver(store)
        locks = locks or KeyedLocks()

        def resolver(kind: Kind) -> CreateOrGetResolver:
            return CreateOrGetResolver(store, kind, identity=identity, locks=locks)

        return cls(
            node=resolver(Kind.NODE),
            namespace=resolver(Kind.NAMESPACE),
            deployment=resolver(Kind.DEPLOYMENT),
            replicaset=resolver(Kind.REPLICASET),
            statefulset=resolver(Kind.STATEFULSET),
            daemonset=resolver(Kind.DAEMONSET),
            job=resolver(Kind.JOB),
            pvc=resolver(Kind.PVC),
            label=resolver(Kind.LABEL),
        )

    def ref(self, resolver: CreateOrGetResolver, xid: str) -> EntityRef | None:
        """Resolve ``xid`` with ``resolver`` and wrap it as a relation, or None."""
        uid = resolver.create_or_get(xid)
        if not uid:
            logger.debug("%s %s could not be resolved", resolver.kind.value, xid)
            return None
        return EntityRef(xid=xid, uid=uid)

    def label_ref(self, key: str, value: str) -> EntityRef | None:
        xid = f"{key}:{value}"
        uid = self.label.create_or_get(xid, key=key, value=value)
        return EntityRef(xid=xid, uid=uid) if uid else None


def storage_capacity(store: GraphStore, pvc_uid: str) -> float:
    """Read the storage capacity recorded on a persistent volume claim.

    A claim with no capacity recorded yet counts as zero. The xid is read too
    so a backend that only reports entities with predicates still finds it.
    """
    data = store.get(pvc_uid, ["xid", "storageCapacity"])
    if data is None:
        raise PersistenceError(f"persistent volume claim {pvc_uid} not found")
    return float(data.get("storageCapacity", 0.0))
