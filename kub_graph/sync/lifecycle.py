"""Pod lifecycle synchronization: create, update or terminate per observed object."""

from __future__ import annotations

import logging
from typing import Any

from kub_graph.errors import IdentityLookupError, PersistenceError
from kub_graph.models import Found, Kind, LookupFailed, MutationMode, pod_xid
from kub_graph.store.base import GraphStore
from kub_graph.sync.builder import PodBuilder
from kub_graph.sync.containers import ContainerSync
from kub_graph.sync.identity import IdentityResolver
from kub_graph.sync.locks import KeyedLocks
from kub_graph.sync.relations import RelationResolvers

logger = logging.getLogger(__name__)


class LifecycleManager:
    """Converts one observed pod into graph mutations.

    ``store()`` is idempotent and safe to re-invoke after a failure: the
    steps are not transactional, but a retry resolves the uid persisted by an
    earlier partial run and continues on the update path. Calls for the same
    pod are serialized so at most one entity is ever created per xid.
    """

    def __init__(
        self,
        store: GraphStore,
        builder: PodBuilder,
        identity: IdentityResolver | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.graph = store
        self.builder = builder
        self.identity = identity or IdentityResolver(store)
        self.locks = locks or KeyedLocks()

    @classmethod
    def for_store(cls, store: GraphStore) -> LifecycleManager:
        """Wire the default collaborators around one store."""
        identity = IdentityResolver(store)
        locks = KeyedLocks()
        relations = RelationResolvers.for_store(store, identity=identity, locks=locks)
        containers = ContainerSync(store, identity=identity, locks=locks)
        builder = PodBuilder(store, relations, containers)
        return cls(store, builder, identity=identity, locks=locks)

    def store(self, k8s_pod: Any) -> str:
        """Synchronize one pod and return its uid.

        Raises IdentityLookupError when the pod's identity cannot be resolved
        and PersistenceError, unmodified, when the store rejects a mutation.
        """
        meta = k8s_pod.metadata
        xid = pod_xid(meta.namespace, meta.name)

        with self.locks.hold(f"{Kind.POD.value}/{xid}"):
            result = self.identity.resolve(xid, Kind.POD)
            if isinstance(result, LookupFailed):
                raise IdentityLookupError(xid, Kind.POD.discriminator, result.cause)

            if isinstance(result, Found):
                uid = result.uid
            else:
                pod = self.builder.build_create(k8s_pod)
                assigned = self.graph.mutate(pod.to_mutation(), MutationMode.CREATE)
                uid = assigned.get(pod.token, "")
                if not uid:
                    raise PersistenceError(f"create of pod {xid} assigned no uid to {pod.token!r}")
                logger.info("Pod with xid: (%s) persisted in graph", xid)

            if meta.deletion_timestamp:
                pod = self.builder.build_terminate(xid, uid, meta.deletion_timestamp)
                self.graph.mutate(pod.to_mutation(), MutationMode.UPDATE)
                logger.info("Pod with xid: (%s) marked terminated", xid)
            else:
                pod = self.builder.build_update(k8s_pod, uid)
                self.graph.mutate(pod.to_mutation(), MutationMode.UPDATE, replace=("label",))

        return uid
