"""Weighted pod -> pod interaction edges."""

from __future__ import annotations

import logging
from typing import Sequence

from kub_graph.errors import IdentityLookupError, InteractionArgumentError, NotYetPersistedError
from kub_graph.models import Found, Kind, LookupFailed, MutationMode, Pod, PodEdge
from kub_graph.store.base import GraphStore
from kub_graph.sync.identity import IdentityResolver

logger = logging.getLogger(__name__)


class InteractionRecorder:
    """Persists observed traffic between pods that already exist in the graph.

    The source must have been persisted through its own synchronization path;
    this never creates it. Destinations that are not persisted yet are skipped.
    Recording the same destination again replaces the edge weight.
    """

    def __init__(self, store: GraphStore, identity: IdentityResolver | None = None):
        self.store = store
        self.identity = identity or IdentityResolver(store)

    def store_interactions(
        self,
        source_xid: str,
        destination_xids: Sequence[str],
        counts: Sequence[float],
    ) -> list[PodEdge]:
        """Attach one weighted edge per resolved destination and return them."""
        if len(destination_xids) != len(counts):
            raise InteractionArgumentError(
                f"got {len(destination_xids)} destination pods but {len(counts)} counts "
                f"for source pod {source_xid}"
            )

        result = self.identity.resolve(source_xid, Kind.POD)
        if isinstance(result, LookupFailed):
            raise IdentityLookupError(source_xid, Kind.POD.discriminator, result.cause)
        if not isinstance(result, Found):
            logger.warning("Source Pod %s is not persisted yet.", source_xid)
            raise NotYetPersistedError(source_xid)

        edges = self._destination_edges(destination_xids, counts)
        source = Pod(xid=source_xid, uid=result.uid, pods=edges)
        self.store.mutate(source.to_mutation(), MutationMode.UPDATE)
        return edges

    def _destination_edges(self, xids: Sequence[str], counts: Sequence[float]) -> list[PodEdge]:
        edges: list[PodEdge] = []
        for xid, count in zip(xids, counts):
            result = self.identity.resolve(xid, Kind.POD)
            if not isinstance(result, Found):
                logger.warning("Destination pod: %s is not persisted yet", xid)
                continue
            edges.append(PodEdge(xid=xid, uid=result.uid, count=float(count)))
        return edges
