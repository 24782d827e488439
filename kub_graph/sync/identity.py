"""Identity resolution: (xid, kind) -> internal uid."""

from __future__ import annotations

import logging

from kub_graph.errors import PersistenceError
from kub_graph.models import Found, Kind, LookupFailed, LookupResult, NotFound
from kub_graph.store.base import GraphStore

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Maps an external id and kind to the uid the store assigned to it.

    A failed lookup is reported as LookupFailed, never as NotFound, so callers
    don't create a second entity while the store is unreachable.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def resolve(self, xid: str, kind: Kind) -> LookupResult:
        try:
            uid = self.store.lookup(xid, kind.discriminator)
        except PersistenceError as exc:
            logger.warning("Lookup of %s %s failed: %s", kind.value, xid, exc)
            return LookupFailed(exc)
        if uid:
            return Found(uid)
        return NotFound()
