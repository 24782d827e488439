"""Exceptions raised by the synchronization engine and graph stores.

Partial resolution (a volume claim, owner, node or interaction destination that
cannot be resolved) and unknown owner kinds are not exceptions: they are logged
and the enclosing operation carries on without the relation.
"""

from __future__ import annotations


class KubGraphError(Exception):
    """Base class for kub-graph errors."""


class PersistenceError(KubGraphError):
    """The graph store rejected or failed to apply a mutation or query."""


class DuplicateEntityError(PersistenceError):
    """A CREATE targeted an (xid, discriminator) pair that already has a uid."""

    def __init__(self, xid: str, discriminator: str, uid: str):
        super().__init__(f"{discriminator} entity with xid {xid!r} already exists as {uid}")
        self.xid = xid
        self.discriminator = discriminator
        self.uid = uid


class IdentityLookupError(KubGraphError):
    """Identity resolution failed; the entity may or may not exist."""

    def __init__(self, xid: str, discriminator: str, cause: Exception):
        super().__init__(f"lookup of {discriminator} xid {xid!r} failed: {cause}")
        self.xid = xid
        self.discriminator = discriminator
        self.cause = cause


class NotYetPersistedError(KubGraphError):
    """An operation referenced an entity that has not been persisted yet."""

    def __init__(self, xid: str):
        super().__init__(f"source pod: {xid} is not persisted yet")
        self.xid = xid


class InteractionArgumentError(KubGraphError, ValueError):
    """Destination ids and counts passed to the interaction recorder differ in length."""
