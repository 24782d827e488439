"""Graph store interface.

A store persists entities shaped like Dgraph JSON mutations: a dict carrying
``uid``, scalar predicates, nested ``{"uid": ...}`` objects for single
relations, and lists of them for list relations. Facets ride on nested objects
as ``predicate|facet`` keys.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from kub_graph.models import MutationMode

BLANK_PREFIX = "_:"


@dataclass
class StoreConfig:
    """Configuration for the graph store backend."""

    backend: str = "memory"  # "memory", "dgraph"
    path: str = ""  # JSON snapshot file for the memory backend
    url: str = ""  # Dgraph HTTP endpoint
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url and self.backend == "dgraph":
            self.url = "http://localhost:8080"


class GraphStore(ABC):
    """Primitive mutate / lookup operations against the persistent graph."""

    @abstractmethod
    def mutate(
        self,
        payload: dict[str, Any],
        mode: MutationMode,
        replace: Iterable[str] = (),
    ) -> dict[str, str]:
        """Apply one mutation and return the uids assigned to its blank-node tokens.

        CREATE must introduce exactly one new node whose uid is ``_:<token>``.
        UPDATE must address an existing uid. ``replace`` names list predicates
        whose existing edges are dropped before the payload's edges are set.
        Raises PersistenceError when the mutation is rejected or fails.
        """
        ...

    @abstractmethod
    def lookup(self, xid: str, discriminator: str) -> str | None:
        """Return the uid of the entity with this xid and discriminator, or None.

        Raises PersistenceError when the lookup itself could not be performed.
        """
        ...

    @abstractmethod
    def get(self, uid: str, fields: Sequence[str]) -> dict[str, Any] | None:
        """Read the given predicates of one entity."""
        ...

    @abstractmethod
    def find(self, discriminator: str, fields: Sequence[str]) -> list[dict[str, Any]]:
        """Read the given predicates of every entity carrying ``discriminator``."""
        ...

    def close(self) -> None:
        """Release backend resources."""


def blank_token(uid: str) -> str | None:
    """Return the token of a blank-node uid (``_:pod`` -> ``pod``), else None."""
    if uid.startswith(BLANK_PREFIX):
        return uid[len(BLANK_PREFIX):]
    return None


def discriminator_of(payload: dict[str, Any]) -> str | None:
    """Return the kind discriminator predicate set on a payload, if any."""
    for key, value in payload.items():
        if key.startswith("is") and value is True:
            return key
    return None
