"""Dgraph backend driven over Dgraph's HTTP API with httpx.

Creates go through an upsert block so create-if-absent is atomic on the
server: the conditional mutation only runs when no entity with the same xid
and discriminator exists.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Sequence

import httpx

from kub_graph.errors import DuplicateEntityError, PersistenceError
from kub_graph.models import RELATION_PREDICATES, Kind, MutationMode
from kub_graph.store.base import GraphStore, blank_token, discriminator_of

logger = logging.getLogger(__name__)

_UID_RE = re.compile(r"^0x[0-9a-fA-F]+$")
_PREDICATE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SCALAR_SCHEMA = """\
xid: string @index(exact) @upsert .
name: string @index(exact) .
type: string .
key: string .
value: string .
startTime: string .
endTime: string .
cpuRequest: float .
cpuLimit: float .
memoryRequest: float .
memoryLimit: float .
storageRequest: float .
storageCapacity: float .
"""

_RELATION_SCHEMA = """\
node: uid .
namespace: uid .
deployment: uid .
replicaset: uid .
statefulset: uid .
daemonset: uid .
job: uid .
containers: [uid] @reverse .
pvc: [uid] .
label: [uid] .
pod: [uid] @reverse .
"""

SCHEMA = (
    _SCALAR_SCHEMA
    + "".join(f"{kind.discriminator}: bool @index(bool) .\n" for kind in Kind)
    + _RELATION_SCHEMA
)


class DgraphStore(GraphStore):
    """Graph store backed by a Dgraph alpha's HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 30.0, client: httpx.Client | None = None):
        self.url = url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.url, timeout=timeout)

    def ensure_schema(self) -> None:
        """Install predicate types and indexes (idempotent)."""
        self._post("/alter", content=SCHEMA)

    def mutate(
        self,
        payload: dict[str, Any],
        mode: MutationMode,
        replace: Iterable[str] = (),
    ) -> dict[str, str]:
        uid = str(payload.get("uid", ""))
        token = blank_token(uid)

        if mode == MutationMode.CREATE:
            if token is None:
                raise PersistenceError(f"create mutation needs a blank-node uid, got {uid!r}")
            return self._create(payload, token)

        if token is not None:
            raise PersistenceError(f"update mutation cannot introduce blank node {uid!r}")
        body: dict[str, Any] = {"set": [payload]}
        preds = [_predicate(p) for p in replace]
        if preds:
            # Dgraph applies deletions before sets within one request.
            body["delete"] = [{"uid": uid, **{p: None for p in preds}}]
        self._post("/mutate", params={"commitNow": "true"}, json=body)
        return {}

    def lookup(self, xid: str, discriminator: str) -> str | None:
        query = (
            "query q($xid: string) {\n"
            f"  q(func: eq(xid, $xid)) @filter(has({_predicate(discriminator)})) {{ uid }}\n"
            "}"
        )
        data = self._post("/query", json={"query": query, "variables": {"$xid": xid}})
        found = data.get("data", {}).get("q", [])
        if len(found) > 1:
            logger.warning("xid %s (%s) resolves to %d entities", xid, discriminator, len(found))
        return found[0]["uid"] if found else None

    def get(self, uid: str, fields: Sequence[str]) -> dict[str, Any] | None:
        if not _UID_RE.match(uid):
            raise PersistenceError(f"malformed uid {uid!r}")
        query = f"{{ q(func: uid({uid})) {{ uid {_selection(fields)} }} }}"
        found = self._post("/query", json={"query": query}).get("data", {}).get("q", [])
        # Dgraph answers uid() for any well-formed uid; no predicates means no entity.
        if not found or len(found[0]) <= 1:
            return None
        return found[0]

    def find(self, discriminator: str, fields: Sequence[str]) -> list[dict[str, Any]]:
        query = (
            f"{{ q(func: has({_predicate(discriminator)})) @filter(eq({discriminator}, true)) "
            f"{{ uid {_selection(fields)} }} }}"
        )
        return self._post("/query", json={"query": query}).get("data", {}).get("q", [])

    def close(self) -> None:
        self._client.close()

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    def _create(self, payload: dict[str, Any], token: str) -> dict[str, str]:
        xid = payload.get("xid")
        disc = discriminator_of(payload)
        if not xid or not disc:
            raise PersistenceError("create mutation needs an xid and a kind discriminator")
        body = {
            "query": (
                f"{{ q(func: eq(xid, {json.dumps(xid)})) @filter(has({_predicate(disc)})) "
                "{ v as uid } }"
            ),
            "cond": "@if(eq(len(v), 0))",
            "set": [payload],
        }
        data = self._post("/mutate", params={"commitNow": "true"}, json=body)
        uids = data.get("data", {}).get("uids", {}) or {}
        if token in uids:
            if len(uids) != 1:
                raise PersistenceError(f"create of {xid!r} assigned {len(uids)} nodes, expected 1")
            return {token: uids[token]}

        existing = data.get("data", {}).get("queries", {}).get("q", [])
        if existing:
            raise DuplicateEntityError(xid, disc, existing[0]["uid"])
        raise PersistenceError(f"create of {xid!r} assigned no uid for token {token!r}")

    def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.post(path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"dgraph {path} request failed: {exc}") from exc
        except ValueError as exc:
            raise PersistenceError(f"dgraph {path} returned invalid JSON: {exc}") from exc

        if data.get("errors"):
            messages = "; ".join(e.get("message", "") for e in data["errors"])
            raise PersistenceError(f"dgraph {path} error: {messages}")
        return data


def _predicate(name: str) -> str:
    if not _PREDICATE_RE.match(name):
        raise PersistenceError(f"invalid predicate name {name!r}")
    return name


def _selection(fields: Sequence[str]) -> str:
    parts = []
    for name in fields:
        pred = _predicate(name)
        if pred in RELATION_PREDICATES:
            parts.append(f"{pred} @facets {{ uid xid }}")
        else:
            parts.append(pred)
    return " ".join(parts)
