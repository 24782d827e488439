"""In-memory graph store.

Implements the same mutation semantics as the Dgraph backend with plain dicts,
for development, tests and single-host runs. State can be persisted to a JSON
snapshot file so successive CLI runs see the same graph.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from kub_graph.errors import DuplicateEntityError, PersistenceError
from kub_graph.models import MutationMode
from kub_graph.store.base import GraphStore, blank_token, discriminator_of

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    uid: str
    props: dict[str, Any] = field(default_factory=dict)
    # predicate -> target uid
    single: dict[str, str] = field(default_factory=dict)
    # predicate -> {target uid: facets}
    multi: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)


class InMemoryGraphStore(GraphStore):
    """Thread-safe dict-backed graph with an (xid, discriminator) uniqueness index.

    A CREATE whose (xid, discriminator) is already indexed is rejected with
    DuplicateEntityError, which makes create-if-absent atomic at the store.
    """

    def __init__(self, path: str | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._nodes: dict[str, _Node] = {}
        self._index: dict[tuple[str, str], str] = {}
        self._counter = 0
        if self.path and self.path.exists():
            self._load(self.path)

    # --------------------------------------------------------
    # GraphStore
    # --------------------------------------------------------

    def mutate(
        self,
        payload: dict[str, Any],
        mode: MutationMode,
        replace: Iterable[str] = (),
    ) -> dict[str, str]:
        with self._lock:
            uid = str(payload.get("uid", ""))
            token = blank_token(uid)
            self._check_refs(payload)

            if mode == MutationMode.CREATE:
                if token is None:
                    raise PersistenceError(f"create mutation needs a blank-node uid, got {uid!r}")
                xid = payload.get("xid")
                disc = discriminator_of(payload)
                if not xid or not disc:
                    raise PersistenceError("create mutation needs an xid and a kind discriminator")
                existing = self._index.get((xid, disc))
                if existing:
                    raise DuplicateEntityError(xid, disc, existing)
                node = _Node(uid=self._allocate())
                self._nodes[node.uid] = node
                assigned = {token: node.uid}
            else:
                if token is not None:
                    raise PersistenceError(f"update mutation cannot introduce blank node {uid!r}")
                node = self._nodes.get(uid)
                if node is None:
                    raise PersistenceError(f"update of unknown uid {uid!r}")
                assigned = {}

            for pred in replace:
                node.multi.pop(pred, None)
            self._apply(node, payload)
            self._reindex(node)
            return assigned

    def lookup(self, xid: str, discriminator: str) -> str | None:
        with self._lock:
            return self._index.get((xid, discriminator))

    def get(self, uid: str, fields: Sequence[str]) -> dict[str, Any] | None:
        with self._lock:
            node = self._nodes.get(uid)
            if node is None:
                return None
            return self._render(node, fields)

    def find(self, discriminator: str, fields: Sequence[str]) -> list[dict[str, Any]]:
        with self._lock:
            nodes = [n for n in self._nodes.values() if n.props.get(discriminator) is True]
            nodes.sort(key=lambda n: int(n.uid, 16))
            return [self._render(n, fields) for n in nodes]

    def close(self) -> None:
        if self.path:
            self.save()

    # --------------------------------------------------------
    # Snapshot persistence
    # --------------------------------------------------------

    def save(self, path: str | Path | None = None) -> None:
        target = Path(path) if path else self.path
        if target is None:
            raise PersistenceError("no snapshot path configured for the memory store")
        with self._lock:
            data = {
                "counter": self._counter,
                "nodes": [
                    {"uid": n.uid, "props": n.props, "single": n.single, "multi": n.multi}
                    for n in self._nodes.values()
                ],
            }
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(data, indent=2, sort_keys=True))
        logger.debug("Saved %d graph nodes to %s", len(data["nodes"]), target)

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"cannot read graph snapshot {path}: {exc}") from exc
        self._counter = data.get("counter", 0)
        for raw in data.get("nodes", []):
            node = _Node(
                uid=raw["uid"],
                props=raw.get("props", {}),
                single=raw.get("single", {}),
                multi=raw.get("multi", {}),
            )
            self._nodes[node.uid] = node
            self._reindex(node)
        logger.debug("Loaded %d graph nodes from %s", len(self._nodes), path)

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    def _allocate(self) -> str:
        self._counter += 1
        return f"0x{self._counter:x}"

    def _check_refs(self, payload: dict[str, Any]) -> None:
        """Reject the whole mutation before applying anything if an edge dangles."""
        for key, value in payload.items():
            for item in _edge_items(value):
                target = str(item.get("uid", ""))
                if target not in self._nodes:
                    raise PersistenceError(f"{key} edge references unknown uid {target!r}")

    def _apply(self, node: _Node, payload: dict[str, Any]) -> None:
        for key, value in payload.items():
            if key == "uid":
                continue
            if isinstance(value, dict):
                node.single[key] = value["uid"]
            elif _is_edge_list(value):
                edges = node.multi.setdefault(key, {})
                prefix = key + "|"
                for item in value:
                    edges[item["uid"]] = {
                        k[len(prefix):]: v for k, v in item.items() if k.startswith(prefix)
                    }
            else:
                node.props[key] = value

    def _reindex(self, node: _Node) -> None:
        xid = node.props.get("xid")
        if not xid:
            return
        for key, value in node.props.items():
            if key.startswith("is") and value is True:
                owner = self._index.setdefault((xid, key), node.uid)
                if owner != node.uid:
                    logger.warning("xid %s (%s) is indexed to %s, not %s", xid, key, owner, node.uid)

    def _render(self, node: _Node, fields: Sequence[str]) -> dict[str, Any]:
        out: dict[str, Any] = {"uid": node.uid}
        for name in fields:
            if name in node.props:
                out[name] = node.props[name]
            elif name in node.single:
                out[name] = self._ref(node.single[name])
            elif name in node.multi:
                items = []
                for target, facets in node.multi[name].items():
                    ref = self._ref(target)
                    ref.update({f"{name}|{k}": v for k, v in facets.items()})
                    items.append(ref)
                out[name] = items
        return out

    def _ref(self, uid: str) -> dict[str, Any]:
        ref: dict[str, Any] = {"uid": uid}
        target = self._nodes.get(uid)
        if target is not None and "xid" in target.props:
            ref["xid"] = target.props["xid"]
        return ref


def _is_edge_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, dict) for v in value)


def _edge_items(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if _is_edge_list(value):
        return value
    return []
