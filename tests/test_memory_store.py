"""Tests for the in-memory graph store."""

import json

import pytest

from kub_graph.errors import DuplicateEntityError, PersistenceError
from kub_graph.models import MutationMode
from kub_graph.store.memory import InMemoryGraphStore


def _create(store, xid="default", disc="isNamespace", token="ns", **props):
    return store.mutate({"uid": f"_:{token}", "xid": xid, disc: True, **props}, MutationMode.CREATE)[token]


class TestCreate:
    def test_assigns_uid_to_token(self, store):
        assigned = store.mutate({"uid": "_:ns", "xid": "default", "isNamespace": True}, MutationMode.CREATE)
        assert list(assigned) == ["ns"]
        assert assigned["ns"].startswith("0x")
        assert store.lookup("default", "isNamespace") == assigned["ns"]

    def test_duplicate_rejected_with_existing_uid(self, store):
        uid = _create(store)
        with pytest.raises(DuplicateEntityError) as exc_info:
            _create(store)
        assert exc_info.value.uid == uid

    def test_same_xid_other_kind_allowed(self, store):
        ns = _create(store, xid="default", disc="isNamespace")
        node = _create(store, xid="default", disc="isNode", token="node")
        assert ns != node
        assert store.lookup("default", "isNode") == node

    def test_requires_blank_uid_and_discriminator(self, store):
        with pytest.raises(PersistenceError):
            store.mutate({"uid": "0x1", "xid": "x", "isPod": True}, MutationMode.CREATE)
        with pytest.raises(PersistenceError):
            store.mutate({"uid": "_:p", "xid": "x"}, MutationMode.CREATE)

    def test_dangling_edge_rejects_whole_mutation(self, store):
        with pytest.raises(PersistenceError):
            store.mutate(
                {"uid": "_:p", "xid": "default:web", "isPod": True, "node": {"uid": "0x99"}},
                MutationMode.CREATE,
            )
        assert store.lookup("default:web", "isPod") is None


class TestUpdate:
    def test_scalars_merge(self, store):
        uid = _create(store, name="a")
        store.mutate({"uid": uid, "type": "namespace"}, MutationMode.UPDATE)
        assert store.get(uid, ["name", "type"]) == {"uid": uid, "name": "a", "type": "namespace"}

    def test_unknown_uid_rejected(self, store):
        with pytest.raises(PersistenceError):
            store.mutate({"uid": "0x42", "name": "x"}, MutationMode.UPDATE)

    def test_list_edges_accumulate_without_replace(self, store):
        pod = _create(store, xid="default:web", disc="isPod", token="pod")
        a = _create(store, xid="a:1", disc="isLabel", token="a")
        b = _create(store, xid="b:2", disc="isLabel", token="b")
        store.mutate({"uid": pod, "label": [{"uid": a}]}, MutationMode.UPDATE)
        store.mutate({"uid": pod, "label": [{"uid": b}]}, MutationMode.UPDATE)
        assert [e["xid"] for e in store.get(pod, ["label"])["label"]] == ["a:1", "b:2"]

    def test_replace_drops_existing_edges(self, store):
        pod = _create(store, xid="default:web", disc="isPod", token="pod")
        a = _create(store, xid="a:1", disc="isLabel", token="a")
        b = _create(store, xid="b:2", disc="isLabel", token="b")
        store.mutate({"uid": pod, "label": [{"uid": a}]}, MutationMode.UPDATE)
        store.mutate({"uid": pod, "label": [{"uid": b}]}, MutationMode.UPDATE, replace=("label",))
        assert [e["xid"] for e in store.get(pod, ["label"])["label"]] == ["b:2"]

    def test_facets_rendered(self, store):
        src = _create(store, xid="default:a", disc="isPod", token="a")
        dst = _create(store, xid="default:b", disc="isPod", token="b")
        store.mutate({"uid": src, "pod": [{"uid": dst, "pod|count": 4.0}]}, MutationMode.UPDATE)
        assert store.get(src, ["pod"])["pod"] == [{"uid": dst, "xid": "default:b", "pod|count": 4.0}]

    def test_single_relation_rendered_as_ref(self, store):
        ns = _create(store)
        pod = _create(store, xid="default:web", disc="isPod", token="pod")
        store.mutate({"uid": pod, "namespace": {"uid": ns, "xid": "default"}}, MutationMode.UPDATE)
        assert store.get(pod, ["namespace"])["namespace"] == {"uid": ns, "xid": "default"}


class TestRead:
    def test_get_missing(self, store):
        assert store.get("0x1", ["xid"]) is None

    def test_find_by_discriminator(self, store):
        _create(store, xid="a", token="a")
        _create(store, xid="b", token="b")
        _create(store, xid="n", disc="isNode", token="n")
        assert [e["xid"] for e in store.find("isNamespace", ["xid"])] == ["a", "b"]


class TestSnapshot:
    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "graph.json"
        store = InMemoryGraphStore(path=str(path))
        ns = _create(store)
        pod = _create(store, xid="default:web", disc="isPod", token="pod", namespace={"uid": ns})
        store.close()

        assert json.loads(path.read_text())["counter"] == 2

        reloaded = InMemoryGraphStore(path=str(path))
        assert reloaded.lookup("default:web", "isPod") == pod
        assert reloaded.get(pod, ["namespace"])["namespace"]["uid"] == ns
        # New uids continue after the loaded ones
        assert _create(reloaded, xid="other", token="o") == "0x3"

    def test_save_without_path(self, store):
        with pytest.raises(PersistenceError):
            store.save()

    def test_corrupt_snapshot(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            InMemoryGraphStore(path=str(path))
