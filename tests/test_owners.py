"""Tests for controller owner resolution."""

import logging

from kub_graph.models import Kind, Pod
from kub_graph.store.memory import InMemoryGraphStore
from kub_graph.sync.owners import OWNER_SLOTS, OwnerResolver
from kub_graph.sync.relations import RelationResolvers

from tests.conftest import K8sObj


def _resolver(store: InMemoryGraphStore) -> OwnerResolver:
    return OwnerResolver(RelationResolvers.for_store(store))


class TestOwnerResolver:
    def test_replicaset_fills_only_its_slot(self, store):
        pod = Pod(xid="default:web-1")
        _resolver(store).resolve(pod, "default", [K8sObj(kind="ReplicaSet", name="web-abc")])

        assert pod.replicaset is not None
        assert pod.replicaset.xid == "default:web-abc"
        assert store.lookup("default:web-abc", Kind.REPLICASET.discriminator) == pod.replicaset.uid
        assert pod.deployment is None
        assert pod.statefulset is None
        assert pod.daemonset is None
        assert pod.job is None

    def test_every_supported_kind(self, store):
        resolver = _resolver(store)
        for kind, slot in OWNER_SLOTS.items():
            pod = Pod(xid="default:p")
            resolver.resolve(pod, "default", [K8sObj(kind=kind, name="owner")])
            assert getattr(pod, slot) is not None, kind

    def test_multiple_owners_handled_independently(self, store):
        pod = Pod(xid="default:p")
        _resolver(store).resolve(
            pod,
            "default",
            [K8sObj(kind="ReplicaSet", name="rs"), K8sObj(kind="Job", name="batch")],
        )
        assert pod.replicaset.xid == "default:rs"
        assert pod.job.xid == "default:batch"

    def test_known_and_unknown_owner_together(self, store, caplog):
        pod = Pod(xid="ns:web-1")
        with caplog.at_level(logging.WARNING):
            _resolver(store).resolve(
                pod, "ns", [K8sObj(kind="ReplicaSet", name="rs1"), K8sObj(kind="Widget", name="x")]
            )

        assert pod.replicaset.xid == "ns:rs1"
        assert all(getattr(pod, slot) is None for slot in OWNER_SLOTS.values() if slot != "replicaset")
        assert "Unknown owner type Widget" in caplog.text

    def test_unknown_kind_logged_and_skipped(self, store, caplog):
        pod = Pod(xid="default:p")
        with caplog.at_level(logging.WARNING):
            _resolver(store).resolve(pod, "default", [K8sObj(kind="CronWorkflow", name="x")])

        assert "Unknown owner type CronWorkflow" in caplog.text
        assert all(getattr(pod, slot) is None for slot in OWNER_SLOTS.values())

    def test_no_owners(self, store):
        pod = Pod(xid="default:p")
        _resolver(store).resolve(pod, "default", None)
        assert pod.deployment is None and pod.replicaset is None

    def test_owner_entity_reused(self, store):
        resolver = _resolver(store)
        first, second = Pod(xid="default:a"), Pod(xid="default:b")
        resolver.resolve(first, "default", [K8sObj(kind="Deployment", name="web")])
        resolver.resolve(second, "default", [K8sObj(kind="Deployment", name="web")])
        assert first.deployment.uid == second.deployment.uid
        assert len(store.find(Kind.DEPLOYMENT.discriminator, ["xid"])) == 1
