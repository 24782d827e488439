"""Tests for the read and record CLI commands against a snapshot-backed store."""

import json

import pytest
from click.testing import CliRunner

from kub_graph.cli import main
from kub_graph.store.memory import InMemoryGraphStore
from kub_graph.sync.lifecycle import LifecycleManager

from tests.conftest import make_container, make_pod


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for var in ("KUB_GRAPH_STORE", "KUB_GRAPH_STORE_PATH", "KUB_GRAPH_DGRAPH_URL"):
        monkeypatch.delenv(var, raising=False)
    snapshot = tmp_path / "graph.json"
    store = InMemoryGraphStore(path=str(snapshot))
    manager = LifecycleManager.for_store(store)
    manager.store(make_pod("frontend", containers=[make_container(cpu_request="500m")]))
    manager.store(make_pod("api", containers=[make_container(cpu_request="250m")]))
    store.close()

    path = tmp_path / "kub-graph.yaml"
    path.write_text(f"store:\n  backend: memory\n  path: {snapshot}\n")
    return str(path)


class TestCapacityCommand:
    def test_json_output(self, config_file):
        result = CliRunner().invoke(main, ["capacity", "--json", "--config", config_file])
        assert result.exit_code == 0, result.output
        doc = json.loads(result.output)
        assert doc["name"] == "cluster"
        assert doc["cpuRequest"] == pytest.approx(0.75)
        assert [c["name"] for c in doc["children"]] == ["default"]

    def test_tree_output(self, config_file):
        result = CliRunner().invoke(main, ["capacity", "--view", "physical", "--config", config_file])
        assert result.exit_code == 0, result.output
        assert "node-1" in result.output


class TestRecordCommand:
    def test_records_edges(self, config_file):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["record", "default:frontend", "default:api=7", "default:ghost=1", "--config", config_file],
        )
        assert result.exit_code == 0, result.output
        assert "Recorded 1 interaction edge(s)" in result.output
        assert "Skipped 1 destination(s)" in result.output

    def test_unknown_source_fails(self, config_file):
        result = CliRunner().invoke(main, ["record", "default:nobody", "default:api=1", "--config", config_file])
        assert result.exit_code == 1
        assert "persisted" in result.output

    def test_malformed_destination(self, config_file):
        result = CliRunner().invoke(main, ["record", "default:frontend", "default:api", "--config", config_file])
        assert result.exit_code == 2
        assert "DEST=COUNT" in result.output


class TestStatusCommand:
    def test_counts(self, config_file):
        result = CliRunner().invoke(main, ["status", "--config", config_file])
        assert result.exit_code == 0, result.output
        assert "Pods:" in result.output
        assert "2/2 active" in result.output


class TestInitCommand:
    def test_writes_sample(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"])
            assert result.exit_code == 0
            assert "Created config file" in result.output
            again = runner.invoke(main, ["init"])
            assert "already exists" in again.output
