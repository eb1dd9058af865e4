"""
Tests for the HTTP API.

The shared container is swapped for the manual-stepping test container, so
runs started over HTTP are advanced from the test with ``run_to_completion``.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.dependencies import set_container
from api.main import app
from netharness.application.services import TopologyRegistry

LOAD_GENERATOR = "/api/network-testing/load-generator"
MINI_TESTNET = "/api/network-testing/mini-testnet"


@pytest.fixture
def client(container):
    previous = set_container(container)
    yield TestClient(app)
    set_container(previous)


def assert_failure(response, status_code, error=None):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    if error is not None:
        assert body["error"] == error
    return body


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["endpoints"]["mini_testnet"] == MINI_TESTNET

    def test_health_counts(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["topologies"] == 3
        assert data["running_tests"] == 0
        assert data["active_generations"] == 0


class TestLoadGeneratorQueries:

    @pytest.mark.parametrize("action, expected", [
        ("patterns", "balanced-mix"),
        ("load-profiles", "steady-state"),
        ("user-behaviors", "retail-trader"),
    ])
    def test_catalog_lists(self, client, action, expected):
        response = client.get(LOAD_GENERATOR, params={"action": action})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert expected in {entry["id"] for entry in body["data"]}

    def test_unknown_action(self, client):
        assert_failure(client.get(LOAD_GENERATOR, params={"action": "explode"}), 400, "Invalid action")

    def test_missing_action(self, client):
        assert_failure(client.get(LOAD_GENERATOR), 400, "Invalid request")

    def test_generation_requires_id(self, client):
        assert_failure(client.get(LOAD_GENERATOR, params={"action": "generation"}), 400, "Generation ID required")

    def test_unknown_generation(self, client):
        body = assert_failure(client.get(LOAD_GENERATOR, params={"action": "generation", "id": "gen-x"}), 404)
        assert "gen-x" in body["error"]

    def test_internal_error_is_generic(self, client):
        with patch("netharness.application.services.profile_store.ProfileStore.list_patterns",
                   side_effect=RuntimeError("secret detail")):
            body = assert_failure(client.get(LOAD_GENERATOR, params={"action": "patterns"}), 500)
        assert body["error"] == "Internal server error"


class TestLoadGeneratorCommands:

    @pytest.fixture
    def profile_id(self, client, small_profile_spec):
        response = client.post(LOAD_GENERATOR, json={"action": "create-custom-profile", **small_profile_spec})
        assert response.status_code == 200
        return response.json()["data"]["id"]

    def test_create_custom_profile(self, client, profile_id):
        profiles = client.get(LOAD_GENERATOR, params={"action": "load-profiles"}).json()["data"]
        created = next(p for p in profiles if p["id"] == profile_id)
        assert created["custom"] is True
        assert created["overall"]["total_transactions"] == 250

    def test_invalid_profile_lists_problems(self, client, small_profile_spec):
        small_profile_spec["duration"] = 99
        body = assert_failure(
            client.post(LOAD_GENERATOR, json={"action": "create-custom-profile", **small_profile_spec}), 400)
        assert any("99" in p for p in body["problems"])

    def test_generate_and_fetch(self, client, container, profile_id):
        response = client.post(LOAD_GENERATOR, json={"action": "generate-load", "profileId": profile_id, "seed": 9})
        assert response.status_code == 200
        generation = response.json()["data"]
        assert generation["status"] == "queued"
        assert generation["options"]["seed"] == 9

        active = client.get(LOAD_GENERATOR, params={"action": "active-generations"}).json()["data"]
        assert [g["id"] for g in active] == [generation["id"]]

        container.generation_tracker().run_to_completion(generation["id"])
        fetched = client.get(LOAD_GENERATOR, params={"action": "generation", "id": generation["id"]}).json()["data"]
        assert fetched["status"] == "completed"
        assert fetched["metrics"]["total_transactions"] == 250

        history = client.get(LOAD_GENERATOR, params={"action": "generation-history"}).json()["data"]
        assert [g["id"] for g in history] == [generation["id"]]

    def test_generate_unknown_profile(self, client):
        assert_failure(client.post(LOAD_GENERATOR, json={"action": "generate-load", "profileId": "nope"}), 404)

    def test_generate_missing_profile_id(self, client):
        assert_failure(client.post(LOAD_GENERATOR, json={"action": "generate-load"}), 400, "Invalid request")

    def test_stop_generation(self, client, profile_id):
        generation = client.post(
            LOAD_GENERATOR, json={"action": "generate-load", "profileId": profile_id}).json()["data"]

        response = client.post(LOAD_GENERATOR, json={"action": "stop-generation", "generationId": generation["id"]})
        assert response.json() == {"success": True, "data": {"message": "Generation stopped successfully"}}

        again = client.post(LOAD_GENERATOR, json={"action": "stop-generation", "generationId": generation["id"]})
        assert_failure(again, 404)

    def test_analyze_patterns(self, client):
        transactions = [{"type": "transfer", "size": 100, "behavior": "retail-trader"}] * 4
        response = client.post(LOAD_GENERATOR, json={"action": "analyze-patterns", "transactions": transactions})
        data = response.json()["data"]
        assert data["count"] == 4
        assert data["observed_behavior_mix"] == {"retail-trader": 1.0}

    def test_analyze_rejects_non_objects(self, client):
        response = client.post(LOAD_GENERATOR, json={"action": "analyze-patterns", "transactions": [1, 2]})
        assert_failure(response, 400)

    @pytest.mark.parametrize("entry", [
        {"type": "transfer", "metadata": "x"},
        {"type": "transfer", "behavior": ["a"]},
    ])
    def test_analyze_rejects_malformed_tags(self, client, entry):
        response = client.post(LOAD_GENERATOR, json={"action": "analyze-patterns", "transactions": [entry]})
        assert_failure(response, 400)

    @pytest.mark.parametrize("body", [{"action": "explode"}, {"profileId": "steady-state"}])
    def test_unknown_or_missing_action(self, client, body):
        assert_failure(client.post(LOAD_GENERATOR, json=body), 400, "Invalid action")

    def test_body_must_be_object(self, client):
        assert_failure(client.post(LOAD_GENERATOR, json=["generate-load"]), 400, "Invalid request")


class TestMiniTestnetQueries:

    def test_topologies(self, client):
        data = client.get(MINI_TESTNET, params={"action": "topologies"}).json()["data"]
        assert [t["id"] for t in data] == ["global-distributed", "regional-cluster", "hybrid-mixed"]

    def test_topology(self, client):
        data = client.get(MINI_TESTNET, params={"action": "topology", "id": "regional-cluster"}).json()["data"]
        assert data["regions"] == ["us-east", "eu-central"]

    @pytest.mark.parametrize("action, error", [
        ("topology", "Topology ID required"),
        ("node", "Node ID required"),
        ("test", "Test ID required"),
    ])
    def test_single_entity_requires_id(self, client, action, error):
        assert_failure(client.get(MINI_TESTNET, params={"action": action}), 400, error)

    def test_unknown_topology(self, client):
        assert_failure(client.get(MINI_TESTNET, params={"action": "topology", "id": "x"}), 404)

    def test_node_lookup(self, client):
        data = client.get(MINI_TESTNET, params={
            "action": "node", "id": "validator-us-east-1", "topologyId": "hybrid-mixed",
        }).json()["data"]
        assert data["topology_id"] == "hybrid-mixed"
        assert data["role"] == "validator"

    def test_nodes_are_tagged(self, client):
        data = client.get(MINI_TESTNET, params={"action": "nodes"}).json()["data"]
        assert {"global-distributed", "regional-cluster", "hybrid-mixed"} == {n["topology_id"] for n in data}

    def test_unknown_node(self, client):
        assert_failure(client.get(MINI_TESTNET, params={"action": "node", "id": "ghost"}), 404)

    def test_internal_error_is_generic(self, client):
        with patch.object(TopologyRegistry, "list_topologies", side_effect=RuntimeError("boom")):
            assert_failure(client.get(MINI_TESTNET, params={"action": "topologies"}), 500, "Internal server error")


class TestMiniTestnetCommands:

    @pytest.fixture
    def topology_id(self, client, three_node_spec):
        response = client.post(MINI_TESTNET, json={"action": "create-topology", **three_node_spec})
        assert response.status_code == 200
        return response.json()["data"]["id"]

    def test_create_topology(self, client, topology_id):
        data = client.get(MINI_TESTNET, params={"action": "topology", "id": topology_id}).json()["data"]
        assert data["custom"] is True
        assert len(data["nodes"]) == 3

    def test_create_generator_topology(self, client):
        response = client.post(MINI_TESTNET, json={
            "action": "create-topology",
            "name": "gen",
            "regions": ["us-east"],
            "nodeCounts": {"validators": 3},
        })
        assert len(response.json()["data"]["nodes"]) == 3

    def test_create_invalid_topology(self, client, three_node_spec):
        three_node_spec["links"].append({"source": "a", "target": "zz"})
        body = assert_failure(client.post(MINI_TESTNET, json={"action": "create-topology", **three_node_spec}), 400)
        assert any("zz" in p for p in body["problems"])
        topologies = client.get(MINI_TESTNET, params={"action": "topologies"}).json()["data"]
        assert len(topologies) == 3

    def test_start_run_and_stop(self, client, container, topology_id, two_phase_scenario):
        response = client.post(MINI_TESTNET, json={
            "action": "start-test", "topologyId": topology_id, "scenario": two_phase_scenario,
        })
        assert response.status_code == 200
        run = response.json()["data"]
        assert run["status"] == "running"

        running = client.get(MINI_TESTNET, params={"action": "running-tests"}).json()["data"]
        assert [r["id"] for r in running] == [run["id"]]

        stopped = client.post(MINI_TESTNET, json={"action": "stop-test", "testId": run["id"]})
        assert stopped.json()["data"] == {"message": "Test stopped successfully"}
        assert_failure(client.post(MINI_TESTNET, json={"action": "stop-test", "testId": run["id"]}), 404)

        container.test_orchestrator().step(run["id"])
        fetched = client.get(MINI_TESTNET, params={"action": "test", "id": run["id"]}).json()["data"]
        assert fetched["status"] == "stopped"

        history = client.get(MINI_TESTNET, params={"action": "test-history", "topologyId": topology_id}).json()["data"]
        assert [r["id"] for r in history] == [run["id"]]

    def test_completed_run(self, client, container, topology_id, two_phase_scenario):
        run = client.post(MINI_TESTNET, json={
            "action": "start-test", "topologyId": topology_id, "scenario": two_phase_scenario,
        }).json()["data"]
        container.test_orchestrator().run_to_completion(run["id"])

        fetched = client.get(MINI_TESTNET, params={"action": "test", "id": run["id"]}).json()["data"]
        assert fetched["status"] == "completed"
        assert fetched["results"]["total_transactions"] == 1275

    def test_start_on_unknown_topology(self, client, two_phase_scenario):
        response = client.post(MINI_TESTNET, json={
            "action": "start-test", "topologyId": "missing", "scenario": two_phase_scenario,
        })
        assert_failure(response, 404)

    def test_start_invalid_scenario(self, client, topology_id):
        response = client.post(MINI_TESTNET, json={
            "action": "start-test", "topologyId": topology_id, "scenario": {"profileId": "nope"},
        })
        assert_failure(response, 400)

    def test_unknown_test(self, client):
        assert_failure(client.get(MINI_TESTNET, params={"action": "test", "id": "test-x"}), 404)
        assert_failure(client.post(MINI_TESTNET, json={"action": "stop-test", "testId": "test-x"}), 404)

    def test_invalid_action(self, client):
        assert_failure(client.post(MINI_TESTNET, json={"action": "reboot"}), 400, "Invalid action")
