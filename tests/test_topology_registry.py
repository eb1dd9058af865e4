"""
Tests for the topology registry and layout builder.

Covers:
    - Built-in topologies and node lookup
    - Custom topologies (explicit and generator forms)
    - Referential integrity: nothing is registered on a bad spec
    - Inter-region link derivation
"""

import pytest

from netharness.application.services import TopologyRegistry
from netharness.domain.errors import InvalidTopologySpec, TopologyNotFound
from netharness.domain.models import NodeRole, NodeStatus
from netharness.domain.services import build_layout, great_circle_km, inter_region_link


class TestBuiltinTopologies:

    def test_builtins_listed_first(self, registry):
        ids = [t.id for t in registry.list_topologies()]
        assert ids[:3] == ["global-distributed", "regional-cluster", "hybrid-mixed"]

    def test_builtins_are_consistent(self, registry):
        for topology in registry.list_topologies():
            ids = set(topology.node_ids)
            assert len(ids) == len(topology.nodes)
            for link in topology.links:
                assert link.source in ids and link.target in ids
                assert link.source != link.target

    def test_global_distributed_layout(self, registry):
        topology = registry.require_topology("global-distributed")
        assert topology.regions == ["us-east", "us-west", "eu-central", "asia-southeast", "asia-northeast"]
        assert len(topology.nodes) == 35
        assert topology.get_node("validator-us-east-1").role == NodeRole.VALIDATOR
        assert not topology.custom

    def test_get_unknown_returns_none(self, registry):
        assert registry.get_topology("nope") is None

    def test_require_unknown_raises(self, registry):
        with pytest.raises(TopologyNotFound):
            registry.require_topology("nope")


class TestNodeLookup:

    def test_list_nodes_tags_topology(self, registry):
        entries = registry.list_nodes()
        total = sum(len(t.nodes) for t in registry.list_topologies())
        assert len(entries) == total
        assert entries[0][0] == "global-distributed"

    def test_first_match_wins_without_topology(self, registry):
        owner, node = registry.get_node("validator-us-east-1")
        assert owner == "global-distributed"
        assert node.id == "validator-us-east-1"

    def test_scoped_lookup(self, registry):
        owner, _ = registry.get_node("validator-us-east-1", topology_id="regional-cluster")
        assert owner == "regional-cluster"

    def test_unknown_node(self, registry):
        assert registry.get_node("ghost") is None
        assert registry.get_node("validator-us-east-1", topology_id="missing") is None


class TestCustomTopology:

    def test_explicit_spec_registered(self, registry, three_node_spec):
        topology = registry.create_custom_topology(three_node_spec)

        assert topology.id.startswith("custom-")
        assert topology.custom is True
        assert topology.node_ids == ["a", "b", "c"]
        assert registry.get_topology(topology.id) == topology
        assert registry.list_topologies()[-1].id == topology.id

    def test_connections_alias(self, registry, three_node_spec):
        spec = dict(three_node_spec)
        spec["connections"] = [{"from": "a", "to": "c", "latency": 4}]
        del spec["links"]
        topology = registry.create_custom_topology(spec)
        assert [(l.source, l.target, l.latency_ms) for l in topology.links] == [("a", "c", 4.0)]

    def test_generator_spec(self, registry):
        topology = registry.create_custom_topology({
            "name": "two regions",
            "regions": ["us-east", "eu-west"],
            "node_counts": {"validators": 2, "miners": 1, "fullNodes": 1},
        })
        assert len(topology.nodes) == 8
        assert topology.regions == ["us-east", "eu-west"]
        # One gateway link between the regions
        cross = [l for l in topology.links
                 if topology.get_node(l.source).region != topology.get_node(l.target).region]
        assert len(cross) == 1

    @pytest.mark.parametrize("mutate, fragment", [
        (lambda s: s["links"].append({"source": "a", "target": "zz"}), "unknown node 'zz'"),
        (lambda s: s["links"].append({"source": "a", "target": "a"}), "itself"),
        (lambda s: s["links"].append({"source": "b", "target": "a"}), "duplicate link"),
        (lambda s: s["nodes"].append(dict(s["nodes"][0])), "duplicate node id 'a'"),
        (lambda s: s["nodes"][0].update(capacity_tps=0), "capacity_tps must be positive"),
    ])
    def test_integrity_violation_registers_nothing(self, registry, three_node_spec, mutate, fragment):
        before = len(registry.list_topologies())
        mutate(three_node_spec)

        with pytest.raises(InvalidTopologySpec) as exc:
            registry.create_custom_topology(three_node_spec)

        assert any(fragment in p for p in exc.value.problems)
        assert len(registry.list_topologies()) == before

    def test_malformed_fields(self, registry, three_node_spec):
        three_node_spec["nodes"][1]["role"] = "archive"
        with pytest.raises(InvalidTopologySpec):
            registry.create_custom_topology(three_node_spec)

    def test_name_required(self, registry, three_node_spec):
        del three_node_spec["name"]
        with pytest.raises(InvalidTopologySpec):
            registry.create_custom_topology(three_node_spec)

    def test_generator_requires_counts(self, registry):
        with pytest.raises(InvalidTopologySpec):
            registry.create_custom_topology({"name": "x", "regions": ["us-east"]})

    def test_generator_with_no_nodes(self, registry):
        with pytest.raises(InvalidTopologySpec):
            registry.create_custom_topology({"name": "x", "regions": ["us-east"], "node_counts": {}})

    def test_registry_can_start_empty(self):
        assert TopologyRegistry(topologies=[]).list_topologies() == []


class TestLayoutBuilder:

    def test_node_ids_numbered_across_topology(self):
        nodes, _ = build_layout([
            ("us-east", {NodeRole.VALIDATOR: 1, NodeRole.MINER: 1}),
            ("us-west", {NodeRole.VALIDATOR: 1}),
        ])
        assert [n.id for n in nodes] == ["validator-us-east-1", "miner-us-east-2", "validator-us-west-3"]
        assert all(n.status == NodeStatus.UP for n in nodes)

    def test_validators_form_full_mesh(self):
        _, links = build_layout([("us-east", {NodeRole.VALIDATOR: 4})])
        assert len(links) == 6

    def test_known_pair_uses_table(self):
        latency, bandwidth, reliability = inter_region_link("us-east", "us-west")
        assert latency > 0 and bandwidth > 0 and 0 < reliability <= 1
        assert inter_region_link("us-west", "us-east") == (latency, bandwidth, reliability)

    def test_unknown_region_falls_back(self):
        assert inter_region_link("mars", "us-east") == (150.0, 300.0, 0.99)

    def test_great_circle(self):
        assert great_circle_km((0.0, 0.0), (0.0, 0.0)) == pytest.approx(0.0)
        # A quarter of the equator
        assert great_circle_km((0.0, 0.0), (0.0, 90.0)) == pytest.approx(10007.5, rel=0.01)
