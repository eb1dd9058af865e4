"""
Topology Registry

Owns every topology known to the process: the built-ins plus custom ones
created at runtime. Topologies are frozen once registered and are shared
read-only with running tests.
"""
import logging
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from netharness.domain.catalog import builtin_topologies
from netharness.domain.errors import InvalidTopologySpec, TopologyNotFound
from netharness.domain.models import Link, NodeSpec, Topology, find_topology_problems
from netharness.domain.services.topology_builder import build_layout, counts_from_spec


class TopologyRegistry:
    """Thread-safe registry of built-in and custom topologies."""

    def __init__(self, topologies: Optional[Iterable[Topology]] = None):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._topologies: Dict[str, Topology] = {}
        for topology in (builtin_topologies() if topologies is None else topologies):
            self._topologies[topology.id] = topology

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_topologies(self) -> List[Topology]:
        """Built-ins first, then custom topologies in creation order."""
        with self._lock:
            return list(self._topologies.values())

    def get_topology(self, topology_id: str) -> Optional[Topology]:
        with self._lock:
            return self._topologies.get(topology_id)

    def require_topology(self, topology_id: str) -> Topology:
        topology = self.get_topology(topology_id)
        if topology is None:
            raise TopologyNotFound(topology_id)
        return topology

    def list_nodes(self) -> List[Tuple[str, NodeSpec]]:
        """Every node of every topology, tagged with its topology id."""
        return [(t.id, node) for t in self.list_topologies() for node in t.nodes]

    def get_node(self, node_id: str, topology_id: Optional[str] = None) -> Optional[Tuple[str, NodeSpec]]:
        """
        Look a node up by id.

        Node ids are only unique inside a topology; without ``topology_id``
        the first match in listing order wins.
        """
        for owner, node in self.list_nodes():
            if node.id == node_id and (topology_id is None or owner == topology_id):
                return owner, node
        return None

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def create_custom_topology(self, spec: Dict[str, Any]) -> Topology:
        """
        Validate and register a custom topology.

        Accepts an explicit ``{name, nodes, links}`` body or the generator
        form ``{name, regions, node_counts}``. Nothing is registered when
        validation fails.

        Raises:
            InvalidTopologySpec: on any malformed field or integrity violation
        """
        if not isinstance(spec, dict):
            raise InvalidTopologySpec("Topology spec must be an object")
        name = spec.get("name")
        if not name or not isinstance(name, str):
            raise InvalidTopologySpec("Topology name is required")

        try:
            if "nodes" in spec:
                nodes = [NodeSpec.from_dict(n) for n in spec["nodes"]]
                links = [Link.from_dict(l) for l in spec.get("links") or spec.get("connections") or []]
            elif "regions" in spec:
                nodes, links = self._generate(spec)
            else:
                raise InvalidTopologySpec("Provide either nodes/links or regions/node_counts")
        except InvalidTopologySpec:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidTopologySpec(f"Malformed topology spec: {e}") from e

        problems = find_topology_problems(nodes, links)
        if problems:
            raise InvalidTopologySpec("Invalid topology", problems)

        topology = Topology(
            id=f"custom-{uuid.uuid4().hex[:8]}",
            name=name,
            description=str(spec.get("description") or ""),
            nodes=tuple(nodes),
            links=tuple(links),
            custom=True,
        )
        with self._lock:
            self._topologies[topology.id] = topology
        self.logger.info(f"Registered topology {topology.id} ({len(nodes)} nodes, {len(links)} links)")
        return topology

    @staticmethod
    def _generate(spec: Dict[str, Any]):
        regions = spec["regions"]
        if not isinstance(regions, list) or not regions or not all(isinstance(r, str) and r for r in regions):
            raise InvalidTopologySpec("regions must be a non-empty list of region names")
        if len(set(regions)) != len(regions):
            raise InvalidTopologySpec("regions must not repeat")
        raw_counts = spec.get("node_counts", spec.get("nodeCounts"))
        if not isinstance(raw_counts, dict):
            raise InvalidTopologySpec("node_counts is required with regions")
        counts = counts_from_spec(raw_counts)
        if any(c < 0 for c in counts.values()):
            raise InvalidTopologySpec("node counts must be non-negative")
        return build_layout([(region, counts) for region in regions])
