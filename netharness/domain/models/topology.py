"""
Topology Models

Immutable definitions of simulated network nodes, the links between them and
the topologies that group them. Runtime status changes never touch these
objects; each test run keeps its own overlay (see ``NodeSimulatorSet``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from .enums import NodeRole, NodeStatus


@dataclass(frozen=True)
class NodeSpec:
    """A simulated node: role, placement and performance envelope."""
    id: str
    role: NodeRole
    region: str
    capacity_tps: float
    base_latency_ms: float
    status: NodeStatus = NodeStatus.UP
    coordinates: Optional[Tuple[float, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "role": self.role.value,
            "region": self.region,
            "capacity_tps": self.capacity_tps,
            "base_latency_ms": self.base_latency_ms,
            "status": self.status.value,
        }
        if self.coordinates is not None:
            data["coordinates"] = {"lat": self.coordinates[0], "lng": self.coordinates[1]}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeSpec":
        coords = data.get("coordinates")
        if isinstance(coords, dict):
            coords = (float(coords["lat"]), float(coords["lng"]))
        elif coords is not None:
            coords = (float(coords[0]), float(coords[1]))
        return cls(
            id=str(data["id"]),
            role=NodeRole(data.get("role", NodeRole.FULL_NODE.value)),
            region=str(data.get("region", "default")),
            capacity_tps=float(data.get("capacity_tps", data.get("capacityTps", 1000.0))),
            base_latency_ms=float(data.get("base_latency_ms", data.get("baseLatencyMs", 10.0))),
            status=NodeStatus(data.get("status", NodeStatus.UP.value)),
            coordinates=coords,
        )


@dataclass(frozen=True)
class Link:
    """Undirected connection between two nodes."""
    source: str
    target: str
    latency_ms: float = 10.0
    bandwidth_mbps: float = 1000.0
    reliability: float = 0.999

    @property
    def key(self) -> Tuple[str, str]:
        """Order-independent identity of the link."""
        return tuple(sorted((self.source, self.target)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "latency_ms": self.latency_ms,
            "bandwidth_mbps": self.bandwidth_mbps,
            "reliability": self.reliability,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        return cls(
            source=str(data.get("source", data.get("from"))),
            target=str(data.get("target", data.get("to"))),
            latency_ms=float(data.get("latency_ms", data.get("latency", 10.0))),
            bandwidth_mbps=float(data.get("bandwidth_mbps", data.get("bandwidth", 1000.0))),
            reliability=float(data.get("reliability", 0.999)),
        )


@dataclass(frozen=True)
class Topology:
    """A named set of nodes and links used as the substrate of a network test."""
    id: str
    name: str
    nodes: Tuple[NodeSpec, ...]
    links: Tuple[Link, ...]
    description: str = ""
    custom: bool = False
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    @property
    def regions(self) -> List[str]:
        seen: List[str] = []
        for node in self.nodes:
            if node.region not in seen:
                seen.append(node.region)
        return seen

    def get_node(self, node_id: str) -> Optional[NodeSpec]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_graph(self) -> nx.Graph:
        """Build an undirected networkx graph keyed by node id."""
        graph = nx.Graph()
        for node in self.nodes:
            graph.add_node(node.id, region=node.region, role=node.role.value)
        for link in self.links:
            graph.add_edge(
                link.source,
                link.target,
                latency=link.latency_ms,
                bandwidth=link.bandwidth_mbps,
                reliability=link.reliability,
            )
        return graph

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "custom": self.custom,
            "regions": self.regions,
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
            "created_at": self.created_at,
        }


def find_topology_problems(nodes: List[NodeSpec], links: List[Link]) -> List[str]:
    """Return every referential-integrity violation in a node/link set."""
    problems: List[str] = []
    if not nodes:
        problems.append("topology must contain at least one node")

    ids = set()
    for node in nodes:
        if node.id in ids:
            problems.append(f"duplicate node id '{node.id}'")
        ids.add(node.id)
        if node.capacity_tps <= 0:
            problems.append(f"node '{node.id}' capacity_tps must be positive")
        if node.base_latency_ms < 0:
            problems.append(f"node '{node.id}' base_latency_ms must be non-negative")

    seen_links = set()
    for link in links:
        for endpoint in (link.source, link.target):
            if endpoint not in ids:
                problems.append(f"link {link.source}->{link.target} references unknown node '{endpoint}'")
        if link.source == link.target:
            problems.append(f"link {link.source}->{link.target} connects a node to itself")
        if link.key in seen_links:
            problems.append(f"duplicate link {link.source}<->{link.target}")
        seen_links.add(link.key)
        if link.bandwidth_mbps <= 0:
            problems.append(f"link {link.source}->{link.target} bandwidth must be positive")
        if not 0.0 < link.reliability <= 1.0:
            problems.append(f"link {link.source}->{link.target} reliability must be in (0, 1]")
    return problems
