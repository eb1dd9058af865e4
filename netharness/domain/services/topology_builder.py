"""
Topology Builder

Lays out nodes and links for a set of regions given per-role node counts.
Used for the built-in topologies and for generator-form custom topologies.

Layout per region:
    - validators form a full mesh; the first node of the region is its gateway
    - miners attach round-robin to validators (or to the gateway)
    - full and light nodes attach round-robin to miners (or to the gateway)
Gateways of different regions are connected with the known inter-region link
characteristics, falling back to a great-circle estimate.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..catalog import INTER_REGION_LINKS, REGIONS, ROLE_PROFILES
from ..models import Link, NodeRole, NodeSpec

#: Roles in the order their nodes are numbered inside a region.
ROLE_ORDER = (NodeRole.VALIDATOR, NodeRole.MINER, NodeRole.FULL_NODE, NodeRole.LIGHT_NODE, NodeRole.RELAY)

INTRA_REGION_BANDWIDTH = 1000.0
INTRA_REGION_RELIABILITY = 0.999
FALLBACK_INTER_REGION_LATENCY = 150.0

RegionCounts = Dict[NodeRole, int]


def great_circle_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Haversine distance between two (lat, lng) points in kilometres."""
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    return 2 * 6371.0 * math.asin(math.sqrt(h))


def inter_region_link(region_a: str, region_b: str) -> Tuple[float, float, float]:
    """(latency_ms, bandwidth_mbps, reliability) between two regions."""
    known = INTER_REGION_LINKS.get(tuple(sorted((region_a, region_b))))
    if known is not None:
        return known

    coords_a = REGIONS.get(region_a, {}).get("coordinates")
    coords_b = REGIONS.get(region_b, {}).get("coordinates")
    if coords_a is None or coords_b is None:
        return FALLBACK_INTER_REGION_LATENCY, 300.0, 0.99
    # ~100 km per ms of round-trip-adjusted fibre path, plus switching overhead
    latency = round(great_circle_km(coords_a, coords_b) / 100.0 + 10.0, 1)
    return latency, 400.0, 0.993


def _make_node(node_id: str, region: str, role: NodeRole) -> NodeSpec:
    profile = ROLE_PROFILES[role]
    return NodeSpec(
        id=node_id,
        role=role,
        region=region,
        capacity_tps=profile["capacity_tps"],
        base_latency_ms=profile["base_latency_ms"],
        coordinates=REGIONS.get(region, {}).get("coordinates"),
    )


def _intra_link(a: str, b: str, latency: float) -> Link:
    return Link(a, b, latency_ms=latency, bandwidth_mbps=INTRA_REGION_BANDWIDTH,
                reliability=INTRA_REGION_RELIABILITY)


def build_layout(
    region_counts: Sequence[Tuple[str, RegionCounts]],
    region_pairs: Optional[Iterable[Tuple[str, str]]] = None,
) -> Tuple[List[NodeSpec], List[Link]]:
    """
    Generate nodes and links for each (region, counts) entry.

    Node ids follow ``<role>-<region>-<n>`` with ``n`` numbered across the
    whole topology. ``region_pairs`` limits which gateways are linked; by
    default every pair of regions is.
    """
    nodes: List[NodeSpec] = []
    links: List[Link] = []
    gateways: Dict[str, str] = {}
    counter = 1

    for region, counts in region_counts:
        by_role: Dict[NodeRole, List[str]] = {role: [] for role in ROLE_ORDER}
        for role in ROLE_ORDER:
            for _ in range(int(counts.get(role, 0))):
                node_id = f"{role.value}-{region}-{counter}"
                counter += 1
                nodes.append(_make_node(node_id, region, role))
                by_role[role].append(node_id)

        members = [nid for role in ROLE_ORDER for nid in by_role[role]]
        if not members:
            continue
        gateway = members[0]
        gateways[region] = gateway

        validators = by_role[NodeRole.VALIDATOR]
        for i, a in enumerate(validators):
            for b in validators[i + 1:]:
                links.append(_intra_link(a, b, 2.0))

        anchors = validators or [gateway]
        for i, miner in enumerate(by_role[NodeRole.MINER]):
            if miner != anchors[i % len(anchors)]:
                links.append(_intra_link(anchors[i % len(anchors)], miner, 1.0))

        feeders = by_role[NodeRole.MINER] or anchors
        edge_nodes = by_role[NodeRole.FULL_NODE] + by_role[NodeRole.LIGHT_NODE] + by_role[NodeRole.RELAY]
        for i, node_id in enumerate(edge_nodes):
            parent = feeders[i % len(feeders)]
            if node_id != parent:
                links.append(_intra_link(parent, node_id, 1.0))

    regions = list(gateways)
    if region_pairs is None:
        region_pairs = [(a, b) for i, a in enumerate(regions) for b in regions[i + 1:]]
    for a, b in region_pairs:
        if a in gateways and b in gateways and a != b:
            latency, bandwidth, reliability = inter_region_link(a, b)
            links.append(Link(gateways[a], gateways[b], latency_ms=latency,
                              bandwidth_mbps=bandwidth, reliability=reliability))

    return nodes, links


def counts_from_spec(node_counts: Dict[str, int]) -> RegionCounts:
    """Translate ``{validators, miners, full_nodes, light_nodes}`` into role counts."""
    aliases = {
        NodeRole.VALIDATOR: ("validators", "validator"),
        NodeRole.MINER: ("miners", "miner"),
        NodeRole.FULL_NODE: ("full_nodes", "fullNodes", "full-node"),
        NodeRole.LIGHT_NODE: ("light_nodes", "lightNodes", "light-node"),
        NodeRole.RELAY: ("relays", "relay"),
    }
    counts: RegionCounts = {}
    for role, keys in aliases.items():
        for key in keys:
            if key in node_counts:
                counts[role] = int(node_counts[key])
                break
    return counts
