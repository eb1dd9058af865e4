"""
Node Simulator

Per-run overlay over a topology. Every node of the topology gets a private
``NodeSimulator`` holding its queue, counters and current status, so two runs
on the same topology never share state and faults never reach the registry.

Queueing model per tick:
    available  = backlog + arrivals
    processed  = min(available, effective_capacity * span)
    queued     = min(available - processed, capacity * queue_seconds)
    dropped    = the rest
    delay_ms   = base_latency * (1 + rho / (1 - rho)) + backlog wait
    rho        = min(offered / effective_capacity, 0.99)
"""
from __future__ import annotations

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from ..errors import SimulationFault
from ..models import NetworkConditions, NodeSpec, NodeStatus, Topology, Transaction

logger = logging.getLogger(__name__)

MAX_UTILIZATION = 0.99
NO_AVAILABLE_NODE = "no_available_node"
QUEUE_OVERFLOW = "queue_overflow"


def weighted_percentile(values: Sequence[float], weights: Sequence[float], q: float) -> float:
    """Percentile ``q`` (0-100) of ``values`` where each value counts ``weights`` times."""
    if len(values) == 0:
        return 0.0
    vals = np.asarray(values, dtype=float)
    wts = np.asarray(weights, dtype=float)
    if wts.sum() <= 0:
        return 0.0
    order = np.argsort(vals)
    vals, wts = vals[order], wts[order]
    cumulative = np.cumsum(wts)
    idx = int(np.searchsorted(cumulative, q / 100.0 * cumulative[-1], side="left"))
    return float(vals[min(idx, len(vals) - 1)])


@dataclass
class NodeTick:
    """What a single node did in one tick."""
    arrivals: int = 0
    processed: int = 0
    dropped: int = 0
    processed_bytes: float = 0.0
    delay_ms: float = 0.0


class NodeSimulator:
    """Queue, counters and status of one node inside one run."""

    def __init__(self, spec: NodeSpec, queue_seconds: float = 5.0, extra_latency_ms: float = 0.0):
        self.spec = spec
        self.status = spec.status
        self.queue_limit = int(spec.capacity_tps * queue_seconds)
        self.extra_latency_ms = extra_latency_ms

        self.queued = 0
        self.queued_bytes = 0.0
        self.received = 0
        self.processed = 0
        self.dropped = 0
        self.bytes_processed = 0.0
        self.peak_tps = 0.0
        self.elapsed = 0.0
        self.up_time = 0.0
        self.last_delay_ms = spec.base_latency_ms
        self.samples: List[Tuple[float, int]] = []

    @property
    def id(self) -> str:
        return self.spec.id

    @property
    def available(self) -> bool:
        return self.status != NodeStatus.DOWN

    @property
    def effective_tps(self) -> float:
        return self.spec.capacity_tps * self.status.capacity_factor

    def processing_delay(self, offered_tps: float, backlog: int) -> float:
        """Delay in ms for the given offered rate; grows without bound toward saturation."""
        capacity = self.effective_tps
        if capacity <= 0:
            return self.spec.base_latency_ms + self.extra_latency_ms
        rho = min(offered_tps / capacity, MAX_UTILIZATION)
        queue_wait_ms = backlog / capacity * 1000.0
        return self.spec.base_latency_ms * (1.0 + rho / (1.0 - rho)) + queue_wait_ms + self.extra_latency_ms

    def step(self, arrivals: int, arrival_bytes: float, span: float) -> NodeTick:
        available = self.queued + arrivals
        available_bytes = self.queued_bytes + arrival_bytes
        capacity = int(self.effective_tps * span)
        processed = min(available, capacity)

        remaining = available - processed
        kept = min(remaining, self.queue_limit)
        dropped = remaining - kept

        per_tx = available_bytes / available if available else 0.0
        processed_bytes = processed * per_tx
        delay = self.processing_delay(available / span if span > 0 else 0.0, kept)

        self.queued = kept
        self.queued_bytes = kept * per_tx
        self.received += arrivals
        self.processed += processed
        self.dropped += dropped
        self.bytes_processed += processed_bytes
        self.elapsed += span
        if self.available:
            self.up_time += span
        if span > 0:
            self.peak_tps = max(self.peak_tps, processed / span)
        self.last_delay_ms = delay
        if processed:
            self.samples.append((delay, processed))

        return NodeTick(arrivals=arrivals, processed=processed, dropped=dropped,
                        processed_bytes=processed_bytes, delay_ms=delay)

    def metrics(self) -> Dict[str, object]:
        delays = [d for d, _ in self.samples]
        counts = [c for _, c in self.samples]
        mean = float(np.average(delays, weights=counts)) if self.samples else 0.0
        return {
            "role": self.spec.role.value,
            "region": self.spec.region,
            "status": self.status.value,
            "received": self.received,
            "processed": self.processed,
            "dropped": self.dropped,
            "queued": self.queued,
            "throughput_tps": round(self.processed / self.elapsed, 3) if self.elapsed else 0.0,
            "peak_tps": round(self.peak_tps, 3),
            "average_latency_ms": round(mean, 3),
            "p95_latency_ms": round(weighted_percentile(delays, counts, 95), 3),
            "uptime": round(self.up_time / self.elapsed, 6) if self.elapsed else 1.0,
        }


@dataclass
class DeliveryResult:
    """Aggregate outcome of delivering one tick's batch to the overlay."""
    generated: int = 0
    processed: int = 0
    dropped: int = 0
    lost: int = 0
    unroutable: int = 0
    bytes: float = 0.0
    samples: List[Tuple[float, int]] = field(default_factory=list)


class NodeSimulatorSet:
    """A run's private overlay: one simulator per node plus link accounting."""

    def __init__(
        self,
        topology: Topology,
        queue_seconds: float = 5.0,
        network: Optional[NetworkConditions] = None,
        rng: Optional[random.Random] = None,
    ):
        self.topology = topology
        self.network = network or NetworkConditions()
        self.rng = rng or random.Random()
        self.nodes: Dict[str, NodeSimulator] = {
            spec.id: NodeSimulator(spec, queue_seconds, self.network.extra_latency_ms)
            for spec in topology.nodes
        }
        self.graph = topology.to_graph()
        self.by_region: Dict[str, List[str]] = defaultdict(list)
        for spec in topology.nodes:
            self.by_region[spec.region].append(spec.id)

        self.link_peak: Dict[Tuple[str, str], float] = {}
        self.faults: List[Dict[str, object]] = []
        self.lost = 0
        self.drop_reasons: Dict[str, int] = {QUEUE_OVERFLOW: 0, NO_AVAILABLE_NODE: 0}
        self._view_cache: Optional[Tuple[int, float]] = None

    # -------------------------------------------------------------------------
    # Status overlay
    # -------------------------------------------------------------------------

    def set_status(self, node_id: str, status: NodeStatus, at: float = 0.0, cause: str = "scenario") -> None:
        if node_id not in self.nodes:
            raise SimulationFault(f"Node '{node_id}' is not part of this run's topology")
        node = self.nodes[node_id]
        if node.status == status:
            return
        self.faults.append({
            "node_id": node_id,
            "from": node.status.value,
            "to": status.value,
            "at": round(at, 6),
            "cause": cause,
        })
        logger.debug(f"Node {node_id}: {node.status.value} -> {status.value} at t={at:.3f}")
        node.status = status
        self._view_cache = None

    def restore(self, node_id: str, at: float = 0.0, cause: str = "recovery") -> None:
        node = self.nodes.get(node_id)
        if node is None:
            raise SimulationFault(f"Node '{node_id}' is not part of this run's topology")
        self.set_status(node_id, node.spec.status, at, cause)

    def restore_all(self) -> None:
        """Return every node to its canonical status; the overlay is discarded after."""
        for node in self.nodes.values():
            node.status = node.spec.status
        self._view_cache = None

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def deliver(self, transactions: Sequence[Transaction], span: float) -> DeliveryResult:
        result = DeliveryResult(generated=len(transactions))
        arrivals: Dict[str, int] = defaultdict(int)
        arrival_bytes: Dict[str, float] = defaultdict(float)

        by_region: Dict[str, List[Transaction]] = defaultdict(list)
        for tx in transactions:
            if self.network.packet_loss > 0 and self.rng.random() < self.network.packet_loss:
                result.lost += 1
                continue
            by_region[tx.region].append(tx)

        for region, batch in by_region.items():
            candidates = [nid for nid in self.by_region.get(region, []) if self.nodes[nid].available]
            if not candidates:
                candidates = [nid for nid, node in self.nodes.items() if node.available]
            if not candidates:
                result.unroutable += len(batch)
                continue
            weights = [self.nodes[nid].effective_tps for nid in candidates]
            targets = self.rng.choices(candidates, weights=weights, k=len(batch))
            for node_id, tx in zip(targets, batch):
                arrivals[node_id] += 1
                arrival_bytes[node_id] += tx.size

        link_bytes: Dict[Tuple[str, str], float] = defaultdict(float)
        for node_id, node in self.nodes.items():
            tick = node.step(arrivals.get(node_id, 0), arrival_bytes.get(node_id, 0.0), span)
            result.processed += tick.processed
            result.dropped += tick.dropped
            result.bytes += tick.processed_bytes
            if tick.processed:
                result.samples.append((tick.delay_ms, tick.processed))
                for peer in self.graph.neighbors(node_id):
                    if self.nodes[peer].available:
                        link_bytes[tuple(sorted((node_id, peer)))] += tick.processed_bytes

        self._account_links(link_bytes, span)
        self.lost += result.lost
        self.drop_reasons[QUEUE_OVERFLOW] += result.dropped
        self.drop_reasons[NO_AVAILABLE_NODE] += result.unroutable
        result.dropped += result.unroutable
        return result

    def _account_links(self, link_bytes: Dict[Tuple[str, str], float], span: float) -> None:
        if span <= 0:
            return
        for key, sent in link_bytes.items():
            bandwidth = self.graph.edges[key]["bandwidth"]
            utilization = sent * 8.0 / (bandwidth * 1e6 * span)
            if utilization > self.link_peak.get(key, 0.0):
                self.link_peak[key] = utilization

    # -------------------------------------------------------------------------
    # Graph view
    # -------------------------------------------------------------------------

    def live_graph(self) -> nx.Graph:
        live = [nid for nid, node in self.nodes.items() if node.available]
        return self.graph.subgraph(live)

    def _view(self) -> Tuple[int, float]:
        if self._view_cache is None:
            live = self.live_graph()
            if live.number_of_nodes() == 0:
                self._view_cache = (0, 0.0)
            else:
                partitions = nx.number_connected_components(live)
                largest = max(nx.connected_components(live), key=len)
                root = max(largest, key=lambda nid: self.nodes[nid].effective_tps)
                distances = nx.single_source_dijkstra_path_length(live, root, weight="latency")
                self._view_cache = (partitions, float(max(distances.values())))
        return self._view_cache

    def partitions(self) -> int:
        """Connected components among non-down nodes."""
        return self._view()[0]

    def propagation_ms(self) -> float:
        """Worst link-latency distance from the strongest node of the largest partition."""
        return self._view()[1]

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @property
    def queued(self) -> int:
        return sum(node.queued for node in self.nodes.values())

    def availability(self) -> float:
        if not self.nodes:
            return 0.0
        return sum(1 for node in self.nodes.values() if node.available) / len(self.nodes)

    def node_metrics(self) -> Dict[str, Dict[str, object]]:
        return {node_id: node.metrics() for node_id, node in self.nodes.items()}

    def link_saturation(self) -> Dict[str, float]:
        return {f"{a}<->{b}": round(v, 6) for (a, b), v in sorted(self.link_peak.items())}
