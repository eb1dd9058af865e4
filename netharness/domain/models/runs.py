"""
Run Models

Records for the two kinds of runs the harness executes:

    TestRun     - a load profile driven through a topology's node simulators
    Generation  - a load-only run that synthesizes and counts transactions

Both are mutable while in progress and are frozen (deep-copied) into the
history when they reach a terminal status.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .enums import NodeStatus, RunKind, RunStatus
from .load import Phase, TransactionPattern, _first
from ..errors import InvalidGenerationOptions, InvalidScenario


# =============================================================================
# Scenario
# =============================================================================

def _names(value: Any, label: str) -> Tuple[str, ...]:
    """A single name or a list of names; anything else is a TypeError."""
    if value is None or value == "" or value == []:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise TypeError(f"{label} must be a name or a list of names")
    return tuple(value)


@dataclass(frozen=True)
class NetworkConditions:
    extra_latency_ms: float = 0.0
    packet_loss: float = 0.0  # fraction of routed transactions lost in transit

    def to_dict(self) -> Dict[str, float]:
        return {"extra_latency_ms": self.extra_latency_ms, "packet_loss": self.packet_loss}


@dataclass(frozen=True)
class FaultDirective:
    """Change one node's status at a point in simulated time."""
    node_id: str
    status: NodeStatus = NodeStatus.DOWN
    at: float = 0.0
    phase: Optional[str] = None       # ``at`` is relative to this phase's start
    duration: Optional[float] = None  # revert to the canonical status afterwards

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "status": self.status.value,
            "at": self.at,
            "phase": self.phase,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FaultDirective":
        duration = data.get("duration")
        return cls(
            node_id=str(_first(data, "node_id", "nodeId")),
            status=NodeStatus(data.get("status", NodeStatus.DOWN.value)),
            at=float(_first(data, "at", "at_seconds", "atSeconds", default=0.0)),
            phase=data.get("phase"),
            duration=float(duration) if duration is not None else None,
        )


@dataclass(frozen=True)
class Scenario:
    """What to drive through a topology during a network test."""
    name: str = "scenario"
    description: str = ""
    profile_id: Optional[str] = None
    phases: Tuple[Phase, ...] = ()
    pattern_id: Optional[str] = None
    behaviors: Dict[str, float] = field(default_factory=dict)
    regions: Tuple[str, ...] = ()
    seed: Optional[int] = None
    network: NetworkConditions = field(default_factory=NetworkConditions)
    faults: Tuple[FaultDirective, ...] = ()
    random_node_failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "profile_id": self.profile_id,
            "phases": [p.to_dict() for p in self.phases],
            "pattern_id": self.pattern_id,
            "behaviors": dict(self.behaviors),
            "regions": list(self.regions),
            "seed": self.seed,
            "network": self.network.to_dict(),
            "faults": [f.to_dict() for f in self.faults],
            "random_node_failures": self.random_node_failures,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """Parse a scenario body; raises InvalidScenario on malformed input."""
        if not isinstance(data, dict):
            raise InvalidScenario("Scenario must be an object")
        try:
            return cls._parse(data)
        except InvalidScenario:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidScenario(f"Malformed scenario: {e}") from e

    @classmethod
    def _parse(cls, data: Dict[str, Any]) -> "Scenario":
        phases = tuple(Phase.from_dict(p) for p in data.get("phases") or [])
        legacy_load = _first(data, "load_profile", "loadProfile")
        if not phases and isinstance(legacy_load, dict) and "duration" in data:
            # Older clients send a flat duration and a single rate
            tps = float(_first(legacy_load, "tps", "target_tps", "targetTps", default=0.0))
            phases = (Phase(name="sustained", duration=float(data["duration"]), target_tps=tps),)

        behaviors = data.get("behaviors") or {}
        if isinstance(behaviors, list):
            behaviors = {b: 1.0 for b in behaviors}

        net = data.get("network") or data.get("networkConditions") or {}
        network = NetworkConditions(
            extra_latency_ms=float(_first(net, "extra_latency_ms", "extraLatencyMs", "latency", default=0.0)),
            packet_loss=float(_first(net, "packet_loss", "packetLoss", default=0.0)),
        )

        failures = data.get("failureScenarios") or {}
        random_failures = _first(data, "random_node_failures", "randomNodeFailures")
        if random_failures is None:
            random_failures = failures.get("nodeFailures", 0)

        seed = data.get("seed")
        return cls(
            name=str(data.get("name", "scenario")),
            description=str(data.get("description") or ""),
            profile_id=_first(data, "profile_id", "profileId"),
            phases=phases,
            pattern_id=_first(data, "pattern_id", "patternId"),
            behaviors={str(k): float(v) for k, v in behaviors.items()},
            regions=_names(data.get("regions"), "regions"),
            seed=int(seed) if seed is not None else None,
            network=network,
            faults=tuple(FaultDirective.from_dict(f) for f in data.get("faults") or []),
            random_node_failures=int(random_failures),
        )


def find_scenario_problems(scenario: Scenario) -> List[str]:
    """Structural checks that need no catalog lookups."""
    problems: List[str] = []
    if scenario.profile_id is None and not scenario.phases:
        problems.append("one of profile_id, phases or duration + loadProfile.tps is required")
    if scenario.profile_id is not None and scenario.phases:
        problems.append("profile_id and inline phases are mutually exclusive")
    if not 0.0 <= scenario.network.packet_loss < 1.0:
        problems.append("network.packet_loss must be in [0, 1)")
    if scenario.network.extra_latency_ms < 0:
        problems.append("network.extra_latency_ms must be non-negative")
    if scenario.random_node_failures < 0:
        problems.append("random_node_failures must be non-negative")
    for weight in scenario.behaviors.values():
        if weight < 0:
            problems.append("behavior weights must be non-negative")
            break
    for fault in scenario.faults:
        if fault.at < 0:
            problems.append(f"fault on '{fault.node_id}' has a negative offset")
        if fault.duration is not None and fault.duration <= 0:
            problems.append(f"fault on '{fault.node_id}' duration must be positive")
    return problems


# =============================================================================
# Metrics
# =============================================================================

@dataclass
class PhaseMetrics:
    """Counters for one profile phase of a run."""
    name: str
    target_tps: float = 0.0
    started_at: Optional[float] = None  # simulated seconds
    elapsed: float = 0.0
    transaction_count: int = 0
    bytes: int = 0
    error_count: int = 0
    processed: int = 0
    dropped: int = 0
    lost: int = 0

    @property
    def achieved_tps(self) -> float:
        return self.transaction_count / self.elapsed if self.elapsed > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "target_tps": self.target_tps,
            "started_at": self.started_at,
            "elapsed": round(self.elapsed, 6),
            "achieved_tps": round(self.achieved_tps, 3),
            "transaction_count": self.transaction_count,
            "bytes": self.bytes,
            "error_count": self.error_count,
            "processed": self.processed,
            "dropped": self.dropped,
            "lost": self.lost,
        }


@dataclass
class TestResults:
    """Aggregated outcome of a network test, updated every tick."""
    __test__ = False

    total_transactions: int = 0
    processed: int = 0
    dropped: int = 0
    lost: int = 0
    queued: int = 0
    bytes: int = 0
    ticks: int = 0
    simulated_seconds: float = 0.0
    peak_tps: float = 0.0
    average_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    availability: float = 1.0
    propagation_ms: float = 0.0
    partitions_observed: int = 0
    max_partitions: int = 1
    node_metrics: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    link_saturation: Dict[str, float] = field(default_factory=dict)
    drop_reasons: Dict[str, int] = field(default_factory=dict)
    faults_injected: List[Dict[str, Any]] = field(default_factory=list)
    phase_metrics: List[PhaseMetrics] = field(default_factory=list)

    @property
    def average_tps(self) -> float:
        return self.total_transactions / self.simulated_seconds if self.simulated_seconds > 0 else 0.0

    @property
    def success_rate(self) -> float:
        if self.total_transactions == 0:
            return 1.0
        return self.processed / self.total_transactions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_transactions": self.total_transactions,
            "processed": self.processed,
            "dropped": self.dropped,
            "lost": self.lost,
            "queued": self.queued,
            "bytes": self.bytes,
            "ticks": self.ticks,
            "simulated_seconds": round(self.simulated_seconds, 6),
            "average_tps": round(self.average_tps, 3),
            "peak_tps": round(self.peak_tps, 3),
            "success_rate": round(self.success_rate, 6),
            "average_latency_ms": round(self.average_latency_ms, 3),
            "p95_latency_ms": round(self.p95_latency_ms, 3),
            "p99_latency_ms": round(self.p99_latency_ms, 3),
            "availability": round(self.availability, 6),
            "propagation_ms": round(self.propagation_ms, 3),
            "partitions_observed": self.partitions_observed,
            "max_partitions": self.max_partitions,
            "node_metrics": copy.deepcopy(self.node_metrics),
            "link_saturation": dict(self.link_saturation),
            "drop_reasons": dict(self.drop_reasons),
            "faults_injected": list(self.faults_injected),
            "phase_metrics": [p.to_dict() for p in self.phase_metrics],
        }


# =============================================================================
# Runs
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class TestRun:
    """One execution of a scenario against a topology."""
    __test__ = False

    id: str
    topology_id: str
    scenario: Scenario
    status: RunStatus = RunStatus.RUNNING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    results: TestResults = field(default_factory=TestResults)
    failure_reason: Optional[str] = None
    stop_requested: bool = False

    kind = RunKind.TEST_RUN

    def snapshot(self) -> "TestRun":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "topology_id": self.topology_id,
            "scenario": self.scenario.to_dict(),
            "status": self.status.value,
            "created_at": _iso(self.created_at),
            "started_at": _iso(self.started_at),
            "stopped_at": _iso(self.stopped_at),
            "stop_requested": self.stop_requested,
            "failure_reason": self.failure_reason,
            "results": self.results.to_dict(),
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Caller choices for a load-only run."""
    regions: Tuple[str, ...] = ()
    user_behaviors: Dict[str, float] = field(default_factory=dict)
    custom_patterns: Tuple[TransactionPattern, ...] = ()
    pattern_ids: Tuple[str, ...] = ()
    start_time: Optional[datetime] = None
    seed: Optional[int] = None
    error_rate: float = 0.001

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenerationOptions":
        data = data or {}
        try:
            behaviors = _first(data, "user_behaviors", "userBehaviors", default={})
            if isinstance(behaviors, (list, tuple)):
                behaviors = {b: 1.0 for b in behaviors}
            patterns = _first(data, "custom_patterns", "customPatterns", default=[])
            start = _first(data, "start_time", "startTime")
            if isinstance(start, str):
                start = datetime.fromisoformat(start.replace("Z", "+00:00"))
            if start is not None and start.tzinfo is not None:
                start = start.astimezone().replace(tzinfo=None)
            seed = data.get("seed")
            return cls(
                regions=_names(data.get("regions"), "regions"),
                user_behaviors={str(k): float(v) for k, v in behaviors.items()},
                custom_patterns=tuple(
                    p if isinstance(p, TransactionPattern) else TransactionPattern.from_dict(p)
                    for p in patterns
                ),
                pattern_ids=tuple(_first(data, "pattern_ids", "patternIds", "patterns", default=())),
                start_time=start,
                seed=int(seed) if seed is not None else None,
                error_rate=float(_first(data, "error_rate", "errorRate", default=0.001)),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidGenerationOptions(f"Malformed generation options: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regions": list(self.regions),
            "user_behaviors": dict(self.user_behaviors),
            "custom_patterns": [p.to_dict() for p in self.custom_patterns],
            "pattern_ids": list(self.pattern_ids),
            "start_time": _iso(self.start_time),
            "seed": self.seed,
            "error_rate": self.error_rate,
        }


@dataclass
class Generation:
    """A load-only run of a profile."""
    id: str
    profile_id: str
    options: GenerationOptions
    status: RunStatus = RunStatus.QUEUED
    created_at: datetime = field(default_factory=datetime.now)
    start_time: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    total_transactions: int = 0
    total_bytes: int = 0
    error_count: int = 0
    simulated_seconds: float = 0.0
    phase_metrics: List[PhaseMetrics] = field(default_factory=list)
    type_counts: Dict[str, int] = field(default_factory=dict)
    region_counts: Dict[str, int] = field(default_factory=dict)
    complexity_counts: Dict[str, int] = field(default_factory=dict)
    sample: List[Dict[str, Any]] = field(default_factory=list)
    failure_reason: Optional[str] = None
    stop_requested: bool = False

    kind = RunKind.GENERATION

    @property
    def actual_tps(self) -> float:
        return self.total_transactions / self.simulated_seconds if self.simulated_seconds > 0 else 0.0

    @property
    def average_size(self) -> float:
        return self.total_bytes / self.total_transactions if self.total_transactions else 0.0

    def snapshot(self) -> "Generation":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "profile_id": self.profile_id,
            "status": self.status.value,
            "regions": list(self.options.regions),
            "user_behaviors": dict(self.options.user_behaviors),
            "custom_patterns": [p.id for p in self.options.custom_patterns],
            "options": self.options.to_dict(),
            "created_at": _iso(self.created_at),
            "start_time": _iso(self.start_time),
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "metrics": {
                "total_transactions": self.total_transactions,
                "total_bytes": self.total_bytes,
                "average_size": round(self.average_size, 2),
                "actual_tps": round(self.actual_tps, 3),
                "error_count": self.error_count,
                "simulated_seconds": round(self.simulated_seconds, 6),
                "type_distribution": dict(self.type_counts),
                "region_distribution": dict(self.region_counts),
                "complexity_distribution": dict(self.complexity_counts),
            },
            "phase_metrics": [p.to_dict() for p in self.phase_metrics],
            "sample": list(self.sample),
            "stop_requested": self.stop_requested,
            "failure_reason": self.failure_reason,
        }
