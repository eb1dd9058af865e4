"""
Test Orchestrator

Runs network tests: a load profile synthesized into transactions and driven
through a private ``NodeSimulatorSet`` bound to one topology.

Every reference in a scenario is validated before any run state exists, so a
rejected start leaves nothing behind.
"""
import heapq
import logging
import random
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from netharness.application.ports.outbound_ports import IRunHistoryRepository
from netharness.application.services.profile_store import ProfileStore
from netharness.application.services.run_driver import RunExecution, RunSupervisor
from netharness.application.services.topology_registry import TopologyRegistry
from netharness.domain.errors import InvalidScenario, NotFoundError
from netharness.domain.models import (
    LoadProfile,
    NodeStatus,
    Phase,
    PhaseMetrics,
    ProfileSummary,
    RunKind,
    RunStatus,
    Scenario,
    TestRun,
    Topology,
    TransactionPattern,
    find_profile_problems,
    find_scenario_problems,
)
from netharness.domain.services import (
    LoadProfileEngine,
    NodeSimulatorSet,
    SimulationClock,
    TransactionSynthesizer,
    weighted_percentile,
)

logger = logging.getLogger(__name__)

# Random failures start inside the first 80% of the run and last 10-30% of it
RANDOM_FAILURE_WINDOW = 0.8
RANDOM_FAILURE_SPAN = (0.1, 0.3)


class FaultSchedule:
    """Time-ordered status changes for one run's overlay."""

    def __init__(self):
        self._events: List[Tuple[float, int, str, Optional[NodeStatus], str]] = []
        self._seq = 0

    def add(self, at: float, node_id: str, status: Optional[NodeStatus], cause: str) -> None:
        """``status=None`` restores the node's canonical status."""
        heapq.heappush(self._events, (at, self._seq, node_id, status, cause))
        self._seq += 1

    def __len__(self) -> int:
        return len(self._events)

    def apply_due(self, overlay: NodeSimulatorSet, before: float) -> int:
        """Apply every event scheduled strictly before ``before``."""
        applied = 0
        while self._events and self._events[0][0] < before:
            at, _, node_id, status, cause = heapq.heappop(self._events)
            if status is None:
                overlay.restore(node_id, at, cause)
            else:
                overlay.set_status(node_id, status, at, cause)
            applied += 1
        return applied


# =============================================================================
# Execution
# =============================================================================

class NetworkTestExecution(RunExecution):
    """One network test: profile engine -> synthesizer -> node overlay."""

    def __init__(
        self,
        record: TestRun,
        history: IRunHistoryRepository,
        engine: LoadProfileEngine,
        synthesizer: TransactionSynthesizer,
        overlay: NodeSimulatorSet,
        faults: FaultSchedule,
        base_mix: Optional[TransactionPattern],
        phase_mixes: Dict[str, TransactionPattern],
        tick_duration: float,
    ):
        super().__init__(record, history)
        self.engine = engine
        self.synthesizer = synthesizer
        self.overlay = overlay
        self.faults = faults
        self.base_mix = base_mix
        self.phase_mixes = phase_mixes
        self.clock = SimulationClock(tick_duration)
        self.samples: List[Tuple[float, int]] = []
        self._partitioned = False

        record.results.phase_metrics = [PhaseMetrics(name=p.name, target_tps=p.target_tps) for p in engine.phases]

    def advance(self) -> bool:
        plan = self.engine.next_tick()
        if plan is None:
            return True

        self.faults.apply_due(self.overlay, plan.end)
        mix = self.phase_mixes.get(plan.phase.name, self.base_mix)
        transactions = self.synthesizer.synthesize(mix, plan.count, at=plan.offset, span=plan.span)
        outcome = self.overlay.deliver(transactions, plan.span)
        self.clock.advance(plan.span)

        size = sum(tx.size for tx in transactions)
        results = self.record.results
        results.ticks = self.clock.ticks
        results.simulated_seconds = self.clock.now
        results.total_transactions += outcome.generated
        results.processed += outcome.processed
        results.dropped += outcome.dropped
        results.lost += outcome.lost
        results.bytes += size
        results.queued = self.overlay.queued
        if plan.span > 0:
            results.peak_tps = max(results.peak_tps, outcome.generated / plan.span)
        self.samples.extend(outcome.samples)

        phase = results.phase_metrics[plan.phase_index]
        if phase.started_at is None:
            phase.started_at = plan.offset
        phase.elapsed += plan.span
        phase.transaction_count += outcome.generated
        phase.bytes += size
        phase.processed += outcome.processed
        phase.dropped += outcome.dropped
        phase.lost += outcome.lost

        partitions = self.overlay.partitions()
        results.max_partitions = max(results.max_partitions, partitions)
        if partitions > 1 and not self._partitioned:
            results.partitions_observed += 1
            logger.info(f"Test {self.id}: network split into {partitions} partitions at t={plan.offset:.1f}s")
        self._partitioned = partitions > 1

        logger.debug(
            f"Test {self.id} t={self.clock.now:.1f}s phase={plan.phase.name} "
            f"rate={plan.rate:.1f} generated={outcome.generated} processed={outcome.processed}"
        )
        return self.engine.is_finished

    def summarize(self) -> None:
        results = self.record.results
        if self.samples:
            delays = [d for d, _ in self.samples]
            counts = [c for _, c in self.samples]
            total = sum(counts)
            results.average_latency_ms = sum(d * c for d, c in self.samples) / total
            results.p95_latency_ms = weighted_percentile(delays, counts, 95)
            results.p99_latency_ms = weighted_percentile(delays, counts, 99)
        results.queued = self.overlay.queued
        results.availability = self.overlay.availability()
        results.propagation_ms = self.overlay.propagation_ms()
        results.node_metrics = self.overlay.node_metrics()
        results.link_saturation = self.overlay.link_saturation()
        results.drop_reasons = dict(self.overlay.drop_reasons)
        results.faults_injected = list(self.overlay.faults)

    def release(self) -> None:
        if self.record.status == RunStatus.RUNNING and not self.engine.is_finished:
            self.engine.stop()
        self.overlay.restore_all()

    def mark_ended(self, when: datetime) -> None:
        self.record.stopped_at = when


# =============================================================================
# Orchestrator
# =============================================================================

class TestOrchestrator(RunSupervisor):
    """Owns every TestRun and the node overlays it spawns."""

    __test__ = False

    def __init__(
        self,
        registry: TopologyRegistry,
        profiles: ProfileStore,
        history: IRunHistoryRepository,
        tick_duration: float = 1.0,
        tick_interval: float = 1.0,
        queue_seconds: float = 5.0,
        auto_drive: bool = True,
        default_seed: Optional[int] = None,
    ):
        super().__init__(history, tick_interval=tick_interval, auto_drive=auto_drive)
        self.registry = registry
        self.profiles = profiles
        self.tick_duration = tick_duration
        self.queue_seconds = queue_seconds
        self.default_seed = default_seed

    def start_network_test(self, topology_id: str, scenario: Union[Scenario, Dict[str, Any]]) -> TestRun:
        """
        Validate a scenario against a topology and start running it.

        Raises:
            TopologyNotFound: unknown topology id
            InvalidScenario: malformed scenario or unknown references
        """
        topology = self.registry.require_topology(topology_id)
        if not isinstance(scenario, Scenario):
            scenario = Scenario.from_dict(scenario)

        phases, profile = self._resolve_phases(scenario)
        base_mix, phase_mixes = self._resolve_mixes(scenario, phases, profile)
        self._check_faults(scenario, topology, phases)

        seed = scenario.seed if scenario.seed is not None else self.default_seed
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 32)
        scenario = replace(scenario, seed=seed)

        record = TestRun(
            id=f"test-{uuid.uuid4().hex[:12]}",
            topology_id=topology.id,
            scenario=scenario,
            status=RunStatus.RUNNING,
            started_at=datetime.now(),
        )
        overlay = NodeSimulatorSet(
            topology,
            queue_seconds=self.queue_seconds,
            network=scenario.network,
            rng=random.Random(f"{seed}:network"),
        )
        synthesizer = TransactionSynthesizer(
            self.profiles.snapshot_behaviors(),
            rng=random.Random(seed),
            regions=scenario.regions,
            id_prefix=record.id,
        )
        execution = NetworkTestExecution(
            record=record,
            history=self.history,
            engine=LoadProfileEngine(phases, self.tick_duration),
            synthesizer=synthesizer,
            overlay=overlay,
            faults=self._schedule_faults(scenario, topology, phases, random.Random(f"{seed}:faults")),
            base_mix=base_mix,
            phase_mixes=phase_mixes,
            tick_duration=self.tick_duration,
        )
        self._launch(execution)
        logger.info(
            f"Started test {record.id} on {topology.id}: {len(phases)} phase(s), "
            f"{sum(p.duration for p in phases):g}s simulated, seed={seed}"
        )
        return execution.snapshot()

    def stop_test(self, test_id: str) -> bool:
        """Request a stop. False for unknown, terminal or already-stopping runs."""
        return self._stop(test_id)

    def get_test(self, test_id: str) -> Optional[TestRun]:
        return self._get(test_id)

    def list_running_tests(self) -> List[TestRun]:
        return [e.snapshot() for e in self._active_executions()]

    def get_test_history(self, topology_id: Optional[str] = None) -> List[TestRun]:
        return self.history.list(topology_id=topology_id, kind=RunKind.TEST_RUN)

    # -------------------------------------------------------------------------
    # Scenario resolution
    # -------------------------------------------------------------------------

    def _resolve_phases(self, scenario: Scenario) -> Tuple[Tuple[Phase, ...], Optional[LoadProfile]]:
        problems = find_scenario_problems(scenario)
        if problems:
            raise InvalidScenario("Invalid scenario", problems)

        if scenario.profile_id is not None:
            profile = self.profiles.get_load_profile(scenario.profile_id)
            if profile is None:
                raise InvalidScenario(f"Unknown load profile '{scenario.profile_id}'")
            return profile.phases, profile

        total = sum(p.duration for p in scenario.phases)
        inline = LoadProfile(
            id="inline",
            name=scenario.name or "inline",
            duration=total,
            phases=scenario.phases,
            overall=ProfileSummary(duration=total, peak_tps=max(p.target_tps for p in scenario.phases)),
        )
        problems = find_profile_problems(inline)
        if problems:
            raise InvalidScenario("Invalid scenario phases", problems)
        return scenario.phases, None

    def _resolve_mixes(
        self,
        scenario: Scenario,
        phases: Tuple[Phase, ...],
        profile: Optional[LoadProfile],
    ) -> Tuple[Optional[TransactionPattern], Dict[str, TransactionPattern]]:
        try:
            if scenario.pattern_id is not None or scenario.behaviors:
                # An explicit mix applies to every phase
                pattern_ids = [scenario.pattern_id] if scenario.pattern_id else []
                return self.profiles.resolve_mix(pattern_ids, scenario.behaviors), {}

            return self.profiles.profile_mixes(profile, phases)
        except NotFoundError as e:
            raise InvalidScenario(str(e)) from e
        except ValueError as e:
            raise InvalidScenario(f"Invalid behavior mix: {e}") from e

    @staticmethod
    def _check_faults(scenario: Scenario, topology: Topology, phases: Tuple[Phase, ...]) -> None:
        names = {p.name for p in phases}
        problems = []
        for fault in scenario.faults:
            if topology.get_node(fault.node_id) is None:
                problems.append(f"fault references unknown node '{fault.node_id}'")
            if fault.phase is not None and fault.phase not in names:
                problems.append(f"fault references unknown phase '{fault.phase}'")
        if problems:
            raise InvalidScenario("Invalid fault directives", problems)

    @staticmethod
    def _schedule_faults(
        scenario: Scenario,
        topology: Topology,
        phases: Tuple[Phase, ...],
        rng: random.Random,
    ) -> FaultSchedule:
        schedule = FaultSchedule()
        starts: Dict[str, float] = {}
        offset = 0.0
        for phase in phases:
            starts.setdefault(phase.name, offset)
            offset += phase.duration
        total = offset

        for fault in scenario.faults:
            at = starts.get(fault.phase, 0.0) + fault.at
            schedule.add(at, fault.node_id, fault.status, "scenario")
            if fault.duration is not None:
                schedule.add(at + fault.duration, fault.node_id, None, "recovery")

        count = min(scenario.random_node_failures, len(topology.nodes))
        for node_id in rng.sample(topology.node_ids, count):
            at = rng.uniform(0.0, total * RANDOM_FAILURE_WINDOW)
            schedule.add(at, node_id, NodeStatus.DOWN, "random")
            schedule.add(at + rng.uniform(*RANDOM_FAILURE_SPAN) * total, node_id, None, "recovery")
        return schedule
