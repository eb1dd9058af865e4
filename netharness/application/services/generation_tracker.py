"""
Generation Tracker

Load-only runs: a profile is walked tick by tick, transactions are
synthesized and counted, and a bounded sample is kept for inspection.
"""
import logging
import random
import uuid
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from netharness.application.ports.outbound_ports import IRunHistoryRepository
from netharness.application.services.profile_store import ProfileStore
from netharness.application.services.run_driver import RunExecution, RunSupervisor
from netharness.domain.errors import InvalidGenerationOptions, NotFoundError
from netharness.domain.models import (
    Generation,
    GenerationOptions,
    LoadProfile,
    PhaseMetrics,
    RunKind,
    TransactionPattern,
    UserBehavior,
)
from netharness.domain.services import LoadProfileEngine, SimulationClock, TransactionSynthesizer

logger = logging.getLogger(__name__)


class GenerationExecution(RunExecution):
    """One load-only run."""

    def __init__(
        self,
        record: Generation,
        history: IRunHistoryRepository,
        engine: LoadProfileEngine,
        synthesizer: TransactionSynthesizer,
        base_mix: Optional[TransactionPattern],
        phase_mixes: Dict[str, TransactionPattern],
        tick_duration: float,
        sample_size: int,
        rng: random.Random,
    ):
        super().__init__(record, history)
        self.engine = engine
        self.synthesizer = synthesizer
        self.base_mix = base_mix
        self.phase_mixes = phase_mixes
        self.clock = SimulationClock(tick_duration)
        self.sample_size = sample_size
        self.rng = rng
        self._types: Counter = Counter()
        self._regions: Counter = Counter()
        self._complexities: Counter = Counter()

        record.phase_metrics = [PhaseMetrics(name=p.name, target_tps=p.target_tps) for p in engine.phases]

    def seconds_until_ready(self) -> float:
        start = self.record.start_time
        if start is None:
            return 0.0
        return max(0.0, (start - datetime.now()).total_seconds())

    def advance(self) -> bool:
        plan = self.engine.next_tick()
        if plan is None:
            return True

        mix = self.phase_mixes.get(plan.phase.name, self.base_mix)
        transactions = self.synthesizer.synthesize(mix, plan.count, at=plan.offset, span=plan.span)
        self.clock.advance(plan.span)

        error_rate = self.record.options.error_rate
        errors = sum(1 for _ in transactions if self.rng.random() < error_rate) if error_rate > 0 else 0
        size = sum(tx.size for tx in transactions)

        record = self.record
        record.total_transactions += len(transactions)
        record.total_bytes += size
        record.error_count += errors
        record.simulated_seconds = self.clock.now

        phase = record.phase_metrics[plan.phase_index]
        if phase.started_at is None:
            phase.started_at = plan.offset
        phase.elapsed += plan.span
        phase.transaction_count += len(transactions)
        phase.bytes += size
        phase.error_count += errors

        seen = record.total_transactions - len(transactions)
        for tx in transactions:
            self._types[tx.type] += 1
            self._regions[tx.region] += 1
            self._complexities[tx.complexity.value] += 1
            seen += 1
            # Reservoir sampling keeps a uniform sample of bounded size
            if len(record.sample) < self.sample_size:
                record.sample.append(tx.to_dict())
            else:
                slot = self.rng.randrange(seen)
                if slot < self.sample_size:
                    record.sample[slot] = tx.to_dict()

        logger.debug(f"Generation {self.id} t={self.clock.now:.1f}s phase={plan.phase.name} emitted={len(transactions)}")
        return self.engine.is_finished

    def summarize(self) -> None:
        self.record.type_counts = dict(self._types)
        self.record.region_counts = dict(self._regions)
        self.record.complexity_counts = dict(self._complexities)

    def release(self) -> None:
        self.engine.stop()

    def mark_ended(self, when: datetime) -> None:
        self.record.ended_at = when


class GenerationTracker(RunSupervisor):
    """Owns every Generation; also the read side of the profile catalog."""

    def __init__(
        self,
        profiles: ProfileStore,
        history: IRunHistoryRepository,
        tick_duration: float = 1.0,
        tick_interval: float = 1.0,
        sample_size: int = 200,
        auto_drive: bool = True,
        default_seed: Optional[int] = None,
    ):
        super().__init__(history, tick_interval=tick_interval, auto_drive=auto_drive)
        self.profiles = profiles
        self.tick_duration = tick_duration
        self.sample_size = sample_size
        self.default_seed = default_seed

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def list_patterns(self) -> List[TransactionPattern]:
        return self.profiles.list_patterns()

    def list_load_profiles(self) -> List[LoadProfile]:
        return self.profiles.list_load_profiles()

    def list_user_behaviors(self) -> List[UserBehavior]:
        return self.profiles.list_user_behaviors()

    def create_custom_load_profile(self, spec: Dict[str, Any]) -> LoadProfile:
        return self.profiles.create_custom_load_profile(spec)

    # -------------------------------------------------------------------------
    # Generations
    # -------------------------------------------------------------------------

    def generate_load(
        self,
        profile_id: str,
        options: Union[GenerationOptions, Dict[str, Any], None] = None,
    ) -> Generation:
        """
        Start generating load for a profile.

        Raises:
            ProfileNotFound: unknown profile id (nothing is created)
            InvalidGenerationOptions: malformed options or unknown references
        """
        profile = self.profiles.require_load_profile(profile_id)
        if not isinstance(options, GenerationOptions):
            options = GenerationOptions.from_dict(options)
        if not 0.0 <= options.error_rate <= 1.0:
            raise InvalidGenerationOptions("error_rate must be between 0 and 1")

        try:
            if options.pattern_ids or options.custom_patterns or options.user_behaviors:
                base_mix = self.profiles.resolve_mix(options.pattern_ids, options.user_behaviors,
                                                     options.custom_patterns)
                phase_mixes = {}
            else:
                base_mix, phase_mixes = self.profiles.profile_mixes(profile)
        except NotFoundError as e:
            raise InvalidGenerationOptions(str(e)) from e
        except ValueError as e:
            raise InvalidGenerationOptions(f"Invalid behavior mix: {e}") from e

        seed = options.seed if options.seed is not None else self.default_seed
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 32)
        options = replace(options, seed=seed)

        record = Generation(
            id=f"gen-{uuid.uuid4().hex[:12]}",
            profile_id=profile.id,
            options=options,
            start_time=options.start_time or datetime.now(),
        )
        execution = GenerationExecution(
            record=record,
            history=self.history,
            engine=LoadProfileEngine(profile.phases, self.tick_duration),
            synthesizer=TransactionSynthesizer(
                self.profiles.snapshot_behaviors(),
                rng=random.Random(seed),
                regions=options.regions,
                id_prefix=record.id,
            ),
            base_mix=base_mix,
            phase_mixes=phase_mixes,
            tick_duration=self.tick_duration,
            sample_size=self.sample_size,
            rng=random.Random(f"{seed}:errors"),
        )
        self._launch(execution)
        logger.info(f"Queued generation {record.id} for profile {profile.id} (seed={seed})")
        return execution.snapshot()

    def stop_generation(self, generation_id: str) -> bool:
        return self._stop(generation_id)

    def get_generation(self, generation_id: str) -> Optional[Generation]:
        return self._get(generation_id)

    def list_active_generations(self) -> List[Generation]:
        return [e.snapshot() for e in self._active_executions()]

    def list_generation_history(self) -> List[Generation]:
        return self.history.list(kind=RunKind.GENERATION)
