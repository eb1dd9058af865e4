"""
Load Profile Engine

Walks a load profile's phases tick by tick and decides how many transactions
each tick must emit.

    NotStarted -> Phase[0] -> ... -> Phase[n-1] -> Completed
                      \\______ Stopped / Failed ______/

Within a phase the rate moves linearly from the entry rate (the previous
phase's final rate, 0 for the first phase) toward ``target_tps`` at
``ramp_rate`` tx/s^2 and then holds. A tick covers
``span = min(tick_duration, remaining_in_phase)`` and requests
``ceil(rate(end_of_span) * span)`` transactions.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..models import Phase

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


class EngineState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class TickPlan:
    """What one tick of the profile asks for."""
    phase_index: int
    phase: Phase
    offset: float  # profile time at the start of the span
    span: float
    rate: float
    count: int

    @property
    def end(self) -> float:
        return self.offset + self.span


def rate_at(phase: Phase, entry_rate: float, t: float) -> float:
    """Target throughput ``t`` seconds into ``phase``."""
    if phase.ramp_rate <= 0:
        return phase.target_tps
    if entry_rate <= phase.target_tps:
        return min(phase.target_tps, entry_rate + phase.ramp_rate * t)
    return max(phase.target_tps, entry_rate - phase.ramp_rate * t)


def batch_size(rate: float, span: float) -> int:
    # Round first so 0.1 * 30 does not become 4
    return int(math.ceil(round(rate * span, 9)))


class LoadProfileEngine:
    """Per-run phase state machine."""

    def __init__(self, phases: Sequence[Phase], tick_duration: float = 1.0):
        if tick_duration <= 0:
            raise ValueError("tick_duration must be positive")
        self.phases = tuple(phases)
        self.tick_duration = tick_duration
        self.state = EngineState.NOT_STARTED
        self.phase_index = 0
        self.elapsed_in_phase = 0.0
        self.offset = 0.0
        self.entry_rate = 0.0
        self.current_rate = 0.0
        self.emitted = 0

    @property
    def current_phase(self) -> Optional[Phase]:
        if self.state != EngineState.RUNNING:
            return None
        return self.phases[self.phase_index]

    @property
    def is_finished(self) -> bool:
        return self.state in (EngineState.COMPLETED, EngineState.STOPPED, EngineState.FAILED)

    def start(self) -> None:
        if self.state != EngineState.NOT_STARTED:
            return
        self.state = EngineState.RUNNING
        self._skip_empty_phases()

    def next_tick(self) -> Optional[TickPlan]:
        """Advance one tick. Returns ``None`` once the profile is finished."""
        if self.state == EngineState.NOT_STARTED:
            self.start()
        if self.state != EngineState.RUNNING:
            return None

        phase = self.phases[self.phase_index]
        remaining = phase.duration - self.elapsed_in_phase
        span = remaining if remaining - self.tick_duration < _EPSILON else self.tick_duration
        end = self.elapsed_in_phase + span
        rate = rate_at(phase, self.entry_rate, end)
        plan = TickPlan(
            phase_index=self.phase_index,
            phase=phase,
            offset=self.offset,
            span=span,
            rate=rate,
            count=batch_size(rate, span),
        )

        self.current_rate = rate
        self.emitted += plan.count
        self.offset += span
        self.elapsed_in_phase = end
        if phase.duration - end < _EPSILON:
            self.entry_rate = rate_at(phase, self.entry_rate, phase.duration)
            self.phase_index += 1
            self.elapsed_in_phase = 0.0
            self._skip_empty_phases()
        return plan

    def stop(self) -> None:
        if not self.is_finished:
            self.state = EngineState.STOPPED

    def fail(self) -> None:
        if not self.is_finished:
            self.state = EngineState.FAILED

    def _skip_empty_phases(self) -> None:
        while self.phase_index < len(self.phases) and self.phases[self.phase_index].duration <= 0:
            logger.debug(f"Skipping zero-duration phase '{self.phases[self.phase_index].name}'")
            self.phase_index += 1
        if self.phase_index >= len(self.phases):
            self.state = EngineState.COMPLETED


def expected_transactions(phases: Sequence[Phase], tick_duration: float = 1.0) -> int:
    """Total a profile emits when run to completion."""
    engine = LoadProfileEngine(phases, tick_duration)
    total = 0
    plan = engine.next_tick()
    while plan is not None:
        total += plan.count
        plan = engine.next_tick()
    return total
