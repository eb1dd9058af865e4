"""
Simulation Clock

Discrete simulated time, advanced one tick at a time by the run that owns
it. Wall-clock pacing is the driver's concern, not the clock's.
"""


class SimulationClock:
    """Monotonic simulated clock with a fixed tick duration."""

    def __init__(self, tick_duration: float = 1.0, start: float = 0.0):
        if tick_duration <= 0:
            raise ValueError("tick_duration must be positive")
        self.tick_duration = tick_duration
        self._now = start
        self._ticks = 0

    @property
    def now(self) -> float:
        return self._now

    @property
    def ticks(self) -> int:
        return self._ticks

    def advance(self, span: float = None) -> float:
        """Move forward by ``span`` (defaults to one full tick) and return the new time."""
        step = self.tick_duration if span is None else span
        if step < 0:
            raise ValueError("cannot move the clock backwards")
        self._now += step
        self._ticks += 1
        return self._now

    def __repr__(self) -> str:
        return f"SimulationClock(now={self._now:.3f}, ticks={self._ticks})"
