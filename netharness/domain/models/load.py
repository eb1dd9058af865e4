"""
Load Models

Declarative description of synthetic traffic:

    LoadProfile  - ordered phases of target throughput over simulated time
    UserBehavior - how one class of synthetic user emits transactions
    TransactionPattern - weighted mixture of UserBehaviors
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from .enums import Complexity, TimingDistribution
from ..errors import InvalidSpecError

#: Tolerance used when checking that mixing weights sum to one.
WEIGHT_EPSILON: float = 1e-9

#: Fraction of a legacy ``rampUp`` phase spent ramping to target.
LEGACY_RAMP_FRACTION: float = 0.2

_LEGACY_COMPLEXITY = {"low": "simple", "high": "complex"}


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; accepts snake_case and camelCase spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# Load profiles
# =============================================================================

@dataclass(frozen=True)
class Phase:
    """One ramp/sustain segment of a load profile."""
    name: str
    duration: float
    target_tps: float
    ramp_rate: float = 0.0           # tx/s^2; 0 steps straight to target
    pattern_id: Optional[str] = None  # overrides the profile mix for this phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "duration": self.duration,
            "target_tps": self.target_tps,
            "ramp_rate": self.ramp_rate,
            "pattern_id": self.pattern_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Phase":
        duration = float(data["duration"])
        target = float(_first(data, "target_tps", "targetTps", "targetTPS", default=0.0))
        ramp = _first(data, "ramp_rate", "rampRate")
        if ramp is None:
            # Legacy profiles flag a ramp instead of giving a rate
            if data.get("rampUp") and duration > 0:
                ramp = target / (LEGACY_RAMP_FRACTION * duration)
            else:
                ramp = 0.0
        pattern = _first(data, "pattern_id", "patternId", "pattern")
        return cls(
            name=str(data.get("name", "phase")),
            duration=duration,
            target_tps=target,
            ramp_rate=float(ramp),
            pattern_id=pattern,
        )


@dataclass(frozen=True)
class ProfileSummary:
    """Declared totals of a profile, checked against its phases."""
    duration: float
    peak_tps: float
    total_transactions: Optional[int] = None
    complexity: Complexity = Complexity.MEDIUM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "peak_tps": self.peak_tps,
            "total_transactions": self.total_transactions,
            "complexity": self.complexity.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_duration: float = 0.0) -> "ProfileSummary":
        total = _first(data, "total_transactions", "totalTransactions")
        complexity = data.get("complexity", Complexity.MEDIUM.value)
        return cls(
            duration=float(_first(data, "duration", default=default_duration)),
            peak_tps=float(_first(data, "peak_tps", "peakTps", "targetTps", "target_tps", default=0.0)),
            total_transactions=int(total) if total is not None else None,
            complexity=Complexity(_LEGACY_COMPLEXITY.get(complexity, complexity)),
        )


@dataclass(frozen=True)
class LoadProfile:
    """Time-phased schedule of target transaction throughput."""
    id: str
    name: str
    duration: float
    phases: Tuple[Phase, ...]
    overall: ProfileSummary
    description: str = ""
    pattern_id: Optional[str] = None
    custom: bool = False

    @property
    def phase_names(self) -> List[str]:
        return [p.name for p in self.phases]

    @property
    def max_phase_tps(self) -> float:
        return max((p.target_tps for p in self.phases), default=0.0)

    def get_phase(self, name: str) -> Optional[Phase]:
        for phase in self.phases:
            if phase.name == name:
                return phase
        return None

    def phase_start(self, name: str) -> Optional[float]:
        """Offset in seconds at which the named phase begins."""
        offset = 0.0
        for phase in self.phases:
            if phase.name == name:
                return offset
            offset += phase.duration
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "custom": self.custom,
            "duration": self.duration,
            "pattern_id": self.pattern_id,
            "phases": [p.to_dict() for p in self.phases],
            "overall": self.overall.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], profile_id: Optional[str] = None) -> "LoadProfile":
        phases = tuple(Phase.from_dict(p) for p in data.get("phases", []))
        duration = _first(data, "duration")
        if duration is None:
            duration = sum(p.duration for p in phases)
        overall_data = data.get("overall") or {}
        overall = ProfileSummary.from_dict(overall_data, default_duration=float(duration))
        if not overall_data:
            overall = replace(overall, peak_tps=max((p.target_tps for p in phases), default=0.0))
        return cls(
            id=profile_id or str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description") or ""),
            duration=float(duration),
            phases=phases,
            overall=overall,
            pattern_id=_first(data, "pattern_id", "patternId"),
            custom=bool(data.get("custom", False)),
        )


def find_profile_problems(profile: LoadProfile) -> List[str]:
    """Return every consistency violation between a profile's phases and summary."""
    problems: List[str] = []
    if not profile.name:
        problems.append("name is required")
    if not profile.phases:
        problems.append("at least one phase is required")

    names = set()
    for phase in profile.phases:
        if phase.name in names:
            problems.append(f"duplicate phase name '{phase.name}'")
        names.add(phase.name)
        if phase.duration < 0:
            problems.append(f"phase '{phase.name}' duration must be non-negative")
        if phase.target_tps < 0:
            problems.append(f"phase '{phase.name}' target_tps must be non-negative")
        if phase.ramp_rate < 0:
            problems.append(f"phase '{phase.name}' ramp_rate must be non-negative")

    total = sum(p.duration for p in profile.phases)
    if not math.isclose(total, profile.duration, abs_tol=1e-9):
        problems.append(f"phase durations sum to {total:g}s but profile duration is {profile.duration:g}s")
    if not math.isclose(total, profile.overall.duration, abs_tol=1e-9):
        problems.append(f"overall duration {profile.overall.duration:g}s does not match phase total {total:g}s")
    if profile.overall.peak_tps < profile.max_phase_tps:
        problems.append(
            f"overall peak_tps {profile.overall.peak_tps:g} is below the highest phase target {profile.max_phase_tps:g}"
        )
    return problems


# =============================================================================
# User behaviors and patterns
# =============================================================================

@dataclass(frozen=True)
class PayloadDistribution:
    """Payload size in bytes, sampled from a triangular(min, mean, max) shape."""
    min: int = 100
    max: int = 1000
    mean: int = 500

    def to_dict(self) -> Dict[str, int]:
        return {"min": self.min, "max": self.max, "mean": self.mean}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PayloadDistribution":
        lo = int(data.get("min", 100))
        hi = int(data.get("max", 1000))
        mean = int(_first(data, "mean", "avg", default=(lo + hi) // 2))
        return cls(min=lo, max=hi, mean=mean)


@dataclass(frozen=True)
class UserBehavior:
    """Statistical profile of how one class of synthetic user transacts."""
    id: str
    name: str
    type_weights: Dict[str, float]
    payload: PayloadDistribution = field(default_factory=PayloadDistribution)
    timing: TimingDistribution = TimingDistribution.UNIFORM
    region: str = "us-east"
    description: str = ""
    population: int = 0
    category: str = "retail"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type_weights": dict(self.type_weights),
            "payload": self.payload.to_dict(),
            "timing": self.timing.value,
            "region": self.region,
            "population": self.population,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserBehavior":
        weights = _first(data, "type_weights", "typeWeights")
        if weights is None:
            preferred = data.get("preferred_types") or data.get("preferredTypes") or []
            weights = {t: 1.0 for t in preferred}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            description=str(data.get("description") or ""),
            type_weights={str(k): float(v) for k, v in weights.items()},
            payload=PayloadDistribution.from_dict(data.get("payload") or {}),
            timing=TimingDistribution(data.get("timing", TimingDistribution.UNIFORM.value)),
            region=str(data.get("region", "us-east")),
            population=int(data.get("population", 0)),
            category=str(data.get("category", "retail")),
        )


@dataclass(frozen=True)
class TransactionPattern:
    """Weighted mixture of user behaviors."""
    id: str
    name: str
    behavior_weights: Dict[str, float]
    description: str = ""
    custom: bool = False

    @property
    def total_weight(self) -> float:
        return sum(self.behavior_weights.values())

    def normalized(self) -> "TransactionPattern":
        """Return a copy whose active weights sum to 1.0."""
        if any(w < 0 for w in self.behavior_weights.values()):
            raise InvalidSpecError(f"Pattern '{self.id}' has negative weights")
        total = self.total_weight
        if total <= 0:
            raise InvalidSpecError(f"Pattern '{self.id}' has no positive weights")
        if math.isclose(total, 1.0, abs_tol=WEIGHT_EPSILON):
            return self
        weights = {k: v / total for k, v in self.behavior_weights.items() if v > 0}
        return replace(self, behavior_weights=weights)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "custom": self.custom,
            "behavior_weights": dict(self.behavior_weights),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionPattern":
        weights = _first(data, "behavior_weights", "behaviorWeights", "weights")
        if weights is None:
            # A plain list of behavior ids means an even mix
            weights = {b: 1.0 for b in (data.get("behaviors") or [])}
        pattern_id = str(data.get("id") or data.get("name") or "custom-pattern")
        return cls(
            id=pattern_id,
            name=str(data.get("name", pattern_id)),
            description=str(data.get("description") or ""),
            behavior_weights={str(k): float(v) for k, v in weights.items()},
            custom=bool(data.get("custom", False)),
        )


def merge_patterns(patterns: List[TransactionPattern], pattern_id: str = "merged") -> TransactionPattern:
    """Average several patterns, each contributing equally, into one normalized mix."""
    if not patterns:
        raise InvalidSpecError("Cannot merge an empty pattern list")
    if len(patterns) == 1:
        return patterns[0].normalized()
    weights: Dict[str, float] = {}
    for pattern in patterns:
        for behavior_id, weight in pattern.normalized().behavior_weights.items():
            weights[behavior_id] = weights.get(behavior_id, 0.0) + weight / len(patterns)
    return TransactionPattern(
        id=pattern_id,
        name=" + ".join(p.name for p in patterns),
        behavior_weights=weights,
        custom=True,
    ).normalized()
