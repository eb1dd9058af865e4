"""
Transaction Models

Synthetic transactions and the statistics computed over batches of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import Complexity, Priority


@dataclass(frozen=True)
class TransactionType:
    """Catalog entry for a kind of transaction."""
    id: str
    name: str
    complexity: Complexity
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "complexity": self.complexity.value,
            "description": self.description,
        }


@dataclass
class Transaction:
    """A single synthetic transaction emitted by the synthesizer."""
    id: str
    type: str
    size: int
    complexity: Complexity
    behavior: Optional[str] = None
    pattern: Optional[str] = None
    region: str = "us-east"
    priority: Priority = Priority.MEDIUM
    expected_latency_ms: float = 0.0
    timestamp: float = 0.0   # simulated seconds
    offset: float = 0.0      # ordering inside the tick only
    # addresses, amounts and type-specific call parameters
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "size": self.size,
            "complexity": self.complexity.value,
            "behavior": self.behavior,
            "pattern": self.pattern,
            "region": self.region,
            "priority": self.priority.value,
            "expected_latency_ms": round(self.expected_latency_ms, 3),
            "timestamp": round(self.timestamp, 6),
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        metadata = data.get("metadata") or {}
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "unknown")),
            size=int(data.get("size", 0) or 0),
            complexity=Complexity(data.get("complexity", Complexity.SIMPLE.value)),
            behavior=data.get("behavior") or metadata.get("behavior"),
            pattern=data.get("pattern") or metadata.get("pattern"),
            region=str(data.get("region") or metadata.get("region") or "unknown"),
            priority=Priority(data.get("priority", Priority.MEDIUM.value)),
            expected_latency_ms=float(data.get("expected_latency_ms", data.get("expectedLatency", 0.0)) or 0.0),
            timestamp=float(data.get("timestamp", 0.0) or 0.0),
            data=dict(data.get("data") or {}),
        )


@dataclass
class PayloadStats:
    min: int = 0
    max: int = 0
    mean: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    histogram: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "mean": round(self.mean, 2),
            "p50": round(self.p50, 2),
            "p95": round(self.p95, 2),
            "histogram": list(self.histogram),
        }


@dataclass
class PatternAnalysis:
    """Result of analyzing a transaction batch. Pure data, no references back."""
    count: int = 0
    type_counts: Dict[str, int] = field(default_factory=dict)
    type_distribution: Dict[str, float] = field(default_factory=dict)
    region_distribution: Dict[str, float] = field(default_factory=dict)
    complexity_distribution: Dict[str, float] = field(default_factory=dict)
    pattern_distribution: Dict[str, float] = field(default_factory=dict)
    observed_behavior_mix: Dict[str, float] = field(default_factory=dict)
    inferred_behavior_mix: Dict[str, float] = field(default_factory=dict)
    dominant_behavior: Optional[str] = None
    payload: PayloadStats = field(default_factory=PayloadStats)
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "type_counts": dict(self.type_counts),
            "type_distribution": dict(self.type_distribution),
            "region_distribution": dict(self.region_distribution),
            "complexity_distribution": dict(self.complexity_distribution),
            "pattern_distribution": dict(self.pattern_distribution),
            "observed_behavior_mix": dict(self.observed_behavior_mix),
            "inferred_behavior_mix": dict(self.inferred_behavior_mix),
            "dominant_behavior": self.dominant_behavior,
            "payload": self.payload.to_dict(),
            "insights": list(self.insights),
            "recommendations": list(self.recommendations),
        }
