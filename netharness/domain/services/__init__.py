"""
Domain Services

Pure, per-run simulation machinery. Nothing here touches threads, stores
or wall-clock time.
"""
from .clock import SimulationClock
from .load_profile_engine import EngineState, LoadProfileEngine, TickPlan, expected_transactions, rate_at
from .node_simulator import DeliveryResult, NodeSimulator, NodeSimulatorSet, weighted_percentile
from .pattern_analyzer import analyze_transaction_patterns, infer_behavior_mix
from .synthesizer import TransactionSynthesizer
from .topology_builder import build_layout, counts_from_spec, great_circle_km, inter_region_link

__all__ = [
    "SimulationClock",
    "EngineState",
    "LoadProfileEngine",
    "TickPlan",
    "expected_transactions",
    "rate_at",
    "DeliveryResult",
    "NodeSimulator",
    "NodeSimulatorSet",
    "weighted_percentile",
    "analyze_transaction_patterns",
    "infer_behavior_mix",
    "TransactionSynthesizer",
    "build_layout",
    "counts_from_spec",
    "great_circle_km",
    "inter_region_link",
]
