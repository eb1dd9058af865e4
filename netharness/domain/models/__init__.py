"""
Domain Models

Immutable catalog objects (topologies, profiles, behaviors, patterns) and the
mutable run records built on top of them.
"""
from .enums import (
    Complexity,
    NodeRole,
    NodeStatus,
    Priority,
    RunKind,
    RunStatus,
    TimingDistribution,
)
from .topology import Link, NodeSpec, Topology, find_topology_problems
from .load import (
    LoadProfile,
    PayloadDistribution,
    Phase,
    ProfileSummary,
    TransactionPattern,
    UserBehavior,
    find_profile_problems,
    merge_patterns,
)
from .transaction import PatternAnalysis, PayloadStats, Transaction, TransactionType
from .runs import (
    FaultDirective,
    Generation,
    GenerationOptions,
    NetworkConditions,
    PhaseMetrics,
    Scenario,
    TestResults,
    TestRun,
    find_scenario_problems,
)

__all__ = [
    # Enums
    "Complexity",
    "NodeRole",
    "NodeStatus",
    "Priority",
    "RunKind",
    "RunStatus",
    "TimingDistribution",
    # Topology
    "Link",
    "NodeSpec",
    "Topology",
    "find_topology_problems",
    # Load
    "LoadProfile",
    "PayloadDistribution",
    "Phase",
    "ProfileSummary",
    "TransactionPattern",
    "UserBehavior",
    "find_profile_problems",
    "merge_patterns",
    # Transactions
    "PatternAnalysis",
    "PayloadStats",
    "Transaction",
    "TransactionType",
    # Runs
    "FaultDirective",
    "Generation",
    "GenerationOptions",
    "NetworkConditions",
    "PhaseMetrics",
    "Scenario",
    "TestResults",
    "TestRun",
    "find_scenario_problems",
]
