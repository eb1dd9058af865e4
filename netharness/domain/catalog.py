"""
Built-in Catalog

Reference data shipped with the harness: regions, node role envelopes,
transaction types, user behaviors, transaction patterns, load profiles and
the three built-in topologies.
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .models import (
    Complexity,
    LoadProfile,
    NodeRole,
    PayloadDistribution,
    Phase,
    ProfileSummary,
    TimingDistribution,
    Topology,
    TransactionPattern,
    TransactionType,
    UserBehavior,
)

# =============================================================================
# Regions and node roles
# =============================================================================

REGIONS: Dict[str, Dict[str, Any]] = {
    "us-east": {"coordinates": (40.7128, -74.0060), "base_latency_ms": 25},
    "us-west": {"coordinates": (37.7749, -122.4194), "base_latency_ms": 30},
    "eu-central": {"coordinates": (50.1109, 8.6821), "base_latency_ms": 35},
    "eu-west": {"coordinates": (53.3498, -6.2603), "base_latency_ms": 35},
    "asia-southeast": {"coordinates": (1.3521, 103.8198), "base_latency_ms": 50},
    "asia-northeast": {"coordinates": (35.6762, 139.6503), "base_latency_ms": 45},
    "sa-east": {"coordinates": (-23.5505, -46.6333), "base_latency_ms": 80},
    "af-south": {"coordinates": (-33.9249, 18.4241), "base_latency_ms": 100},
    "me-south": {"coordinates": (26.0667, 50.5577), "base_latency_ms": 90},
}

DEFAULT_REGION_LATENCY_MS = 50

# Measured gateway-to-gateway characteristics: (latency_ms, bandwidth_mbps, reliability)
INTER_REGION_LINKS: Dict[Tuple[str, str], Tuple[float, float, float]] = {
    ("us-east", "us-west"): (75.0, 500.0, 0.995),
    ("eu-central", "us-east"): (85.0, 400.0, 0.994),
    ("asia-southeast", "us-east"): (180.0, 300.0, 0.992),
    ("asia-northeast", "us-east"): (150.0, 350.0, 0.993),
    ("asia-southeast", "us-west"): (120.0, 400.0, 0.994),
    ("asia-northeast", "us-west"): (100.0, 450.0, 0.995),
    ("eu-central", "us-west"): (150.0, 350.0, 0.993),
    ("asia-southeast", "eu-central"): (140.0, 350.0, 0.993),
    ("asia-northeast", "eu-central"): (160.0, 300.0, 0.992),
    ("asia-northeast", "asia-southeast"): (60.0, 800.0, 0.997),
}

ROLE_PROFILES: Dict[NodeRole, Dict[str, float]] = {
    NodeRole.VALIDATOR: {"capacity_tps": 2000.0, "base_latency_ms": 5.0},
    NodeRole.MINER: {"capacity_tps": 3000.0, "base_latency_ms": 8.0},
    NodeRole.FULL_NODE: {"capacity_tps": 1000.0, "base_latency_ms": 10.0},
    NodeRole.LIGHT_NODE: {"capacity_tps": 200.0, "base_latency_ms": 20.0},
    NodeRole.RELAY: {"capacity_tps": 1500.0, "base_latency_ms": 4.0},
}

# =============================================================================
# Transactions
# =============================================================================

TRANSACTION_TYPES: Dict[str, TransactionType] = {
    t.id: t
    for t in (
        TransactionType("transfer", "Simple Transfer", Complexity.SIMPLE,
                        "Basic token transfer between addresses"),
        TransactionType("contract", "Smart Contract Call", Complexity.MEDIUM,
                        "Execution of smart contract methods"),
        TransactionType("staking", "Staking Operation", Complexity.MEDIUM,
                        "Delegation, unbonding or reward claiming"),
        TransactionType("governance", "Governance Vote", Complexity.COMPLEX,
                        "Voting on governance proposals"),
        TransactionType("nft", "NFT Minting", Complexity.COMPLEX,
                        "Creating new NFT tokens"),
        TransactionType("defi", "DeFi Swap", Complexity.MEDIUM,
                        "Token swaps on decentralized exchanges"),
        TransactionType("batch_transfer", "Batch Transfer", Complexity.COMPLEX,
                        "Multiple transfers in a single transaction"),
        TransactionType("cross_chain", "Cross-chain Transfer", Complexity.COMPLEX,
                        "Token transfers across different blockchains"),
    )
}

COMPLEXITY_LATENCY_MULTIPLIER: Dict[Complexity, float] = {
    Complexity.SIMPLE: 1.0,
    Complexity.MEDIUM: 1.5,
    Complexity.COMPLEX: 2.5,
}

# low, medium, high, critical
PRIORITY_WEIGHTS: Tuple[float, float, float, float] = (0.4, 0.4, 0.15, 0.05)

CONTRACT_METHODS: Tuple[str, ...] = ("transfer", "approve", "swap", "stake", "unstake", "vote", "mint", "burn")


def complexity_of(tx_type: str) -> Complexity:
    known = TRANSACTION_TYPES.get(tx_type)
    return known.complexity if known else Complexity.MEDIUM


# =============================================================================
# User behaviors and patterns
# =============================================================================

USER_BEHAVIORS: List[UserBehavior] = [
    UserBehavior(
        id="retail-trader",
        name="Retail Trader",
        description="Individual users trading small amounts",
        type_weights={"transfer": 0.6, "defi": 0.3, "nft": 0.1},
        payload=PayloadDistribution(min=100, max=1500, mean=400),
        timing=TimingDistribution.UNIFORM,
        region="us-east",
        population=10000,
        category="retail",
    ),
    UserBehavior(
        id="institutional-trader",
        name="Institutional Trader",
        description="Large financial institutions",
        type_weights={"batch_transfer": 0.5, "defi": 0.3, "cross_chain": 0.2},
        payload=PayloadDistribution(min=1000, max=8000, mean=3500),
        timing=TimingDistribution.PERIODIC,
        region="us-east",
        population=100,
        category="institutional",
    ),
    UserBehavior(
        id="defi-user",
        name="DeFi User",
        description="Active DeFi protocol users",
        type_weights={"defi": 0.5, "contract": 0.3, "staking": 0.2},
        payload=PayloadDistribution(min=300, max=2000, mean=900),
        timing=TimingDistribution.POISSON,
        region="eu-central",
        population=5000,
        category="trader",
    ),
    UserBehavior(
        id="nft-collector",
        name="NFT Collector",
        description="Users focused on NFT activities",
        type_weights={"nft": 0.7, "transfer": 0.3},
        payload=PayloadDistribution(min=500, max=5000, mean=2000),
        timing=TimingDistribution.BURST,
        region="asia-southeast",
        population=2000,
        category="retail",
    ),
    UserBehavior(
        id="governance-participant",
        name="Governance Participant",
        description="Users involved in governance activities",
        type_weights={"governance": 0.6, "staking": 0.4},
        payload=PayloadDistribution(min=300, max=1500, mean=800),
        timing=TimingDistribution.PERIODIC,
        region="us-west",
        population=1000,
        category="developer",
    ),
]

TRANSACTION_PATTERNS: List[TransactionPattern] = [
    TransactionPattern(
        id="balanced-mix",
        name="Balanced Mix",
        description="Every built-in behavior in equal measure",
        behavior_weights={b.id: 0.2 for b in USER_BEHAVIORS},
    ),
    TransactionPattern(
        id="retail-heavy",
        name="Retail Heavy",
        description="Mostly small transfers and swaps",
        behavior_weights={"retail-trader": 0.6, "defi-user": 0.2, "nft-collector": 0.2},
    ),
    TransactionPattern(
        id="institutional-flow",
        name="Institutional Flow",
        description="Large batched and cross-chain settlement traffic",
        behavior_weights={"institutional-trader": 0.6, "defi-user": 0.3, "retail-trader": 0.1},
    ),
    TransactionPattern(
        id="defi-season",
        name="DeFi Season",
        description="Swap and contract heavy traffic",
        behavior_weights={"defi-user": 0.6, "retail-trader": 0.25, "institutional-trader": 0.15},
    ),
    TransactionPattern(
        id="nft-drop",
        name="NFT Drop",
        description="Mint storm around a collection launch",
        behavior_weights={"nft-collector": 0.7, "retail-trader": 0.3},
    ),
    TransactionPattern(
        id="governance-cycle",
        name="Governance Cycle",
        description="Voting period with staking churn",
        behavior_weights={"governance-participant": 0.5, "defi-user": 0.3, "retail-trader": 0.2},
    ),
]

# =============================================================================
# Load profiles
# =============================================================================


def _profile(profile_id: str, name: str, description: str, pattern_id: str,
             complexity: Complexity, phases: List[Phase]) -> LoadProfile:
    duration = sum(p.duration for p in phases)
    return LoadProfile(
        id=profile_id,
        name=name,
        description=description,
        duration=duration,
        phases=tuple(phases),
        pattern_id=pattern_id,
        overall=ProfileSummary(
            duration=duration,
            peak_tps=max(p.target_tps for p in phases),
            complexity=complexity,
        ),
    )


LOAD_PROFILES: List[LoadProfile] = [
    _profile(
        "steady-state", "Steady State Load", "Consistent transaction rate over time",
        "retail-heavy", Complexity.MEDIUM,
        [Phase("steady-operation", 3600, 1000, ramp_rate=2.0)],
    ),
    _profile(
        "burst-pattern", "Burst Pattern Load", "Periodic bursts of high transaction volume",
        "balanced-mix", Complexity.COMPLEX,
        [
            Phase("baseline", 300, 500, ramp_rate=10.0, pattern_id="retail-heavy"),
            Phase("peak-burst", 600, 5000, ramp_rate=50.0, pattern_id="defi-season"),
            Phase("recovery", 300, 500, pattern_id="retail-heavy"),
            Phase("second-burst", 600, 7500, ramp_rate=75.0, pattern_id="institutional-flow"),
        ],
    ),
    _profile(
        "realistic-mixed", "Realistic Mixed Load", "Real-world transaction patterns with various types",
        "balanced-mix", Complexity.MEDIUM,
        [
            Phase("morning-activity", 1800, 800, ramp_rate=2.0, pattern_id="retail-heavy"),
            Phase("business-hours", 3600, 2000, ramp_rate=2.0, pattern_id="governance-cycle"),
            Phase("peak-trading", 900, 4000, ramp_rate=20.0, pattern_id="nft-drop"),
            Phase("evening-cool-down", 900, 1000, pattern_id="retail-heavy"),
        ],
    ),
    _profile(
        "stress-test", "Stress Test Load", "Maximum sustained load testing",
        "institutional-flow", Complexity.COMPLEX,
        [
            Phase("ramp-up", 600, 10000, ramp_rate=20.0),
            Phase("sustained-peak", 2400, 25000),
            Phase("ramp-down", 600, 5000),
        ],
    ),
]

# =============================================================================
# Topologies
# =============================================================================

_STANDARD = {NodeRole.VALIDATOR: 2, NodeRole.MINER: 3, NodeRole.FULL_NODE: 2}
_CLUSTER = {NodeRole.VALIDATOR: 5, NodeRole.MINER: 8, NodeRole.FULL_NODE: 5}
_HYBRID_HUB = {NodeRole.VALIDATOR: 4, NodeRole.MINER: 6, NodeRole.FULL_NODE: 4, NodeRole.LIGHT_NODE: 2}
_HYBRID_EDGE = {NodeRole.VALIDATOR: 2, NodeRole.MINER: 3, NodeRole.FULL_NODE: 2, NodeRole.LIGHT_NODE: 2}


def builtin_topologies() -> List[Topology]:
    """Construct the built-in topologies. Node ids repeat across topologies."""
    from .services.topology_builder import build_layout

    definitions = [
        (
            "global-distributed", "Global Distributed Network",
            "Nodes distributed across major regions worldwide",
            [(r, _STANDARD) for r in ("us-east", "us-west", "eu-central", "asia-southeast", "asia-northeast")],
            None,
        ),
        (
            "regional-cluster", "Regional Cluster Network",
            "Nodes clustered in specific regions with low latency",
            [("us-east", _CLUSTER), ("eu-central", _CLUSTER)],
            None,
        ),
        (
            "hybrid-mixed", "Hybrid Mixed Network",
            "Mix of validators, miners, full and light nodes across regions",
            [("us-east", _HYBRID_HUB), ("us-west", _HYBRID_EDGE),
             ("eu-central", _HYBRID_EDGE), ("asia-southeast", _HYBRID_EDGE)],
            [("us-east", "us-west"), ("us-east", "eu-central"), ("us-west", "asia-southeast"),
             ("eu-central", "asia-southeast"), ("us-east", "asia-southeast"), ("us-west", "eu-central")],
        ),
    ]

    topologies = []
    for topology_id, name, description, region_counts, pairs in definitions:
        nodes, links = build_layout(region_counts, pairs)
        topologies.append(Topology(
            id=topology_id,
            name=name,
            description=description,
            nodes=tuple(nodes),
            links=tuple(links),
        ))
    return topologies
