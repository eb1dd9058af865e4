from enum import Enum


class NodeRole(str, Enum):
    VALIDATOR = "validator"
    MINER = "miner"
    FULL_NODE = "full-node"
    LIGHT_NODE = "light-node"
    RELAY = "relay"


class NodeStatus(str, Enum):
    """Simulated health of a node. Degraded nodes run at half capacity."""
    UP = "up"
    DEGRADED = "degraded"
    DOWN = "down"

    @property
    def capacity_factor(self) -> float:
        return {"up": 1.0, "degraded": 0.5, "down": 0.0}[self.value]


class RunStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.STOPPED, RunStatus.FAILED)


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class TimingDistribution(str, Enum):
    """How a behavior spreads its transactions inside one tick."""
    UNIFORM = "uniform"
    POISSON = "poisson"
    BURST = "burst"
    PERIODIC = "periodic"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RunKind(str, Enum):
    TEST_RUN = "test_run"
    GENERATION = "generation"
