"""
Domain Errors

Exception hierarchy shared by every layer of the harness.

    HarnessError
    ├── NotFoundError        unknown topology, node, run, profile, behavior or pattern id
    ├── InvalidSpecError     malformed topology, profile, scenario or options
    └── SimulationFault      internal error while a run is executing

Lookups return ``None`` instead of raising; operations that mutate state
raise before anything is committed.
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


# =============================================================================
# Not found
# =============================================================================

class NotFoundError(HarnessError):
    """A referenced entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} '{entity_id}' not found")


class TopologyNotFound(NotFoundError):
    entity = "Topology"


class ProfileNotFound(NotFoundError):
    entity = "Load profile"


class BehaviorNotFound(NotFoundError):
    entity = "User behavior"


class PatternNotFound(NotFoundError):
    entity = "Transaction pattern"


class NodeNotFound(NotFoundError):
    entity = "Node"


class NetworkTestNotFound(NotFoundError):
    entity = "Test"


class GenerationNotFound(NotFoundError):
    entity = "Generation"


# =============================================================================
# Invalid input
# =============================================================================

class InvalidSpecError(HarnessError, ValueError):
    """Caller-supplied input failed validation. Nothing was created."""

    def __init__(self, message: str, problems=None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class InvalidTopologySpec(InvalidSpecError):
    pass


class InvalidLoadProfile(InvalidSpecError):
    pass


class InvalidScenario(InvalidSpecError):
    pass


class InvalidGenerationOptions(InvalidSpecError):
    pass


# =============================================================================
# Runtime
# =============================================================================

class SimulationFault(HarnessError):
    """Raised inside a run's tick; terminates that run only."""
