"""
Application Services

Stores and run lifecycles built on the domain layer.
"""
from .generation_tracker import GenerationExecution, GenerationTracker
from .profile_store import ProfileStore
from .run_driver import RunDriver, RunExecution, RunSupervisor
from .test_orchestrator import FaultSchedule, NetworkTestExecution, TestOrchestrator
from .topology_registry import TopologyRegistry

__all__ = [
    "GenerationExecution",
    "GenerationTracker",
    "ProfileStore",
    "RunDriver",
    "RunExecution",
    "RunSupervisor",
    "FaultSchedule",
    "NetworkTestExecution",
    "TestOrchestrator",
    "TopologyRegistry",
]
