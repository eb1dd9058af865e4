"""
Outbound Ports

Interfaces defining contracts for outbound adapters.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

from netharness.domain.models import Generation, RunKind, TestRun

HistoryEntry = Union[TestRun, Generation]


# =============================================================================
# Run History Repository
# =============================================================================

class IRunHistoryRepository(ABC):
    """
    Outbound port for the append-only history of terminal runs.

    Entries are frozen snapshots: implementations must never hand out a
    reference that lets a caller mutate what is stored.
    """

    @abstractmethod
    def append(self, entry: HistoryEntry) -> None:
        """
        Store a terminal run.

        Raises:
            ValueError: if the run is not terminal or its id is already stored
        """
        pass

    @abstractmethod
    def get(self, run_id: str) -> Optional[HistoryEntry]:
        """Return a copy of the stored run, or None."""
        pass

    @abstractmethod
    def list(
        self,
        topology_id: Optional[str] = None,
        kind: Optional[RunKind] = None,
    ) -> List[HistoryEntry]:
        """
        Return stored runs in insertion order.

        Args:
            topology_id: Only test runs against this topology
            kind: Only runs of this kind
        """
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


# =============================================================================
# Reporter
# =============================================================================

class IReporter(ABC):
    """
    Outbound port for reporting/output.

    Defines the contract for displaying results to console,
    files, or other output channels.
    """

    @abstractmethod
    def info(self, message: str) -> None:
        """Display info message."""
        pass

    @abstractmethod
    def success(self, message: str) -> None:
        """Display success message."""
        pass

    @abstractmethod
    def warning(self, message: str) -> None:
        """Display warning message."""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """Display error message."""
        pass

    @abstractmethod
    def table(self, headers: List[str], rows: List[List[Any]]) -> None:
        """Display tabular data."""
        pass

    @abstractmethod
    def section(self, title: str) -> None:
        """Display section header."""
        pass
