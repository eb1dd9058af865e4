"""
In-Memory Run History Adapter

Implements IRunHistoryRepository with a list guarded by a lock.
"""

import copy
import threading
from typing import Dict, List, Optional

from netharness.application.ports.outbound_ports import HistoryEntry, IRunHistoryRepository
from netharness.domain.models import RunKind


class InMemoryRunHistoryRepository(IRunHistoryRepository):
    """
    Append-only, process-local history.

    Entries are deep-copied on the way in and on the way out.
    """

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []
        self._index: Dict[str, HistoryEntry] = {}
        self._lock = threading.Lock()

    def append(self, entry: HistoryEntry) -> None:
        if not entry.status.is_terminal:
            raise ValueError(f"Run {entry.id} is still {entry.status.value}")
        frozen = copy.deepcopy(entry)
        with self._lock:
            if frozen.id in self._index:
                raise ValueError(f"Run {entry.id} is already in history")
            self._entries.append(frozen)
            self._index[frozen.id] = frozen

    def get(self, run_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            entry = self._index.get(run_id)
        return copy.deepcopy(entry) if entry is not None else None

    def list(self, topology_id: Optional[str] = None, kind: Optional[RunKind] = None) -> List[HistoryEntry]:
        with self._lock:
            entries = list(self._entries)
        if kind is not None:
            entries = [e for e in entries if e.kind == kind]
        if topology_id is not None:
            entries = [e for e in entries if getattr(e, "topology_id", None) == topology_id]
        return copy.deepcopy(entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
