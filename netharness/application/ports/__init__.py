"""
Application Ports Package

Interfaces defining boundaries between application and adapters layers.
"""

from .outbound_ports import HistoryEntry, IReporter, IRunHistoryRepository

__all__ = [
    "HistoryEntry",
    "IReporter",
    "IRunHistoryRepository",
]
