"""Outbound adapters."""
from netharness.adapters.outbound.memory_history import InMemoryRunHistoryRepository
from netharness.adapters.outbound.console_reporter import ConsoleReporter
from netharness.adapters.outbound.catalog_loader import load_catalog

__all__ = ["InMemoryRunHistoryRepository", "ConsoleReporter", "load_catalog"]
