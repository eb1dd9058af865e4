"""
Application Container

Wires the stores, the history repository and the run supervisors from one
Settings object and hands out shared instances.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from netharness.config.settings import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Container (lazy imports keep the config layer free of service imports)
# =============================================================================

@dataclass
class Container:
    """
    Dependency injection container.

    - Stores own the catalog (topologies, profiles, behaviors, patterns)
    - The history repository receives every terminal run
    - The orchestrator and tracker drive test runs and generations
    """
    settings: Settings = field(default_factory=Settings)

    _registry: Optional[object] = field(default=None, repr=False)
    _profiles: Optional[object] = field(default=None, repr=False)
    _history: Optional[object] = field(default=None, repr=False)
    _orchestrator: Optional[object] = field(default=None, repr=False)
    _tracker: Optional[object] = field(default=None, repr=False)
    _catalog_loaded: bool = field(default=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Container":
        """Create container from settings."""
        return cls(settings=settings)

    @classmethod
    def from_env(cls) -> "Container":
        return cls(settings=Settings.from_env())

    def topology_registry(self):
        """Get the topology registry singleton."""
        if self._registry is None:
            from netharness.application.services.topology_registry import TopologyRegistry
            self._registry = TopologyRegistry()
            self._load_catalog()
        return self._registry

    def profile_store(self):
        """Get the profile store singleton."""
        if self._profiles is None:
            from netharness.application.services.profile_store import ProfileStore
            self._profiles = ProfileStore(tick_duration=self.settings.tick_duration)
            self._load_catalog()
        return self._profiles

    def history_repository(self):
        """Get the run history singleton."""
        if self._history is None:
            from netharness.adapters.outbound.memory_history import InMemoryRunHistoryRepository
            self._history = InMemoryRunHistoryRepository()
        return self._history

    def test_orchestrator(self):
        """Get the network test orchestrator singleton."""
        if self._orchestrator is None:
            from netharness.application.services.test_orchestrator import TestOrchestrator
            s = self.settings
            self._orchestrator = TestOrchestrator(
                registry=self.topology_registry(),
                profiles=self.profile_store(),
                history=self.history_repository(),
                tick_duration=s.tick_duration,
                tick_interval=s.tick_interval,
                queue_seconds=s.queue_seconds,
                auto_drive=s.auto_drive,
                default_seed=s.seed,
            )
        return self._orchestrator

    def generation_tracker(self):
        """Get the load generation tracker singleton."""
        if self._tracker is None:
            from netharness.application.services.generation_tracker import GenerationTracker
            s = self.settings
            self._tracker = GenerationTracker(
                profiles=self.profile_store(),
                history=self.history_repository(),
                tick_duration=s.tick_duration,
                tick_interval=s.tick_interval,
                sample_size=s.sample_size,
                auto_drive=s.auto_drive,
                default_seed=s.seed,
            )
        return self._tracker

    def reporter(self, use_color: bool = True):
        """Get console reporter adapter."""
        from netharness.adapters.outbound.console_reporter import ConsoleReporter
        return ConsoleReporter(use_color=use_color)

    def _load_catalog(self) -> None:
        if self._catalog_loaded or not self.settings.catalog_path:
            return
        from netharness.adapters.outbound.catalog_loader import load_catalog
        self._catalog_loaded = True
        load_catalog(self.settings.catalog_path, self.topology_registry(), self.profile_store())

    def close(self) -> None:
        """Stop every active run."""
        if self._orchestrator is not None:
            self._orchestrator.shutdown()
        if self._tracker is not None:
            self._tracker.shutdown()
        logger.info("Container closed")
