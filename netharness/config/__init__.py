"""Configuration and dependency wiring."""
from netharness.config.settings import Settings
from netharness.config.container import Container

__all__ = ["Settings", "Container"]
