"""
Application Settings

Environment configuration for the harness.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


@dataclass
class Settings:
    """Application settings from environment."""

    # Simulation clock
    tick_duration: float = 1.0   # simulated seconds per tick
    tick_interval: float = 1.0   # wall seconds between ticks, 0 = as fast as possible
    seed: Optional[int] = None

    # Node simulators
    queue_seconds: float = 5.0

    # Runs
    sample_size: int = 200
    auto_drive: bool = True

    # Ambient
    log_level: str = "INFO"
    catalog_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            tick_duration=float(os.getenv("NETHARNESS_TICK_DURATION", "1.0")),
            tick_interval=float(os.getenv("NETHARNESS_TICK_INTERVAL", "1.0")),
            seed=_env_int("NETHARNESS_SEED"),
            queue_seconds=float(os.getenv("NETHARNESS_QUEUE_SECONDS", "5.0")),
            sample_size=int(os.getenv("NETHARNESS_SAMPLE_SIZE", "200")),
            auto_drive=_env_bool("NETHARNESS_AUTO_DRIVE", True),
            log_level=os.getenv("NETHARNESS_LOG_LEVEL", "INFO").upper(),
            catalog_path=os.getenv("NETHARNESS_CATALOG") or None,
        )
