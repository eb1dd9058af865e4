"""
FastAPI dependency injection for API routes.

Provides:
  - ``get_container``: the process-wide Container built from environment
    settings on first use
  - ``set_container``: swap in another container (tests, embedding)
"""

import logging
import threading
from typing import Optional

from netharness.config import Container, Settings

logger = logging.getLogger(__name__)

_container: Optional[Container] = None
_lock = threading.Lock()


def get_container() -> Container:
    """Process-wide container dependency."""
    global _container
    with _lock:
        if _container is None:
            settings = Settings.from_env()
            _container = Container.from_settings(settings)
            logger.info(
                f"Container ready (tick={settings.tick_duration}s, interval={settings.tick_interval}s, "
                f"auto_drive={settings.auto_drive})"
            )
        return _container


def set_container(container: Optional[Container]) -> Optional[Container]:
    """Replace the shared container; returns the previous one."""
    global _container
    with _lock:
        previous, _container = _container, container
    return previous


def close_container() -> None:
    previous = set_container(None)
    if previous is not None:
        previous.close()
