"""
Health check endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import get_container
from api.models import HealthResponse
from netharness import __version__
from netharness.config import Container

router = APIRouter(tags=["health"])


@router.get("/", response_model=Dict[str, Any])
async def root():
    """Root endpoint - API information"""
    return {
        "name": "Network Test Harness API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "load_generator": "/api/network-testing/load-generator",
            "mini_testnet": "/api/network-testing/mini-testnet",
        },
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(container: Container = Depends(get_container)):
    """Liveness plus a count of what the harness is currently doing."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        topologies=len(container.topology_registry().list_topologies()),
        running_tests=len(container.test_orchestrator().list_running_tests()),
        active_generations=len(container.generation_tracker().list_active_generations()),
    )
