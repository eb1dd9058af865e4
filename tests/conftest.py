"""
Test Configuration and Fixtures
================================

Shared pytest fixtures for the network harness.

Runs are created with ``auto_drive=False`` so tests advance simulated time
with ``step()`` / ``run_to_completion()`` instead of waiting on threads.

Usage:
    pytest tests/                    # Run all tests
    pytest tests/ -k "orchestrator"  # Run only orchestrator tests
    pytest tests/ --quick            # Skip slow tests
"""

import random
from typing import Any, Dict

import pytest

from netharness.config import Container, Settings
from netharness.domain.catalog import USER_BEHAVIORS
from netharness.domain.models import NodeRole, NodeSpec, Topology, Link


# =============================================================================
# Custom Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests that start driver threads")


def pytest_addoption(parser):
    """Add custom command line options"""
    parser.addoption(
        "--quick",
        action="store_true",
        default=False,
        help="Skip slow tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests if --quick is specified"""
    if config.getoption("--quick"):
        skip_slow = pytest.mark.skip(reason="Skipped with --quick")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


# =============================================================================
# Container Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Manual stepping, unthrottled, fixed default seed."""
    return Settings(tick_duration=1.0, tick_interval=0.0, seed=42, auto_drive=False, sample_size=50)


@pytest.fixture
def container(settings):
    container = Container.from_settings(settings)
    yield container
    container.close()


@pytest.fixture
def registry(container):
    return container.topology_registry()


@pytest.fixture
def profiles(container):
    return container.profile_store()


@pytest.fixture
def history(container):
    return container.history_repository()


@pytest.fixture
def orchestrator(container):
    return container.test_orchestrator()


@pytest.fixture
def tracker(container):
    return container.generation_tracker()


# =============================================================================
# Topology Fixtures
# =============================================================================

@pytest.fixture
def three_node_spec() -> Dict[str, Any]:
    """A line a - b - c in one region, 100 tps per node."""
    return {
        "name": "three-node line",
        "nodes": [
            {"id": "a", "role": "validator", "region": "us-east", "capacity_tps": 100, "base_latency_ms": 5},
            {"id": "b", "role": "miner", "region": "us-east", "capacity_tps": 100, "base_latency_ms": 8},
            {"id": "c", "role": "full-node", "region": "us-east", "capacity_tps": 100, "base_latency_ms": 10},
        ],
        "links": [
            {"source": "a", "target": "b", "latency_ms": 2},
            {"source": "b", "target": "c", "latency_ms": 3},
        ],
    }


@pytest.fixture
def three_node_topology(registry, three_node_spec) -> Topology:
    return registry.create_custom_topology(three_node_spec)


@pytest.fixture
def line_topology() -> Topology:
    """Unregistered a - b - c topology for overlay-level tests."""
    nodes = (
        NodeSpec("a", NodeRole.VALIDATOR, "us-east", capacity_tps=100, base_latency_ms=5),
        NodeSpec("b", NodeRole.MINER, "us-east", capacity_tps=100, base_latency_ms=8),
        NodeSpec("c", NodeRole.FULL_NODE, "eu-central", capacity_tps=50, base_latency_ms=10),
    )
    links = (Link("a", "b", latency_ms=2), Link("b", "c", latency_ms=3))
    return Topology(id="line", name="line", nodes=nodes, links=links)


# =============================================================================
# Load Fixtures
# =============================================================================

@pytest.fixture
def two_phase_scenario() -> Dict[str, Any]:
    """Ramp to 50 tps over 10s, then hold 50 tps for 20s: 1275 transactions."""
    return {
        "name": "ramp and sustain",
        "phases": [
            {"name": "ramp", "duration": 10, "target_tps": 50, "ramp_rate": 5},
            {"name": "sustain", "duration": 20, "target_tps": 50},
        ],
    }


@pytest.fixture
def small_profile_spec() -> Dict[str, Any]:
    return {
        "name": "Short burst",
        "description": "Small profile for tests",
        "duration": 10,
        "phases": [
            {"name": "warm", "duration": 4, "targetTps": 20, "rampRate": 10},
            {"name": "hold", "duration": 6, "targetTps": 30},
        ],
        "overall": {"duration": 10, "peakTps": 30, "complexity": "medium"},
    }


@pytest.fixture
def behaviors():
    return {b.id: b for b in USER_BEHAVIORS}


@pytest.fixture
def rng():
    return random.Random(1234)
