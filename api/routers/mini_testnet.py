"""
Mini testnet endpoints: topologies, nodes and network test runs.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_container
from api.models import (
    CreateTopologyCommand,
    StartTestCommand,
    StopTestCommand,
    TestnetQuery,
    testnet_command,
)
from api.responses import fail, respond
from netharness.config import Container
from netharness.domain.errors import NetworkTestNotFound, NodeNotFound, TopologyNotFound

router = APIRouter(prefix="/api/network-testing/mini-testnet", tags=["mini-testnet"])
logger = logging.getLogger(__name__)

# Actions that fetch a single entity by ``id``
SINGLE_ENTITY = {
    TestnetQuery.TOPOLOGY: "Topology ID required",
    TestnetQuery.NODE: "Node ID required",
    TestnetQuery.TEST: "Test ID required",
}


# ============================================================================
# Queries
# ============================================================================

def _topology(container: Container, topology_id: str):
    topology = container.topology_registry().get_topology(topology_id)
    if topology is None:
        raise TopologyNotFound(topology_id)
    return topology.to_dict()


def _nodes(container: Container):
    return [
        {"topology_id": topology_id, **node.to_dict()}
        for topology_id, node in container.topology_registry().list_nodes()
    ]


def _node(container: Container, node_id: str, topology_id: Optional[str]):
    found = container.topology_registry().get_node(node_id, topology_id)
    if found is None:
        raise NodeNotFound(node_id)
    owner, node = found
    return {"topology_id": owner, **node.to_dict()}


def _test(container: Container, test_id: str):
    run = container.test_orchestrator().get_test(test_id)
    if run is None:
        raise NetworkTestNotFound(test_id)
    return run.to_dict()


@router.get("", response_model=None)
async def query_testnet(
    action: TestnetQuery = Query(..., description="What to list or fetch"),
    entity_id: Optional[str] = Query(None, alias="id", description="Entity id for topology, node and test"),
    topology_id: Optional[str] = Query(None, alias="topologyId", description="Topology filter"),
    container: Container = Depends(get_container),
):
    """Topology, node and test queries selected by ``action``."""
    if action in SINGLE_ENTITY and not entity_id:
        return fail(400, SINGLE_ENTITY[action])

    queries = {
        TestnetQuery.TOPOLOGIES: lambda: [t.to_dict() for t in container.topology_registry().list_topologies()],
        TestnetQuery.TOPOLOGY: lambda: _topology(container, entity_id),
        TestnetQuery.NODES: lambda: _nodes(container),
        TestnetQuery.NODE: lambda: _node(container, entity_id, topology_id),
        TestnetQuery.RUNNING_TESTS: lambda: [r.to_dict() for r in container.test_orchestrator().list_running_tests()],
        TestnetQuery.TEST_HISTORY: lambda: [r.to_dict() for r in container.test_orchestrator().get_test_history(topology_id)],
        TestnetQuery.TEST: lambda: _test(container, entity_id),
    }
    return respond(f"mini-testnet {action.value}", queries[action])


# ============================================================================
# Commands
# ============================================================================

def _create_topology(container: Container, command: CreateTopologyCommand):
    return container.topology_registry().create_custom_topology(command.payload()).to_dict()


def _start_test(container: Container, command: StartTestCommand):
    run = container.test_orchestrator().start_network_test(command.topology_id, command.scenario)
    logger.info(f"Test {run.id} started on {command.topology_id}")
    return run.to_dict()


def _stop_test(container: Container, command: StopTestCommand):
    if not container.test_orchestrator().stop_test(command.test_id):
        raise NetworkTestNotFound(command.test_id)
    return {"message": "Test stopped successfully"}


COMMANDS = {
    CreateTopologyCommand: _create_topology,
    StartTestCommand: _start_test,
    StopTestCommand: _stop_test,
}


@router.post("", response_model=None)
async def command_testnet(
    body: Dict[str, Any] = Body(..., description="Command tagged by 'action'"),
    container: Container = Depends(get_container),
):
    """Create topologies, start and stop network tests."""
    def run():
        command = testnet_command.validate_python(body)
        return COMMANDS[type(command)](container, command)

    return respond(f"mini-testnet {body.get('action')}", run)
