"""
Load generator endpoints: catalog queries, generations and pattern analysis.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_container
from api.models import (
    AnalyzePatternsCommand,
    CreateCustomProfileCommand,
    GenerateLoadCommand,
    LoadGeneratorQuery,
    StopGenerationCommand,
    load_generator_command,
)
from api.responses import fail, respond
from netharness.config import Container
from netharness.domain.errors import GenerationNotFound
from netharness.domain.services import analyze_transaction_patterns

router = APIRouter(prefix="/api/network-testing/load-generator", tags=["load-generator"])
logger = logging.getLogger(__name__)


# ============================================================================
# Queries
# ============================================================================

def _generation(container: Container, generation_id: Optional[str]):
    generation = container.generation_tracker().get_generation(generation_id)
    if generation is None:
        raise GenerationNotFound(generation_id)
    return generation.to_dict()


QUERIES = {
    LoadGeneratorQuery.PATTERNS: lambda c, _: [p.to_dict() for p in c.generation_tracker().list_patterns()],
    LoadGeneratorQuery.LOAD_PROFILES: lambda c, _: [p.to_dict() for p in c.generation_tracker().list_load_profiles()],
    LoadGeneratorQuery.USER_BEHAVIORS: lambda c, _: [b.to_dict() for b in c.generation_tracker().list_user_behaviors()],
    LoadGeneratorQuery.GENERATION_HISTORY: lambda c, _: [g.to_dict() for g in c.generation_tracker().list_generation_history()],
    LoadGeneratorQuery.ACTIVE_GENERATIONS: lambda c, _: [g.to_dict() for g in c.generation_tracker().list_active_generations()],
    LoadGeneratorQuery.GENERATION: _generation,
}


@router.get("", response_model=None)
async def query_load_generator(
    action: LoadGeneratorQuery = Query(..., description="What to list or fetch"),
    entity_id: Optional[str] = Query(None, alias="id", description="Generation id for action=generation"),
    container: Container = Depends(get_container),
):
    """Catalog and generation queries selected by ``action``."""
    if action == LoadGeneratorQuery.GENERATION and not entity_id:
        return fail(400, "Generation ID required")
    return respond(f"load-generator {action.value}", lambda: QUERIES[action](container, entity_id))


# ============================================================================
# Commands
# ============================================================================

def _generate_load(container: Container, command: GenerateLoadCommand):
    generation = container.generation_tracker().generate_load(command.profile_id, command.options())
    logger.info(f"Generation {generation.id} started for profile {command.profile_id}")
    return generation.to_dict()


def _create_custom_profile(container: Container, command: CreateCustomProfileCommand):
    return container.generation_tracker().create_custom_load_profile(command.payload()).to_dict()


def _analyze_patterns(container: Container, command: AnalyzePatternsCommand):
    behaviors = container.profile_store().list_user_behaviors()
    return analyze_transaction_patterns(command.transactions, behaviors).to_dict()


def _stop_generation(container: Container, command: StopGenerationCommand):
    tracker = container.generation_tracker()
    if not tracker.stop_generation(command.generation_id):
        raise GenerationNotFound(command.generation_id)
    return {"message": "Generation stopped successfully"}


COMMANDS = {
    GenerateLoadCommand: _generate_load,
    CreateCustomProfileCommand: _create_custom_profile,
    AnalyzePatternsCommand: _analyze_patterns,
    StopGenerationCommand: _stop_generation,
}


@router.post("", response_model=None)
async def command_load_generator(
    body: Dict[str, Any] = Body(..., description="Command tagged by 'action'"),
    container: Container = Depends(get_container),
):
    """Generate load, register profiles, analyze batches or stop a generation."""
    def run():
        command = load_generator_command.validate_python(body)
        return COMMANDS[type(command)](container, command)

    return respond(f"load-generator {body.get('action')}", run)
