"""
Pydantic models for API requests and responses.

POST bodies are tagged by ``action``: each action is its own command model
and the two endpoint families validate against a discriminated union of
them. GET actions are enums.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    problems: Optional[List[str]] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    topologies: int
    running_tests: int
    active_generations: int


class Command(BaseModel):
    """Base for action-tagged request bodies; camelCase and snake_case both accepted."""
    model_config = ConfigDict(populate_by_name=True)

    def payload(self) -> Dict[str, Any]:
        """Fields other than ``action``, snake_case, unset ones dropped."""
        return self.model_dump(exclude={"action"}, exclude_none=True)


# ============================================================================
# Load generator
# ============================================================================

class LoadGeneratorQuery(str, Enum):
    PATTERNS = "patterns"
    LOAD_PROFILES = "load-profiles"
    USER_BEHAVIORS = "user-behaviors"
    GENERATION_HISTORY = "generation-history"
    ACTIVE_GENERATIONS = "active-generations"
    GENERATION = "generation"


class GenerateLoadCommand(Command):
    action: Literal["generate-load"]
    profile_id: str = Field(..., alias="profileId", description="Load profile to generate")
    regions: Optional[List[str]] = Field(default=None, description="Restrict transactions to these regions")
    user_behaviors: Optional[Union[List[str], Dict[str, float]]] = Field(
        default=None, alias="userBehaviors", description="Behavior ids or weights; overrides the profile mix")
    custom_patterns: Optional[List[Dict[str, Any]]] = Field(default=None, alias="customPatterns")
    pattern_ids: Optional[List[str]] = Field(default=None, alias="patternIds")
    start_time: Optional[str] = Field(default=None, alias="startTime", description="ISO-8601 start")
    seed: Optional[int] = None
    error_rate: Optional[float] = Field(default=None, alias="errorRate")

    def options(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"action", "profile_id"}, exclude_none=True)


class CreateCustomProfileCommand(Command):
    action: Literal["create-custom-profile"]
    name: str
    description: Optional[str] = None
    duration: float
    phases: List[Dict[str, Any]]
    overall: Dict[str, Any]
    pattern_id: Optional[str] = Field(default=None, alias="patternId")


class AnalyzePatternsCommand(Command):
    action: Literal["analyze-patterns"]
    transactions: List[Any] = Field(..., description="Transaction objects to analyze")


class StopGenerationCommand(Command):
    action: Literal["stop-generation"]
    generation_id: str = Field(..., alias="generationId")


LoadGeneratorCommand = Annotated[
    Union[GenerateLoadCommand, CreateCustomProfileCommand, AnalyzePatternsCommand, StopGenerationCommand],
    Field(discriminator="action"),
]
load_generator_command = TypeAdapter(LoadGeneratorCommand)


# ============================================================================
# Mini testnet
# ============================================================================

class TestnetQuery(str, Enum):
    TOPOLOGIES = "topologies"
    TOPOLOGY = "topology"
    NODES = "nodes"
    NODE = "node"
    RUNNING_TESTS = "running-tests"
    TEST_HISTORY = "test-history"
    TEST = "test"


class CreateTopologyCommand(Command):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    action: Literal["create-topology"]
    name: str
    description: Optional[str] = None
    nodes: Optional[List[Dict[str, Any]]] = None
    links: Optional[List[Dict[str, Any]]] = None
    connections: Optional[List[Dict[str, Any]]] = None
    regions: Optional[List[str]] = None
    node_counts: Optional[Dict[str, int]] = Field(default=None, alias="nodeCounts")


class StartTestCommand(Command):
    action: Literal["start-test"]
    topology_id: str = Field(..., alias="topologyId")
    scenario: Dict[str, Any]


class StopTestCommand(Command):
    action: Literal["stop-test"]
    test_id: str = Field(..., alias="testId")


TestnetCommand = Annotated[
    Union[CreateTopologyCommand, StartTestCommand, StopTestCommand],
    Field(discriminator="action"),
]
testnet_command = TypeAdapter(TestnetCommand)
