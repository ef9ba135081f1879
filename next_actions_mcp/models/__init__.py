"""Pydantic models for Next Actions MCP."""

from next_actions_mcp.models.inputs import (
    BlockedInput,
    CyclesInput,
    ExplainInput,
    InvalidateCacheInput,
    ListNextActionsInput,
    NextRecurrenceInput,
    ReviewsDueInput,
    ScoreTaskInput,
)
from next_actions_mcp.models.results import (
    CycleComponent,
    DependencyVerdict,
    EligibilityResult,
    RecurrenceRule,
    ScoreInput,
    TaskValues,
)
from next_actions_mcp.models.task import (
    DependencyRef,
    NodeRef,
    ReviewState,
    TaskNode,
    TaskRecord,
    TaskSnapshot,
)

__all__ = [
    # Task models
    "NodeRef",
    "TaskNode",
    "DependencyRef",
    "ReviewState",
    "TaskRecord",
    "TaskSnapshot",
    # Result models
    "DependencyVerdict",
    "EligibilityResult",
    "ScoreInput",
    "RecurrenceRule",
    "TaskValues",
    "CycleComponent",
    # Tool input models
    "ListNextActionsInput",
    "BlockedInput",
    "ExplainInput",
    "InvalidateCacheInput",
    "ScoreTaskInput",
    "NextRecurrenceInput",
    "CyclesInput",
    "ReviewsDueInput",
]
