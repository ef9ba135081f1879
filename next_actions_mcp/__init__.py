"""
MCP Server for dependency-aware next actions.

This server reads a task graph from a host document store and answers which
tasks are actionable right now, how they rank, why the others are blocked,
and when a recurring task comes round again.
"""

# Re-export enums
from next_actions_mcp.enums import (
    BlockReason,
    DependencyMode,
    EvaluationFilter,
    RecurrenceUnit,
    ResponseFormat,
    ReviewType,
)

# Re-export configuration
from next_actions_mcp.config import EngineSettings, TaskFieldNames, TaskSchema, get_task_schema, load_settings

# Re-export models
from next_actions_mcp.models import (
    BlockedInput,
    CycleComponent,
    CyclesInput,
    DependencyRef,
    DependencyVerdict,
    EligibilityResult,
    ExplainInput,
    InvalidateCacheInput,
    ListNextActionsInput,
    NextRecurrenceInput,
    NodeRef,
    RecurrenceRule,
    ReviewsDueInput,
    ReviewState,
    ScoreInput,
    ScoreTaskInput,
    TaskNode,
    TaskRecord,
    TaskSnapshot,
    TaskValues,
)

# Re-export core
from next_actions_mcp.core import (
    EvaluationCache,
    NextActionService,
    build_score_inputs,
    compute_next_recurrence,
    compute_score,
    parse_recurrence_rule,
    rank_actionable,
    read_snapshot,
    resolve_eligibility,
    stringify_recurrence_rule,
)

# Re-export MCP server instance
from next_actions_mcp.server import get_service, mcp, set_service

# Re-export tools
from next_actions_mcp.tools import (
    nextactions_blocked,
    nextactions_cycles,
    nextactions_explain,
    nextactions_invalidate_cache,
    nextactions_list,
    nextactions_next_recurrence,
    nextactions_reviews_due,
    nextactions_score,
)

# Re-export utilities (including private functions used by tests)
from next_actions_mcp.utils import (
    InMemoryTaskStore,
    JsonSnapshotStore,
    StoreError,
    TaskStore,
    _format_result_concise,
    _format_result_markdown,
    _format_results_concise,
    _format_results_markdown,
    _parse_node,
    _parse_nodes,
)

__all__ = [
    # Enums
    "ResponseFormat",
    "DependencyMode",
    "BlockReason",
    "RecurrenceUnit",
    "ReviewType",
    "EvaluationFilter",
    # Configuration
    "TaskFieldNames",
    "TaskSchema",
    "EngineSettings",
    "get_task_schema",
    "load_settings",
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
    # Core
    "read_snapshot",
    "resolve_eligibility",
    "rank_actionable",
    "compute_score",
    "build_score_inputs",
    "parse_recurrence_rule",
    "stringify_recurrence_rule",
    "compute_next_recurrence",
    "EvaluationCache",
    "NextActionService",
    # Stores and utilities
    "TaskStore",
    "StoreError",
    "InMemoryTaskStore",
    "JsonSnapshotStore",
    "_parse_node",
    "_parse_nodes",
    "_format_result_concise",
    "_format_result_markdown",
    "_format_results_concise",
    "_format_results_markdown",
    # Tools
    "nextactions_list",
    "nextactions_blocked",
    "nextactions_explain",
    "nextactions_invalidate_cache",
    "nextactions_score",
    "nextactions_next_recurrence",
    "nextactions_cycles",
    "nextactions_reviews_due",
    # MCP server instance
    "mcp",
    "get_service",
    "set_service",
]
