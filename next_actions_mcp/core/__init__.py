"""Dependency-aware eligibility, scoring and recurrence core."""

from next_actions_mcp.core.cache import EvaluationCache
from next_actions_mcp.core.cycles import CycleContext, build_cycle_context, find_strongly_connected_components
from next_actions_mcp.core.dependencies import evaluate_dependencies
from next_actions_mcp.core.eligibility import rank_actionable, resolve_eligibility
from next_actions_mcp.core.hierarchy import HierarchyIndex, build_hierarchy_index
from next_actions_mcp.core.recurrence import (
    compute_next_recurrence,
    normalize_values_for_status,
    parse_recurrence_rule,
    stringify_recurrence_rule,
)
from next_actions_mcp.core.review import is_review_due, parse_review_state
from next_actions_mcp.core.scoring import build_score_inputs, compute_score, score_snapshot
from next_actions_mcp.core.service import NextActionService
from next_actions_mcp.core.snapshot import read_snapshot

__all__ = [
    # Snapshot and graph
    "read_snapshot",
    "CycleContext",
    "build_cycle_context",
    "find_strongly_connected_components",
    "HierarchyIndex",
    "build_hierarchy_index",
    # Eligibility
    "evaluate_dependencies",
    "resolve_eligibility",
    "rank_actionable",
    # Scoring
    "compute_score",
    "build_score_inputs",
    "score_snapshot",
    # Recurrence and review
    "parse_recurrence_rule",
    "stringify_recurrence_rule",
    "compute_next_recurrence",
    "normalize_values_for_status",
    "parse_review_state",
    "is_review_due",
    # Service
    "EvaluationCache",
    "NextActionService",
]
