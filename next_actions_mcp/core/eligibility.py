"""Eligibility resolver: classify every task as actionable or blocked."""

import math
from datetime import datetime

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.core.cycles import CycleContext, build_cycle_context
from next_actions_mcp.core.dependencies import evaluate_dependencies
from next_actions_mcp.core.hierarchy import HierarchyIndex, build_hierarchy_index
from next_actions_mcp.core.review import is_review_due
from next_actions_mcp.core.scoring import compute_score, score_input_for
from next_actions_mcp.enums import BlockReason
from next_actions_mcp.models.results import DependencyVerdict, EligibilityResult
from next_actions_mcp.models.task import TaskRecord, TaskSnapshot
from next_actions_mcp.utils.dates import ensure_aware

# Reasons a due review can never override.
TERMINAL_REASONS = frozenset({BlockReason.COMPLETED, BlockReason.CANCELED})


def _collect_reasons(
    record: TaskRecord,
    verdict: DependencyVerdict,
    schema: TaskSchema,
    hierarchy: HierarchyIndex,
    verdicts: dict[str, DependencyVerdict],
    now: datetime,
) -> list[BlockReason]:
    reasons: list[BlockReason] = []

    if schema.is_done(record.status):
        reasons.append(BlockReason.COMPLETED)
    elif schema.is_canceled(record.status):
        reasons.append(BlockReason.CANCELED)

    if record.start_time is not None and record.start_time > now:
        reasons.append(BlockReason.NOT_STARTED)

    if hierarchy.has_open_subtask(record.id, schema):
        reasons.append(BlockReason.HAS_OPEN_CHILDREN)

    if hierarchy.any_ancestor(record.id, lambda a: a in verdicts and not verdicts[a].satisfied):
        reasons.append(BlockReason.ANCESTOR_DEPENDENCY_UNMET)

    if verdict.unmet:
        reasons.append(BlockReason.DEPENDENCY_UNMET)
    elif verdict.delayed:
        reasons.append(BlockReason.DEPENDENCY_DELAYED)

    return reasons


def resolve_eligibility(
    snapshot: TaskSnapshot,
    schema: TaskSchema,
    now: datetime,
    *,
    surface_due_reviews: bool = False,
    cycles: CycleContext | None = None,
    hierarchy: HierarchyIndex | None = None,
) -> list[EligibilityResult]:
    """
    Evaluate every task of the snapshot, in snapshot order.

    All blocking reasons are collected; a task is a next action iff none
    apply. With `surface_due_reviews`, a review-enabled task whose review is
    due is surfaced anyway (`forced_by_review`) unless it is completed or
    canceled. Never raises on malformed task data.
    """
    now = ensure_aware(now)
    cycles = cycles if cycles is not None else build_cycle_context(snapshot)
    hierarchy = hierarchy if hierarchy is not None else build_hierarchy_index(snapshot)

    verdicts = {
        task_id: evaluate_dependencies(record, snapshot, schema, cycles, hierarchy, now)
        for task_id, record in snapshot.tasks.items()
    }

    results: list[EligibilityResult] = []
    for task_id, record in snapshot.tasks.items():
        verdict = verdicts[task_id]
        reasons = _collect_reasons(record, verdict, schema, hierarchy, verdicts, now)

        is_next_action = not reasons
        forced = False
        if (
            not is_next_action
            and surface_due_reviews
            and TERMINAL_REASONS.isdisjoint(reasons)
            and is_review_due(record.review, now)
        ):
            is_next_action = True
            forced = True

        results.append(
            EligibilityResult(
                task=record,
                is_next_action=is_next_action,
                reasons=reasons,
                dependency=verdict,
                forced_by_review=forced,
            )
        )

    return results


def _is_overdue(record: TaskRecord, now: datetime) -> bool:
    return record.end_time is not None and record.end_time <= now


def rank_actionable(results: list[EligibilityResult], now: datetime) -> list[str]:
    """
    Order actionable task ids.

    Overdue first, then score descending, then due time ascending (no due
    date last), then id ascending. Results without a score get the simple
    score.
    """
    now = ensure_aware(now)

    def sort_key(result: EligibilityResult) -> tuple[int, float, float, str]:
        record = result.task
        score = result.score if result.score is not None else compute_score(score_input_for(record), now)
        due = record.end_time.timestamp() if record.end_time is not None else math.inf
        return (0 if _is_overdue(record, now) else 1, -score, due, record.id)

    actionable = [r for r in results if r.is_next_action]
    return [r.task_id for r in sorted(actionable, key=sort_key)]
