"""Scoring engine: deterministic 0-100 priority scores."""

import math
from collections import deque
from collections.abc import Iterator
from datetime import datetime

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.models.results import EligibilityResult, ScoreInput
from next_actions_mcp.models.task import TaskRecord, TaskSnapshot
from next_actions_mcp.utils.dates import MS_PER_DAY, ensure_aware, to_finite_number

DUE_HORIZON_MS = 14 * MS_PER_DAY
START_HORIZON_MS = 14 * MS_PER_DAY
WAIT_HORIZON_DAYS = 14

DEFAULT_DUE_FACTOR = 35.0
MIN_DUE_FACTOR_WITH_DATE = 40.0
NEUTRAL_PRIORITY = 50.0
CONTEXT_FACTOR = 100.0

# Rich context term
CONTEXT_BASELINE = 25.0
DEMAND_WEIGHT = 0.35
DEPENDENTS_WEIGHT = 0.25
WAIT_WEIGHT = 0.15
DEPENDENTS_SATURATION = 4.0

SCORE_WEIGHTS = {
    "importance": 0.4,
    "urgency": 0.25,
    "due": 0.2,
    "start": 0.1,
    "context": 0.05,
}


def _clamp_percent(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def _priority(value: float | None) -> float:
    """Importance/urgency: null or non-finite is neutral, everything else clamped."""
    number = to_finite_number(value)
    if number is None:
        return NEUTRAL_PRIORITY
    return _clamp_percent(number)


def _round_score(value: float) -> float:
    # Half-up rounding keeps ties stable across platforms.
    return math.floor(value * 1000 + 0.5) / 1000


def _delta_ms(moment: datetime, now: datetime) -> float:
    return (ensure_aware(moment) - ensure_aware(now)).total_seconds() * 1000


def due_factor(end_time: datetime | None, now: datetime) -> float:
    """100 when overdue, 40..100 within the horizon, 35 without a due date."""
    if end_time is None:
        return DEFAULT_DUE_FACTOR
    delta = _delta_ms(end_time, now)
    if delta <= 0:
        return 100.0
    proximity = 1 - min(delta, DUE_HORIZON_MS) / DUE_HORIZON_MS
    return MIN_DUE_FACTOR_WITH_DATE + proximity * (100 - MIN_DUE_FACTOR_WITH_DATE)


def start_factor(start_time: datetime | None, now: datetime) -> float:
    """100 when started or unscheduled, ramping up from 0 across the horizon otherwise."""
    if start_time is None:
        return 100.0
    delta = _delta_ms(start_time, now)
    if delta <= 0:
        return 100.0
    return 100 - min(delta, START_HORIZON_MS) / START_HORIZON_MS * 100


def context_factor(inputs: ScoreInput) -> float:
    """
    Context term of the weighted sum.

    Constant in the simple variant. The rich variant blends downstream
    demand, a saturating count of open dependents and the time since the
    task was last touched.
    """
    if not inputs.is_rich:
        return CONTEXT_FACTOR

    demand = _clamp_percent(to_finite_number(inputs.demand) or 0.0)
    dependents = max(inputs.dependent_count or 0, 0)
    dependents_factor = 100 * (1 - math.exp(-dependents / DEPENDENTS_SATURATION))
    wait_days = max(to_finite_number(inputs.wait_days) or 0.0, 0.0)
    wait_factor = min(wait_days / WAIT_HORIZON_DAYS, 1.0) * 100

    return _clamp_percent(
        CONTEXT_BASELINE
        + DEMAND_WEIGHT * demand
        + DEPENDENTS_WEIGHT * dependents_factor
        + WAIT_WEIGHT * wait_factor
    )


def compute_score(inputs: ScoreInput, now: datetime) -> float:
    """Weighted priority score, clamped to [0, 100] and rounded to 3 decimals."""
    score = (
        SCORE_WEIGHTS["importance"] * _priority(inputs.importance)
        + SCORE_WEIGHTS["urgency"] * _priority(inputs.urgency)
        + SCORE_WEIGHTS["due"] * due_factor(inputs.end_time, now)
        + SCORE_WEIGHTS["start"] * start_factor(inputs.start_time, now)
        + SCORE_WEIGHTS["context"] * context_factor(inputs)
    )
    return _round_score(_clamp_percent(score))


def score_input_for(record: TaskRecord) -> ScoreInput:
    return ScoreInput(
        importance=record.importance,
        urgency=record.urgency,
        start_time=record.start_time,
        end_time=record.end_time,
    )


# ============================================================================
# Graph-derived inputs
# ============================================================================


def _build_dependents(snapshot: TaskSnapshot) -> dict[str, list[str]]:
    """Reverse dependency edges: task -> tasks that depend on it."""
    dependents: dict[str, list[str]] = {task_id: [] for task_id in snapshot.tasks}
    for task_id, record in snapshot.tasks.items():
        for ref in record.depends_on:
            target = ref.target_id
            if target is None or target == task_id or target not in dependents:
                continue
            if task_id not in dependents[target]:
                dependents[target].append(task_id)
    return dependents


def _iter_transitive_dependents(task_id: str, dependents: dict[str, list[str]]) -> Iterator[str]:
    queue = deque(dependents.get(task_id, []))
    visited = {task_id}
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        yield current
        queue.extend(d for d in dependents.get(current, []) if d not in visited)


def _wait_days(record: TaskRecord, now: datetime) -> float | None:
    touched = record.modified_at or record.created_at
    if touched is None:
        return None
    return max(_delta_ms(now, touched) / MS_PER_DAY, 0.0)


def build_score_inputs(snapshot: TaskSnapshot, schema: TaskSchema, now: datetime) -> dict[str, ScoreInput]:
    """
    Score inputs for every task, including the rich graph-derived fields.

    `demand` is the highest simple score among open tasks that transitively
    depend on the task, `dependent_count` the number of such tasks and
    `wait_days` the days since the task was last modified (or created).
    """
    dependents = _build_dependents(snapshot)
    simple_scores = {
        task_id: compute_score(score_input_for(record), now) for task_id, record in snapshot.tasks.items()
    }

    inputs: dict[str, ScoreInput] = {}
    for task_id, record in snapshot.tasks.items():
        open_dependents = [
            d for d in _iter_transitive_dependents(task_id, dependents) if not schema.is_terminal(snapshot.tasks[d].status)
        ]
        demand = max((simple_scores[d] for d in open_dependents), default=0.0)
        inputs[task_id] = score_input_for(record).model_copy(
            update={
                "demand": demand,
                "dependent_count": len(open_dependents),
                "wait_days": _wait_days(record, now) or 0.0,
            }
        )
    return inputs


def score_snapshot(
    results: list[EligibilityResult],
    snapshot: TaskSnapshot,
    schema: TaskSchema,
    now: datetime,
    rich: bool = True,
) -> list[EligibilityResult]:
    """Return the results with `score` filled in, in the same order."""
    if rich:
        inputs = build_score_inputs(snapshot, schema, now)
    else:
        inputs = {task_id: score_input_for(record) for task_id, record in snapshot.tasks.items()}

    scored: list[EligibilityResult] = []
    for result in results:
        task_inputs = inputs.get(result.task_id) or score_input_for(result.task)
        scored.append(result.model_copy(update={"score": compute_score(task_inputs, now)}))
    return scored
