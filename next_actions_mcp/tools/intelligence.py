"""Scoring, recurrence, cycle and review MCP tools for Next Actions."""

import json

from mcp.types import ToolAnnotations

from next_actions_mcp.core.recurrence import compute_next_recurrence, parse_recurrence_rule
from next_actions_mcp.core.review import resolve_effective_next_review, resolve_next_review_after_mark_reviewed
from next_actions_mcp.core.scoring import compute_score, context_factor, due_factor, start_factor
from next_actions_mcp.enums import ResponseFormat
from next_actions_mcp.models.inputs import CyclesInput, NextRecurrenceInput, ReviewsDueInput, ScoreTaskInput
from next_actions_mcp.models.results import ScoreInput, TaskValues
from next_actions_mcp.server import get_service, mcp
from next_actions_mcp.utils.dates import ensure_aware, now_local
from next_actions_mcp.utils.formatters import _format_results_concise, _result_to_dict


@mcp.tool(
    name="nextactions_score",
    annotations=ToolAnnotations(
        title="Score Task Inputs",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_score(params: ScoreTaskInput) -> str:
    """
    Compute the 0-100 priority score for a set of inputs.

    Weights: importance 0.4, urgency 0.25, due proximity 0.2, start
    proximity 0.1, context 0.05. Passing demand, dependent_count or
    wait_days switches to the rich context term.

    USE THIS WHEN:
    - User asks how a task would rank with different importance or dates
    - Explaining a score returned by nextactions_list

    Args:
        params: ScoreTaskInput with priority, dates and optional graph inputs

    Returns:
        JSON with the score and each factor
    """
    now = ensure_aware(params.now) if params.now else now_local()
    inputs = ScoreInput(
        importance=params.importance,
        urgency=params.urgency,
        start_time=params.start_time,
        end_time=params.end_time,
        demand=params.demand,
        dependent_count=params.dependent_count,
        wait_days=params.wait_days,
    )
    return json.dumps(
        {
            "score": compute_score(inputs, now),
            "due_factor": round(due_factor(inputs.end_time, now), 3),
            "start_factor": round(start_factor(inputs.start_time, now), 3),
            "context_factor": round(context_factor(inputs), 3),
            "variant": "rich" if inputs.is_rich else "simple",
        },
        indent=2,
    )


@mcp.tool(
    name="nextactions_next_recurrence",
    annotations=ToolAnnotations(
        title="Next Recurrence",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_next_recurrence(params: NextRecurrenceInput) -> str:
    """
    Compute the next incarnation of a recurring task when it is completed.

    RULE FORMATS:
    - JSON: {"unit": "week", "interval": 1, "weekday": 1, "time": "09:00", "maxCount": 10}
    - Text: "daily", "every 2 weeks", "every monday 09:00", "monthly", "每周一 09:00"

    USE THIS WHEN:
    - A recurring task was just marked done and its next dates are needed
    - Checking what a repeat rule will produce
    - Previewing the next occurrence of a stored task (pass task_id)

    Args:
        params: NextRecurrenceInput with a rule or task_id, statuses, current dates and reference time

    Returns:
        New status, start/end times and the rule with its occurrence incremented,
        or a note that the series has ended
    """
    service = get_service()
    schema = service.schema
    now = ensure_aware(params.now) if params.now else now_local()

    if params.task_id is not None:
        record = (await service.resolve(now)).snapshot.get(params.task_id)
        if record is None:
            return (
                f"Error: Task '{params.task_id}' not found.\n"
                f"Tip: Use nextactions_list or nextactions_blocked to find valid task IDs."
            )
        current = TaskValues.from_record(record)
        previous_status = params.previous_status or record.status
    else:
        current = TaskValues(status=schema.default_status)
        previous_status = params.previous_status or schema.default_status

    rule_text = params.rule or current.recurrence_rule
    if not rule_text:
        if params.task_id is None:
            return "Error: Pass a repeat rule or a task_id.\nTip: Use text like 'every 2 weeks' or the ID of a recurring task."
        return (
            f"Error: Task '{params.task_id}' has no repeat rule.\n"
            f"Tip: Pass rule to compute the next occurrence for an explicit rule."
        )
    rule = parse_recurrence_rule(rule_text)
    if rule is None:
        return (
            f"Error: Could not parse repeat rule '{rule_text}'.\n"
            f"Tip: Use JSON like {{\"unit\": \"day\", \"interval\": 2}} or text like 'every 2 weeks 09:00'."
        )

    values = current.model_copy(
        update={
            "status": params.status or schema.done_status,
            "start_time": params.start_time or current.start_time,
            "end_time": params.end_time or current.end_time,
            "recurrence_rule": rule_text,
        }
    )
    next_values = compute_next_recurrence(previous_status, values, schema, now)

    if next_values is None:
        if params.response_format == ResponseFormat.JSON:
            return json.dumps({"next": None}, indent=2)
        return "No next occurrence (not a transition into done, or the series has ended)."

    start = next_values.start_time.isoformat() if next_values.start_time else None
    end = next_values.end_time.isoformat() if next_values.end_time else None

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {
                "next": {
                    "status": next_values.status,
                    "start_time": start,
                    "end_time": end,
                    "recurrence_rule": next_values.recurrence_rule,
                }
            },
            indent=2,
            ensure_ascii=False,
        )

    if params.response_format == ResponseFormat.CONCISE:
        return f"next: {next_values.status} start:{start or '-'} end:{end or '-'}"

    lines = ["# Next Occurrence", ""]
    lines.append(f"**Status**: {next_values.status}")
    lines.append(f"**Start**: {start or '-'}")
    lines.append(f"**End**: {end or '-'}")
    lines.append(f"**Rule**: `{next_values.recurrence_rule}`")
    return "\n".join(lines)


@mcp.tool(
    name="nextactions_cycles",
    annotations=ToolAnnotations(
        title="Dependency Cycles",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_cycles(params: CyclesInput) -> str:
    """
    List dependency cycles in the task graph.

    Edges inside a cycle never block, so tasks in a cycle may look
    actionable with respect to each other. This tool shows where that happens.

    USE THIS WHEN:
    - Tasks depend on each other and the user wants to untangle them

    Args:
        params: CyclesInput with format

    Returns:
        Each cycle with its member task ids
    """
    service = get_service()
    cycles = await service.cycles()

    if params.response_format == ResponseFormat.JSON:
        return json.dumps({"cycles": [c.task_ids for c in cycles], "count": len(cycles)}, indent=2)

    if params.response_format == ResponseFormat.CONCISE:
        if not cycles:
            return "0 cycles"
        return "\n".join([f"{len(cycles)} cycle(s)"] + [" <-> ".join(c.task_ids) for c in cycles])

    if not cycles:
        return "# Dependency Cycles\n\nNo dependency cycles found."

    lines = [f"# Dependency Cycles ({len(cycles)})", ""]
    for i, cycle in enumerate(cycles, 1):
        lines.append(f"{i}. {', '.join(cycle.task_ids)} ({cycle.size} tasks)")
    return "\n".join(lines)


@mcp.tool(
    name="nextactions_reviews_due",
    annotations=ToolAnnotations(
        title="Reviews Due",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_reviews_due(params: ReviewsDueInput) -> str:
    """
    List open tasks whose spaced review is due.

    USE THIS WHEN:
    - Running a weekly review
    - User asks "what should I look at again?"

    Args:
        params: ReviewsDueInput with limit, evaluation time and format

    Returns:
        Tasks with their effective next review time and, for cycle reviews,
        when the next one falls due once reviewed now
    """
    service = get_service()
    now = ensure_aware(params.now) if params.now else now_local()
    results = (await service.reviews_due(now))[: params.limit]

    if params.response_format == ResponseFormat.JSON:
        payload = []
        for result in results:
            entry = _result_to_dict(result)
            next_review = resolve_effective_next_review(result.task.review)
            entry["next_review"] = next_review.isoformat() if next_review else None
            after_review = resolve_next_review_after_mark_reviewed(result.task.review, now)
            entry["next_review_if_reviewed"] = after_review.isoformat() if after_review else None
            payload.append(entry)
        return json.dumps({"reviews_due": payload, "count": len(payload)}, indent=2, ensure_ascii=False)

    if params.response_format == ResponseFormat.CONCISE:
        return _format_results_concise(results, "review due")

    if not results:
        return "# Reviews Due\n\nNo reviews are due."

    lines = [f"# Reviews Due ({len(results)} tasks)", ""]
    for result in results:
        task = result.task
        next_review = resolve_effective_next_review(task.review)
        when = next_review.strftime("%Y-%m-%d %H:%M") if next_review else "-"
        line = f"- [{task.id}] {task.text} (due for review since {when}, {task.review.type.value})"
        after_review = resolve_next_review_after_mark_reviewed(task.review, now)
        if after_review is not None:
            line += f", next review {after_review.strftime('%Y-%m-%d %H:%M')} once reviewed"
        lines.append(line)
    return "\n".join(lines)
