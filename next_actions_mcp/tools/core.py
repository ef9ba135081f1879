"""Eligibility MCP tools for Next Actions."""

import json

from mcp.types import ToolAnnotations

from next_actions_mcp.enums import EvaluationFilter, ResponseFormat
from next_actions_mcp.models.inputs import BlockedInput, ExplainInput, InvalidateCacheInput, ListNextActionsInput
from next_actions_mcp.server import get_service, mcp
from next_actions_mcp.utils.formatters import (
    _format_result_concise,
    _format_result_markdown,
    _format_results_concise,
    _format_results_markdown,
    _result_to_dict,
)


@mcp.tool(
    name="nextactions_list",
    annotations=ToolAnnotations(
        title="List Next Actions",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_list(params: ListNextActionsInput) -> str:
    """
    List the tasks that are actionable right now, best first.

    A task is a next action when it is open, already started, has no open
    subtasks, no ancestor waiting on dependencies and its own dependencies
    are satisfied (including any post-completion delay).

    USE THIS WHEN:
    - User asks "what can I do now?" or "what's next?"
    - Planning a work session from the current task graph

    DO NOT USE WHEN:
    - You want to know why a task is stuck → use nextactions_blocked or nextactions_explain
    - You want to score hypothetical inputs → use nextactions_score

    Args:
        params: ListNextActionsInput with limit, optional evaluation time and format

    Returns:
        Ranked next actions: overdue first, then score, due time and id

    Examples:
        - Top 5 next actions: params with limit=5
        - As of a given time: params with now="2025-03-01T09:00:00"
    """
    service = get_service()
    results = await service.next_actions(limit=params.limit, now=params.now)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {"next_actions": [_result_to_dict(r) for r in results], "count": len(results)},
            indent=2,
            ensure_ascii=False,
        )

    if params.response_format == ResponseFormat.CONCISE:
        return _format_results_concise(results, "next")

    if not results:
        return "# Next Actions\n\nNo actionable tasks right now."

    lines = [f"# Next Actions ({len(results)} tasks)", ""]
    lines.append("| # | ID | Task | Score | Due |")
    lines.append("|---|----|------|-------|-----|")
    for i, result in enumerate(results, 1):
        task = result.task
        score = f"{result.score:.3f}" if result.score is not None else "-"
        due = task.end_time.strftime("%Y-%m-%d %H:%M") if task.end_time else "-"
        lines.append(f"| {i} | {task.id} | {task.text[:40]} | {score} | {due} |")

    return "\n".join(lines)


@mcp.tool(
    name="nextactions_blocked",
    annotations=ToolAnnotations(
        title="Blocked Tasks",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_blocked(params: BlockedInput) -> str:
    """
    List tasks that are not actionable, with every reason that blocks them.

    Reasons: completed, canceled, not-started, has-open-children,
    ancestor-dependency-unmet, dependency-unmet, dependency-delayed.

    USE THIS WHEN:
    - User asks "what's stuck?" or "what is waiting on what?"
    - Looking for the dependencies to clear to unblock work

    DO NOT USE WHEN:
    - You want actionable tasks → use nextactions_list
    - You only care about one task → use nextactions_explain

    Args:
        params: BlockedInput with include_completed, limit, evaluation time and format

    Returns:
        Blocked tasks with their reasons and pending dependencies
    """
    service = get_service()
    results = await service.evaluate(params.include_completed, EvaluationFilter.BLOCKED, params.now)
    results = results[: params.limit]

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {"blocked": [_result_to_dict(r) for r in results], "count": len(results)},
            indent=2,
            ensure_ascii=False,
        )

    if params.response_format == ResponseFormat.CONCISE:
        return _format_results_concise(results, "blocked")

    return _format_results_markdown(results, "Blocked Tasks")


@mcp.tool(
    name="nextactions_explain",
    annotations=ToolAnnotations(
        title="Explain Task Eligibility",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_explain(params: ExplainInput) -> str:
    """
    Explain whether one task is actionable and why.

    USE THIS WHEN:
    - User asks "why isn't task X showing up?"
    - Checking when a delayed dependency becomes available

    DO NOT USE WHEN:
    - You want all blocked tasks → use nextactions_blocked

    Args:
        params: ExplainInput with task_id, evaluation time and format

    Returns:
        The task's status, score, blocking reasons, pending dependencies
        and the status it moves to next in the Todo, Doing, Done cycle
    """
    service = get_service()
    result = await service.explain(params.task_id, now=params.now)

    if result is None:
        return (
            f"Error: Task '{params.task_id}' not found.\n"
            f"Tip: Use nextactions_list or nextactions_blocked to find valid task IDs."
        )

    next_status = service.schema.next_status_in_cycle(result.task.status)

    if params.response_format == ResponseFormat.JSON:
        data = _result_to_dict(result)
        data["next_status"] = next_status
        return json.dumps(data, indent=2, ensure_ascii=False)

    if params.response_format == ResponseFormat.CONCISE:
        return _format_result_concise(result)

    return _format_result_markdown(result) + f"\n**Next status**: {next_status}"


@mcp.tool(
    name="nextactions_invalidate_cache",
    annotations=ToolAnnotations(
        title="Invalidate Evaluation Cache",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def nextactions_invalidate_cache(params: InvalidateCacheInput) -> str:
    """
    Drop cached evaluations so the next query re-reads the store.

    USE THIS WHEN:
    - A task was just changed (status, dates, dependencies) and results must reflect it

    Args:
        params: InvalidateCacheInput with an optional reason

    Returns:
        Confirmation with cache statistics
    """
    service = get_service()
    service.invalidate_cache()
    stats = service.cache.stats
    message = f"Evaluation cache cleared (hits: {stats.hits}, misses: {stats.misses})"
    if params.reason:
        message += f" - {params.reason}"
    return message
