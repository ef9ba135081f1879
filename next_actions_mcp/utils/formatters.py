"""Formatting utilities for eligibility output."""

from datetime import datetime
from typing import Any

from next_actions_mcp.models.results import EligibilityResult


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value is not None else "-"


def _result_to_dict(result: EligibilityResult) -> dict[str, Any]:
    """JSON-friendly view of one evaluation."""
    task = result.task
    return {
        "id": task.id,
        "text": task.text,
        "status": task.status,
        "is_next_action": result.is_next_action,
        "reasons": [r.value for r in result.reasons],
        "forced_by_review": result.forced_by_review,
        "score": result.score,
        "start_time": task.start_time.isoformat() if task.start_time else None,
        "end_time": task.end_time.isoformat() if task.end_time else None,
        "parent_id": task.parent_id,
        "child_ids": list(task.child_ids),
        "depends_on": [d.target_id or d.raw for d in task.depends_on],
        "depends_mode": task.depends_mode.value,
        "pending_dependencies": result.dependency.pending_ids,
        "available_at": result.dependency.available_at.isoformat() if result.dependency.available_at else None,
        "star": task.star,
        "labels": list(task.labels),
    }


def _format_result_concise(result: EligibilityResult) -> str:
    """
    Format a single evaluation in concise format for token efficiency.

    Output: "#42: Write report (score:69.0, due:2024-12-31, dependency-unmet)"
    """
    task = result.task
    desc = task.text[:50]

    meta = []
    if result.score is not None:
        meta.append(f"score:{result.score:g}")
    if task.end_time:
        meta.append(f"due:{task.end_time.date().isoformat()}")
    meta.extend(r.value for r in result.reasons)
    if result.forced_by_review:
        meta.append("review")

    if meta:
        return f"#{task.id}: {desc} ({', '.join(meta)})"
    return f"#{task.id}: {desc}"


def _format_results_concise(results: list[EligibilityResult], title: str | None = None) -> str:
    """
    Format a list of evaluations in concise format.

    Output:
    2 task(s) | next
    #1: Task one (score:72.5)
    #2: Task two (score:61.0)
    """
    if not results:
        return "0 tasks"

    header = f"{len(results)} task(s)"
    if title:
        header = f"{len(results)} task(s) | {title}"

    return "\n".join([header] + [_format_result_concise(r) for r in results])


def _format_result_markdown(result: EligibilityResult) -> str:
    """Format a single evaluation as markdown."""
    task = result.task
    header = f"### [{task.id}] {task.text}"
    if result.is_next_action:
        header += " (next action)"
    lines = [header]

    details = [f"**Status**: {task.status}"]
    if result.score is not None:
        details.append(f"**Score**: {result.score:.3f}")
    if task.start_time:
        details.append(f"**Start**: {_format_time(task.start_time)}")
    if task.end_time:
        details.append(f"**Due**: {_format_time(task.end_time)}")
    if task.labels:
        details.append(f"**Labels**: {', '.join(task.labels)}")
    lines.append(" | ".join(details))

    if result.reasons:
        lines.append(f"**Blocked by**: {', '.join(r.value for r in result.reasons)}")
    if result.forced_by_review:
        lines.append("**Surfaced**: review is due")
    if result.dependency.pending_ids:
        lines.append(
            f"**Waiting on** ({task.depends_mode.value}): {', '.join(result.dependency.pending_ids)}"
        )
    if result.dependency.delayed and result.dependency.available_at:
        lines.append(f"**Available at**: {_format_time(result.dependency.available_at)}")

    return "\n".join(lines)


def _format_results_markdown(results: list[EligibilityResult], title: str = "Tasks") -> str:
    """Format a list of evaluations as markdown."""
    if not results:
        return f"# {title}\n\nNo tasks found."

    lines = [f"# {title}", f"*{len(results)} task(s)*", ""]

    for result in results:
        lines.append(_format_result_markdown(result))
        lines.append("")

    return "\n".join(lines)
