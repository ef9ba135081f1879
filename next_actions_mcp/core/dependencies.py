"""Dependency evaluation: ALL/ANY satisfaction with an optional delay window."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.core.cycles import CycleContext
from next_actions_mcp.core.hierarchy import HierarchyIndex
from next_actions_mcp.enums import DependencyMode
from next_actions_mcp.models.results import DependencyVerdict
from next_actions_mcp.models.task import TaskRecord, TaskSnapshot


@dataclass(frozen=True)
class _Completion:
    target_id: str | None
    completed: bool
    completed_at: datetime | None


def completion_time(record: TaskRecord) -> datetime | None:
    """Best available completion time: explicit, then last modified, then created."""
    return record.completed_at or record.modified_at or record.created_at


def is_dependency_complete(record: TaskRecord, schema: TaskSchema, hierarchy: HierarchyIndex) -> bool:
    """A dependency is complete when it is done and its whole subtree is closed."""
    return schema.is_done(record.status) and not hierarchy.has_open_subtask(record.id, schema)


def _collect_completions(
    source: TaskRecord,
    snapshot: TaskSnapshot,
    schema: TaskSchema,
    cycles: CycleContext,
    hierarchy: HierarchyIndex,
) -> list[_Completion]:
    entries: list[_Completion] = []
    for ref in source.depends_on:
        target_id = ref.target_id
        target = snapshot.tasks.get(target_id) if target_id is not None else None
        if target is None:
            entries.append(_Completion(target_id=None, completed=False, completed_at=None))
            continue
        # Self-dependency is invalid and never blocks.
        if target.id == source.id:
            continue
        # Cycle-internal edges are defused.
        if cycles.in_same_cycle(source.id, target.id):
            continue
        completed = is_dependency_complete(target, schema, hierarchy)
        entries.append(
            _Completion(
                target_id=target.id,
                completed=completed,
                completed_at=completion_time(target) if completed else None,
            )
        )
    return entries


def evaluate_dependencies(
    source: TaskRecord,
    snapshot: TaskSnapshot,
    schema: TaskSchema,
    cycles: CycleContext,
    hierarchy: HierarchyIndex,
    now: datetime,
) -> DependencyVerdict:
    """
    Evaluate the dependency list of `source`.

    Unresolved references count as incomplete. Self references and edges
    inside a dependency cycle are dropped; if nothing survives, the set is
    satisfied. ANY needs one completed entry, ALL needs every entry.

    When completion is satisfied and `dependency_delay_hours` > 0 the task
    stays `delayed` until the anchor plus the delay has passed. The anchor
    is the earliest completion for ANY and the latest for ALL.
    """
    if not source.depends_on:
        return DependencyVerdict()

    entries = _collect_completions(source, snapshot, schema, cycles, hierarchy)
    if not entries:
        return DependencyVerdict()

    pending_ids = [e.target_id for e in entries if not e.completed and e.target_id is not None]

    if source.depends_mode == DependencyMode.ANY:
        completion_met = any(e.completed for e in entries)
    else:
        completion_met = all(e.completed for e in entries)

    if not completion_met:
        return DependencyVerdict(satisfied=False, unmet=True, pending_ids=pending_ids)

    delay_hours = source.dependency_delay_hours
    if delay_hours <= 0:
        return DependencyVerdict(pending_ids=pending_ids)

    times = [e.completed_at for e in entries if e.completed and e.completed_at is not None]
    if not times:
        return DependencyVerdict(pending_ids=pending_ids)

    anchor = min(times) if source.depends_mode == DependencyMode.ANY else max(times)
    available_at = anchor + timedelta(hours=delay_hours)
    if now < available_at:
        return DependencyVerdict(
            satisfied=False,
            delayed=True,
            available_at=available_at,
            pending_ids=pending_ids,
        )

    return DependencyVerdict(available_at=available_at, pending_ids=pending_ids)
