"""Next-action service: store -> snapshot -> cached, scored resolution pass."""

import logging
from dataclasses import dataclass
from datetime import datetime

from next_actions_mcp.config import EngineSettings, TaskSchema
from next_actions_mcp.core.cache import EvaluationCache
from next_actions_mcp.core.cycles import CycleContext, build_cycle_context
from next_actions_mcp.core.eligibility import TERMINAL_REASONS, rank_actionable, resolve_eligibility
from next_actions_mcp.core.hierarchy import build_hierarchy_index
from next_actions_mcp.core.review import is_review_due
from next_actions_mcp.core.scoring import score_snapshot
from next_actions_mcp.core.snapshot import read_snapshot
from next_actions_mcp.enums import EvaluationFilter
from next_actions_mcp.models.results import CycleComponent, EligibilityResult
from next_actions_mcp.models.task import TaskSnapshot
from next_actions_mcp.utils.dates import ensure_aware, now_local
from next_actions_mcp.utils.store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionPass:
    """Everything computed from one snapshot."""

    snapshot: TaskSnapshot
    cycles: CycleContext
    results: list[EligibilityResult]
    now: datetime


def _matches(result: EligibilityResult, include_completed: bool, evaluation_filter: EvaluationFilter) -> bool:
    if not include_completed and not TERMINAL_REASONS.isdisjoint(result.reasons):
        return False
    if evaluation_filter == EvaluationFilter.ACTIONABLE:
        return result.is_next_action
    if evaluation_filter == EvaluationFilter.BLOCKED:
        return not result.is_next_action
    return True


class NextActionService:
    """Owns the store, the schema and the evaluation cache of one host."""

    def __init__(
        self,
        store: TaskStore,
        schema: TaskSchema | None = None,
        settings: EngineSettings | None = None,
        cache: EvaluationCache | None = None,
    ):
        self.store = store
        self.settings = settings if settings is not None else EngineSettings()
        self.schema = schema if schema is not None else self.settings.task_schema()
        self.cache = cache if cache is not None else EvaluationCache(self.settings.cache_ttl_seconds)

    async def resolve(self, now: datetime | None = None) -> ResolutionPass:
        """Run (or reuse) a full pass covering every task."""
        now = ensure_aware(now) if now is not None else now_local()
        key = self.cache.make_key(self.schema.tag_alias, True, now, EvaluationFilter.ALL)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        snapshot = await read_snapshot(self.store, self.schema)
        cycles = build_cycle_context(snapshot)
        results = resolve_eligibility(
            snapshot,
            self.schema,
            now,
            surface_due_reviews=self.settings.surface_due_reviews,
            cycles=cycles,
            hierarchy=build_hierarchy_index(snapshot),
        )
        results = score_snapshot(results, snapshot, self.schema, now, rich=self.settings.rich_scoring)
        logger.debug(
            "Resolved %d task(s), %d actionable",
            len(results),
            sum(1 for r in results if r.is_next_action),
        )
        return self.cache.set(key, ResolutionPass(snapshot=snapshot, cycles=cycles, results=results, now=now))

    async def evaluate(
        self,
        include_completed: bool = False,
        evaluation_filter: EvaluationFilter = EvaluationFilter.ALL,
        now: datetime | None = None,
    ) -> list[EligibilityResult]:
        """Scored evaluations, optionally restricted to actionable or blocked tasks."""
        now = ensure_aware(now) if now is not None else now_local()
        key = self.cache.make_key(self.schema.tag_alias, include_completed, now, evaluation_filter)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        resolution = await self.resolve(now)
        selected = [r for r in resolution.results if _matches(r, include_completed, evaluation_filter)]
        return self.cache.set(key, selected)

    async def next_actions(self, limit: int | None = None, now: datetime | None = None) -> list[EligibilityResult]:
        """Actionable tasks in rank order."""
        now = ensure_aware(now) if now is not None else now_local()
        actionable = await self.evaluate(False, EvaluationFilter.ACTIONABLE, now)
        by_id = {r.task_id: r for r in actionable}
        ranked = [by_id[task_id] for task_id in rank_actionable(actionable, now)]
        return ranked[:limit] if limit is not None else ranked

    async def explain(self, task_id: str, now: datetime | None = None) -> EligibilityResult | None:
        """Evaluation of one task, looked up through the alias map."""
        resolution = await self.resolve(now)
        record = resolution.snapshot.get(task_id)
        if record is None:
            return None
        return next((r for r in resolution.results if r.task_id == record.id), None)

    async def cycles(self, now: datetime | None = None) -> list[CycleComponent]:
        resolution = await self.resolve(now)
        return resolution.cycles.cycles()

    async def reviews_due(self, now: datetime | None = None) -> list[EligibilityResult]:
        """Open review-enabled tasks whose next review is due."""
        resolution = await self.resolve(now)
        return [
            r
            for r in resolution.results
            if TERMINAL_REASONS.isdisjoint(r.reasons) and is_review_due(r.task.review, resolution.now)
        ]

    def invalidate_cache(self) -> None:
        """Drop cached passes, e.g. right after a status change was written."""
        self.cache.invalidate()
