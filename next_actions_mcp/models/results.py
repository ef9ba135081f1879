"""Output/intermediate models for eligibility, scoring and recurrence."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from next_actions_mcp.enums import BlockReason, RecurrenceUnit
from next_actions_mcp.models.task import ReviewState, TaskRecord


class DependencyVerdict(BaseModel):
    """Outcome of evaluating one task's dependency list.

    At most one of `unmet` / `delayed` is true; both false means satisfied.
    """

    satisfied: bool = True
    unmet: bool = False
    delayed: bool = False
    available_at: datetime | None = None
    pending_ids: list[str] = Field(default_factory=list)


class EligibilityResult(BaseModel):
    """Actionable/blocked classification of a single task."""

    task: TaskRecord
    is_next_action: bool
    reasons: list[BlockReason] = Field(default_factory=list)
    dependency: DependencyVerdict = Field(default_factory=DependencyVerdict)
    forced_by_review: bool = False
    score: float | None = None

    @property
    def task_id(self) -> str:
        return self.task.id


class ScoreInput(BaseModel):
    """Inputs of the scoring engine.

    The graph-derived fields (`demand`, `dependent_count`, `wait_days`)
    are optional; when all are None the simple variant is used.
    """

    importance: float | None = None
    urgency: float | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    demand: float | None = None
    dependent_count: int | None = None
    wait_days: float | None = None

    @property
    def is_rich(self) -> bool:
        return self.demand is not None or self.dependent_count is not None or self.wait_days is not None


class RecurrenceRule(BaseModel):
    """Parsed recurrence rule. `weekday` uses 0=Sunday .. 6=Saturday."""

    unit: RecurrenceUnit
    interval: int = Field(default=1, ge=1)
    weekday: int | None = Field(default=None, ge=0, le=6)
    hour: int | None = Field(default=None, ge=0, le=23)
    minute: int | None = Field(default=None, ge=0, le=59)
    max_count: int | None = Field(default=None, ge=1)
    end_at_ms: int | None = None
    occurrence: int = Field(default=1, ge=1)

    @property
    def has_time(self) -> bool:
        return self.hour is not None and self.minute is not None


class TaskValues(BaseModel):
    """Writable field values of a task incarnation."""

    status: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    importance: float | None = None
    urgency: float | None = None
    effort: float | None = None
    star: bool = False
    labels: list[str] = Field(default_factory=list)
    recurrence_rule: str = ""
    review: ReviewState = Field(default_factory=ReviewState)
    depends_on: list[str] = Field(default_factory=list)
    depends_mode: str = "ALL"
    dependency_delay_hours: float = 0.0

    @classmethod
    def from_record(cls, record: TaskRecord) -> TaskValues:
        return cls(
            status=record.status,
            start_time=record.start_time,
            end_time=record.end_time,
            importance=record.importance,
            urgency=record.urgency,
            effort=record.effort,
            star=record.star,
            labels=list(record.labels),
            recurrence_rule=record.recurrence_rule,
            review=record.review,
            depends_on=[d.raw for d in record.depends_on],
            depends_mode=record.depends_mode.value,
            dependency_delay_hours=record.dependency_delay_hours,
        )


class CycleComponent(BaseModel):
    """A dependency cycle (strongly-connected component with more than one task)."""

    component_id: int
    task_ids: list[str]

    @property
    def size(self) -> int:
        return len(self.task_ids)
