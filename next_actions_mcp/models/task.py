"""Core task models for Next Actions MCP."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from next_actions_mcp.enums import DependencyMode, ReviewType


class NodeRef(BaseModel):
    """An outgoing relation from a node (tag or block reference)."""

    id: str
    to: str
    alias: str | None = None


class TaskNode(BaseModel):
    """Raw node as supplied by the host store."""

    model_config = ConfigDict(extra="allow")

    id: str
    parent_id: str | None = None
    child_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    refs: list[NodeRef] = Field(default_factory=list)
    mirror_of: str | None = None
    text: str = ""
    created_at: datetime | None = None
    modified_at: datetime | None = None

    def has_tag(self, tag: str) -> bool:
        return any(t == tag for t in self.tags)


class DependencyRef(BaseModel):
    """A dependency reference resolved against the alias map.

    `target_id` is None when the reference did not resolve to a known task.
    """

    raw: str
    target_id: str | None = None


class ReviewState(BaseModel):
    """Spaced review configuration of a task."""

    enabled: bool = False
    type: ReviewType = ReviewType.SINGLE
    next_review: datetime | None = None
    review_every: str = ""
    last_reviewed: datetime | None = None


class TaskRecord(BaseModel):
    """Normalized, read-only snapshot of one task."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    parent_id: str | None = None
    child_ids: tuple[str, ...] = ()
    status: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    depends_on: tuple[DependencyRef, ...] = ()
    depends_mode: DependencyMode = DependencyMode.ALL
    dependency_delay_hours: float = 0.0
    importance: float | None = None
    urgency: float | None = None
    effort: float | None = None
    review: ReviewState = Field(default_factory=ReviewState)
    recurrence_rule: str = ""
    star: bool = False
    labels: tuple[str, ...] = ()
    completed_at: datetime | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None


class TaskSnapshot(BaseModel):
    """All task records of one resolution pass plus the alias map used to build them."""

    model_config = ConfigDict(frozen=True)

    tasks: dict[str, TaskRecord] = Field(default_factory=dict)
    alias_map: dict[str, str] = Field(default_factory=dict)

    def get(self, task_id: str) -> TaskRecord | None:
        canonical = self.alias_map.get(task_id, task_id)
        return self.tasks.get(canonical)
