"""Pytest configuration and fixtures for next-actions-mcp tests."""

from datetime import datetime, timezone
from typing import Any

import pytest

from next_actions_mcp.config import EngineSettings, TaskSchema, get_task_schema
from next_actions_mcp.core.service import NextActionService
from next_actions_mcp.enums import DependencyMode
from next_actions_mcp.models.task import DependencyRef, TaskRecord, TaskSnapshot
from next_actions_mcp.server import set_service
from next_actions_mcp.utils.store import InMemoryTaskStore

# Monday
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_record(task_id: str, status: str = "TODO", **fields: Any) -> TaskRecord:
    """Build a TaskRecord; `depends_on` may be given as plain target ids."""
    depends_on = fields.pop("depends_on", ())
    refs = tuple(d if isinstance(d, DependencyRef) else DependencyRef(raw=d, target_id=d) for d in depends_on)
    if "depends_mode" in fields:
        fields["depends_mode"] = DependencyMode(fields["depends_mode"])
    return TaskRecord(id=task_id, status=status, depends_on=refs, **fields)


def make_snapshot(*records: TaskRecord) -> TaskSnapshot:
    """Snapshot whose child lists are the inverse of the records' parent ids."""
    children: dict[str, list[str]] = {r.id: [] for r in records}
    for record in records:
        if record.parent_id in children:
            children[record.parent_id].append(record.id)
    tasks = {r.id: r.model_copy(update={"child_ids": tuple(children[r.id])}) for r in records}
    return TaskSnapshot(tasks=tasks, alias_map={r.id: r.id for r in records})


def make_node(node_id: str, task: bool = True, **fields: Any) -> dict[str, Any]:
    """Raw store node as a dict, tagged as a task unless `task=False`."""
    node: dict[str, Any] = {"id": node_id, "tags": ["Task"] if task else [], "text": f"{node_id} #Task"}
    node.update(fields)
    return node


@pytest.fixture
def now():
    """Fixed evaluation time (Monday 2025-03-10 12:00 UTC)."""
    return NOW


@pytest.fixture
def schema() -> TaskSchema:
    """English task schema."""
    return get_task_schema("en")


@pytest.fixture
def sample_nodes():
    """A small task graph: a project with two steps, one depending on the other."""
    return [
        make_node("project", properties={"Status": "Doing", "Importance": 80}),
        make_node("area", task=False, parent_id="project", text="Notes"),
        make_node("step-1", parent_id="area", properties={"Status": "TODO", "Importance": 60, "Urgency": 70}),
        make_node(
            "step-2",
            parent_id="project",
            properties={"Status": "TODO", "Depends on": ["step-1"]},
        ),
        make_node("errand", properties={"Status": "TODO", "End time": "2025-03-09T10:00:00+00:00"}),
        make_node("done", properties={"Status": "Done"}),
    ]


@pytest.fixture
def store(sample_nodes):
    """In-memory store holding the sample graph."""
    return InMemoryTaskStore(sample_nodes)


@pytest.fixture
def service(store):
    """Service over the sample store, installed for the MCP tools."""
    svc = NextActionService(store, settings=EngineSettings(rich_scoring=False))
    set_service(svc)
    yield svc
    set_service(None)
