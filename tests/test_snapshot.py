"""Tests for the snapshot reader, parsers and stores."""

import json
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from conftest import make_node

from next_actions_mcp.core.snapshot import read_snapshot, strip_task_tag
from next_actions_mcp.enums import DependencyMode
from next_actions_mcp.models.task import TaskNode
from next_actions_mcp.utils.parsers import _parse_node
from next_actions_mcp.utils.store import (
    InMemoryTaskStore,
    JsonSnapshotStore,
    StoreError,
    safe_get_node,
    safe_query_tasks,
)


class TestParseNode:
    """Tests for raw node parsing."""

    def test_camel_case_keys(self):
        """camelCase keys and numeric ids are normalized."""
        node = _parse_node(
            {
                "id": 7,
                "parentId": 3,
                "childIds": [8, 9],
                "mirrorOf": 1,
                "modifiedAt": "2025-03-01T00:00:00Z",
                "refs": [{"id": 11, "to": 12}],
            }
        )
        assert node.id == "7"
        assert node.parent_id == "3"
        assert node.child_ids == ["8", "9"]
        assert node.mirror_of == "1"
        assert node.refs[0].to == "12"
        assert node.modified_at == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_extra_fields_allowed(self):
        """Unknown host fields are kept."""
        node = _parse_node({"id": "a", "color": "red"})
        assert node.model_extra == {"color": "red"}


class TestStripTaskTag:
    """Tests for task text cleanup."""

    def test_strips_tags(self):
        """Task and other hashtags are dropped."""
        assert strip_task_tag("Write report #Task #work", "Task") == "Write report"
        assert strip_task_tag("#task, buy milk", "Task") == ", buy milk"

    def test_keeps_inner_hashes(self):
        """Hashes inside words stay."""
        assert strip_task_tag("Fix C# parser", "Task") == "Fix C# parser"


class TestReadSnapshot:
    """Tests for turning store nodes into task records."""

    @pytest.mark.asyncio
    async def test_fields_read_through_schema(self, schema):
        """Properties are read by their schema names and normalized."""
        store = InMemoryTaskStore(
            [
                make_node(
                    "a",
                    text="Plan trip #Task",
                    properties={
                        "Status": "Doing",
                        "Start time": "2025-03-01T09:00:00Z",
                        "End time": 1741608000000,
                        "Depends mode": "any",
                        "Dependency delay": -5,
                        "Importance": "75",
                        "Urgency": float("nan"),
                        "Star": "true",
                        "Labels": "home, travel，home",
                        "Repeat rule": {"unit": "week"},
                    },
                )
            ]
        )
        record = (await read_snapshot(store, schema)).tasks["a"]
        assert record.text == "Plan trip"
        assert record.status == "Doing"
        assert record.start_time == datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert record.end_time == datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert record.depends_mode == DependencyMode.ANY
        assert record.dependency_delay_hours == 0
        assert record.importance == 75
        assert record.urgency is None
        assert record.star
        assert record.labels == ("home", "travel")
        assert json.loads(record.recurrence_rule) == {"unit": "week"}

    @pytest.mark.asyncio
    async def test_dependency_mode_choices(self, schema):
        """Depends mode matches the schema choices; unknown values use the first choice."""
        any_first = schema.model_copy(update={"dependency_mode_choices": (DependencyMode.ANY, DependencyMode.ALL)})
        store = InMemoryTaskStore(
            [
                make_node("a", properties={"Depends mode": "All"}),
                make_node("b", properties={"Depends mode": "either"}),
                make_node("c"),
            ]
        )
        tasks = (await read_snapshot(store, any_first)).tasks
        assert tasks["a"].depends_mode == DependencyMode.ALL
        assert tasks["b"].depends_mode == DependencyMode.ANY
        assert tasks["c"].depends_mode == DependencyMode.ANY
        assert (await read_snapshot(store, schema)).tasks["b"].depends_mode == DependencyMode.ALL

    @pytest.mark.asyncio
    async def test_defaults(self, schema):
        """Missing status is the default status; empty text is untitled."""
        store = InMemoryTaskStore([make_node("a", text="#Task")])
        record = (await read_snapshot(store, schema)).tasks["a"]
        assert record.status == "TODO"
        assert record.text == "(Untitled task)"
        assert record.depends_on == ()

    @pytest.mark.asyncio
    async def test_untagged_nodes_skipped(self, store, schema):
        """Only task-tagged nodes become records."""
        snapshot = await read_snapshot(store, schema)
        assert "area" not in snapshot.tasks
        assert set(snapshot.tasks) == {"project", "step-1", "step-2", "errand", "done"}

    @pytest.mark.asyncio
    async def test_parent_skips_containers(self, store, schema):
        """The parent is the nearest task ancestor."""
        snapshot = await read_snapshot(store, schema)
        assert snapshot.tasks["step-1"].parent_id == "project"
        assert snapshot.tasks["project"].child_ids == ("step-1", "step-2")
        assert snapshot.tasks["project"].parent_id is None

    @pytest.mark.asyncio
    async def test_cyclic_container_chain(self, schema):
        """A cyclic container chain means no ancestor."""
        store = InMemoryTaskStore(
            [
                make_node("t", parent_id="c1"),
                make_node("c1", task=False, parent_id="c2"),
                make_node("c2", task=False, parent_id="c1"),
            ]
        )
        snapshot = await read_snapshot(store, schema)
        assert snapshot.tasks["t"].parent_id is None

    @pytest.mark.asyncio
    async def test_dependency_resolution(self, schema):
        """Ref ids resolve first, then node ids; unknown stays unresolved."""
        store = InMemoryTaskStore(
            [
                make_node(
                    "a",
                    refs=[{"id": "r1", "to": "b"}],
                    properties={"Depends on": ["r1", "c", "ghost", 5]},
                ),
                make_node("b"),
                make_node("c"),
            ]
        )
        record = (await read_snapshot(store, schema)).tasks["a"]
        assert [(d.raw, d.target_id) for d in record.depends_on] == [
            ("r1", "b"),
            ("c", "c"),
            ("ghost", None),
            ("5", None),
        ]

    @pytest.mark.asyncio
    async def test_mirrors_collapse(self, schema):
        """A mirror resolves to its canonical task through the alias map."""
        store = InMemoryTaskStore(
            [
                make_node("orig", properties={"Status": "Doing"}),
                make_node("mirror", mirror_of="orig"),
                make_node("dep", properties={"Depends on": ["mirror"]}),
            ]
        )
        snapshot = await read_snapshot(store, schema)
        assert "mirror" not in snapshot.tasks
        assert snapshot.alias_map["mirror"] == "orig"
        assert snapshot.get("mirror").status == "Doing"
        assert snapshot.tasks["dep"].depends_on[0].target_id == "orig"

    @pytest.mark.asyncio
    async def test_lookup_failure_treated_as_missing(self, schema, caplog):
        """A failing container lookup ends the walk and is logged."""
        store = InMemoryTaskStore([make_node("t", parent_id="remote")])
        store.get_node_by_id = AsyncMock(side_effect=ConnectionError("backend down"))
        with caplog.at_level(logging.WARNING):
            snapshot = await read_snapshot(store, schema)
        assert snapshot.tasks["t"].parent_id is None
        assert "backend down" in caplog.text

    @pytest.mark.asyncio
    async def test_container_lookups_cached(self, schema):
        """Each container is fetched once per pass."""
        container = TaskNode(id="box", parent_id="root-task")
        store = InMemoryTaskStore(
            [make_node("root-task"), make_node("a", parent_id="box"), make_node("b", parent_id="box")]
        )
        store.get_node_by_id = AsyncMock(return_value=container)
        snapshot = await read_snapshot(store, schema)
        assert snapshot.tasks["a"].parent_id == "root-task"
        assert snapshot.tasks["b"].parent_id == "root-task"
        assert store.get_node_by_id.await_count == 1


class TestTimestamps:
    """Tests for store timestamps on task records."""

    @pytest.mark.asyncio
    async def test_naive_timestamps_made_aware(self, schema):
        """Offset-less created and modified times get a timezone."""
        store = InMemoryTaskStore(
            [make_node("a", createdAt="2025-03-01T08:00:00", modifiedAt="2025-03-10T11:30:00")]
        )
        record = (await read_snapshot(store, schema)).tasks["a"]
        assert record.created_at.tzinfo is not None
        assert record.modified_at.tzinfo is not None
        assert record.modified_at.replace(tzinfo=None) == datetime(2025, 3, 10, 11, 30)


class TestStores:
    """Tests for store collaborators and safe lookups."""

    @pytest.mark.asyncio
    async def test_query_failure_yields_empty(self, caplog):
        """A failing batch query is logged and treated as empty."""
        store = InMemoryTaskStore()
        store.query_tasks_by_tag = AsyncMock(side_effect=RuntimeError("boom"))
        with caplog.at_level(logging.ERROR):
            assert await safe_query_tasks(store, "Task") == []
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_loaded_nodes_preferred(self):
        """Loaded nodes skip the async lookup."""
        store = InMemoryTaskStore([{"id": "a"}])
        store.get_node_by_id = AsyncMock()
        assert (await safe_get_node(store, "a")).id == "a"
        store.get_node_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_json_snapshot_store(self, tmp_path):
        """The JSON store re-reads its file on every query."""
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps([make_node("a")]), encoding="utf-8")
        store = JsonSnapshotStore(path)
        assert [n.id for n in await store.query_tasks_by_tag("Task")] == ["a"]

        path.write_text(json.dumps({"nodes": [make_node("a"), make_node("b")]}), encoding="utf-8")
        assert [n.id for n in await store.query_tasks_by_tag("Task")] == ["a", "b"]
        assert (await store.get_node_by_id("b")).id == "b"
        assert store.loaded_nodes is None

    @pytest.mark.asyncio
    async def test_json_lookups_use_last_query(self, tmp_path):
        """Node lookups after a query do not read the file again."""
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps([make_node("a"), make_node("box", task=False)]), encoding="utf-8")
        store = JsonSnapshotStore(path)
        await store.query_tasks_by_tag("Task")

        path.unlink()
        assert (await store.get_node_by_id("box")).id == "box"
        assert await store.get_node_by_id("ghost") is None
        with pytest.raises(StoreError):
            await store.query_tasks_by_tag("Task")

    @pytest.mark.asyncio
    async def test_json_snapshot_store_errors(self, tmp_path):
        """Missing or broken files raise StoreError."""
        with pytest.raises(StoreError):
            await JsonSnapshotStore(tmp_path / "missing.json").query_tasks_by_tag("Task")

        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            await JsonSnapshotStore(broken).query_tasks_by_tag("Task")

        wrong = tmp_path / "wrong.json"
        wrong.write_text('"nodes"', encoding="utf-8")
        with pytest.raises(StoreError):
            await JsonSnapshotStore(wrong).get_node_by_id("a")

        nested = tmp_path / "nested.json"
        nested.write_text("[" * 100000 + "]" * 100000, encoding="utf-8")
        with pytest.raises(StoreError):
            await JsonSnapshotStore(nested).query_tasks_by_tag("Task")
