"""Task snapshot reader: store nodes -> normalized, read-only task records."""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.core.review import parse_review_state
from next_actions_mcp.enums import DependencyMode
from next_actions_mcp.models.task import DependencyRef, TaskNode, TaskRecord, TaskSnapshot
from next_actions_mcp.utils.dates import to_datetime, to_finite_number
from next_actions_mcp.utils.store import TaskStore, safe_get_node, safe_query_tasks

logger = logging.getLogger(__name__)

UNTITLED_TASK = "(Untitled task)"

_SEPARATORS = r"\s,，;；、"
_OTHER_TAG_RE = re.compile(rf"(^|[{_SEPARATORS}])#[^\s#,，;；、]+(?=[{_SEPARATORS}]|$)")
_LABEL_SPLIT_RE = re.compile(r"[,，;；、]")


def canonical_id(node: TaskNode) -> str:
    return node.mirror_of or node.id


def strip_task_tag(text: str, tag_alias: str) -> str:
    """Drop `#tag` tokens (the task tag included) and collapse whitespace."""
    if text.strip() == "":
        return ""
    task_tag_re = re.compile(rf"(^|[{_SEPARATORS}])#{re.escape(tag_alias)}(?=[{_SEPARATORS}]|$)", re.IGNORECASE)
    normalized = task_tag_re.sub(" ", text)
    normalized = _OTHER_TAG_RE.sub(" ", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def resolve_task_text(node: TaskNode, tag_alias: str) -> str:
    return strip_task_tag(node.text or "", tag_alias) or UNTITLED_TASK


# ============================================================================
# Property readers
# ============================================================================


def _read_string(properties: Mapping[str, Any], name: str) -> str | None:
    value = properties.get(name)
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str) and value.strip() != "":
        return value.strip()
    return None


def _read_bool(properties: Mapping[str, Any], name: str) -> bool:
    value = properties.get(name)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value) if isinstance(value, (bool, int)) else False


def _read_labels(properties: Mapping[str, Any], name: str) -> tuple[str, ...]:
    value = properties.get(name)
    if isinstance(value, str):
        value = _LABEL_SPLIT_RE.split(value)
    if not isinstance(value, list):
        return ()
    labels: list[str] = []
    for item in value:
        if isinstance(item, str) and item.strip() and item.strip() not in labels:
            labels.append(item.strip())
    return tuple(labels)


def _read_id_list(properties: Mapping[str, Any], name: str) -> list[str]:
    value = properties.get(name)
    if value is None or isinstance(value, bool):
        return []
    if not isinstance(value, list):
        value = [value]
    ids: list[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            continue
        text = str(item).strip()
        if text and text not in ids:
            ids.append(text)
    return ids


def _read_rule(properties: Mapping[str, Any], name: str) -> str:
    value = properties.get(name)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return value.strip() if isinstance(value, str) else ""


def _read_depends_mode(properties: Mapping[str, Any], name: str, choices: tuple[DependencyMode, ...]) -> DependencyMode:
    """Case-insensitive match against the schema choices; the first choice is the default."""
    value = _read_string(properties, name)
    if value is not None:
        for mode in choices:
            if value.upper() == mode.value:
                return mode
    return choices[0]


def _read_delay_hours(properties: Mapping[str, Any], name: str) -> float:
    hours = to_finite_number(properties.get(name))
    return hours if hours is not None and hours > 0 else 0.0


# ============================================================================
# Snapshot reader
# ============================================================================


class _SnapshotReader:
    """One resolution pass over the store; holds the per-pass caches."""

    def __init__(self, store: TaskStore, schema: TaskSchema):
        self.store = store
        self.schema = schema
        self.nodes: dict[str, TaskNode] = {}
        self.alias_map: dict[str, str] = {}
        # container node id -> nearest task ancestor (None = reached the root)
        self._ancestor_cache: dict[str, str | None] = {}

    def _live(self, node: TaskNode) -> TaskNode:
        loaded = self.store.loaded_nodes
        if loaded is None:
            return node
        return loaded.get(canonical_id(node)) or node

    def collect(self, raw_nodes: list[TaskNode]) -> None:
        for raw in raw_nodes:
            node = self._live(raw)
            if not node.has_tag(self.schema.tag_alias) and not raw.has_tag(self.schema.tag_alias):
                continue
            task_id = canonical_id(node)
            self.alias_map.setdefault(raw.id, task_id)
            self.alias_map.setdefault(node.id, task_id)
            self.alias_map.setdefault(task_id, task_id)
            # Duplicates (mirrors of the same task) collapse to the first seen.
            self.nodes.setdefault(task_id, node)

    def _resolve_alias(self, node_id: str) -> str:
        return self.alias_map.get(node_id, node_id)

    async def nearest_task_ancestor(self, task_id: str) -> str | None:
        node = self.nodes[task_id]
        visited = {task_id}
        path: list[str] = []
        current = node.parent_id
        result: str | None = None

        while current is not None:
            resolved = self._resolve_alias(current)
            if resolved in self.nodes:
                result = resolved if resolved != task_id else None
                break
            if resolved in self._ancestor_cache:
                result = self._ancestor_cache[resolved]
                break
            if resolved in visited:
                # Corrupted parent chain
                result = None
                break
            visited.add(resolved)
            path.append(resolved)

            container = await safe_get_node(self.store, resolved)
            if container is None and resolved != current:
                container = await safe_get_node(self.store, current)
            if container is None:
                break
            current = container.parent_id

        if result == task_id:
            result = None
        for container_id in path:
            self._ancestor_cache[container_id] = result
        return result

    def resolve_dependency(self, node: TaskNode, raw: str) -> str | None:
        # Ref ids first: dependency values usually name a relation, not a node.
        for ref in node.refs:
            if ref.id == raw:
                target = self._resolve_alias(ref.to)
                if target in self.nodes:
                    return target
                break
        target = self._resolve_alias(raw)
        return target if target in self.nodes else None

    def build_record(self, task_id: str, parent_id: str | None, child_ids: list[str]) -> TaskRecord:
        node = self.nodes[task_id]
        names = self.schema.field_names
        props = node.properties

        depends_on = tuple(
            DependencyRef(raw=raw, target_id=self.resolve_dependency(node, raw))
            for raw in _read_id_list(props, names.depends_on)
        )

        return TaskRecord(
            id=task_id,
            text=resolve_task_text(node, self.schema.tag_alias),
            parent_id=parent_id,
            child_ids=tuple(child_ids),
            status=_read_string(props, names.status) or self.schema.default_status,
            start_time=to_datetime(props.get(names.start_time)),
            end_time=to_datetime(props.get(names.end_time)),
            depends_on=depends_on,
            depends_mode=_read_depends_mode(props, names.depends_mode, self.schema.dependency_mode_choices),
            dependency_delay_hours=_read_delay_hours(props, names.dependency_delay),
            importance=to_finite_number(props.get(names.importance)),
            urgency=to_finite_number(props.get(names.urgency)),
            effort=to_finite_number(props.get(names.effort)),
            review=parse_review_state(props.get(names.review)),
            recurrence_rule=_read_rule(props, names.recurrence_rule),
            star=_read_bool(props, names.star),
            labels=_read_labels(props, names.labels),
            completed_at=to_datetime(props.get(names.completed_at)),
            created_at=to_datetime(node.created_at),
            modified_at=to_datetime(node.modified_at),
        )


async def read_snapshot(store: TaskStore, schema: TaskSchema) -> TaskSnapshot:
    """
    Build a snapshot of every task carrying the schema's task tag.

    Mirrors collapse onto their canonical id and every raw id is recorded
    in the alias map. Parents are the nearest task ancestors, found by
    walking container nodes through the store (failures count as "no
    ancestor"). Children are the inverse of the parent map, in snapshot
    order.
    """
    reader = _SnapshotReader(store, schema)
    reader.collect(await safe_query_tasks(store, schema.tag_alias))

    parents: dict[str, str | None] = {}
    for task_id in reader.nodes:
        parents[task_id] = await reader.nearest_task_ancestor(task_id)

    children: dict[str, list[str]] = {task_id: [] for task_id in reader.nodes}
    for task_id, parent_id in parents.items():
        if parent_id is not None:
            children[parent_id].append(task_id)

    tasks = {
        task_id: reader.build_record(task_id, parents[task_id], children[task_id]) for task_id in reader.nodes
    }
    logger.debug("Read %d task(s) tagged %r", len(tasks), schema.tag_alias)
    return TaskSnapshot(tasks=tasks, alias_map=dict(reader.alias_map))
