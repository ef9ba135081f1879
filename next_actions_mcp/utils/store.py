"""Host store collaborators and failure-tolerant lookups."""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from next_actions_mcp.models.task import TaskNode
from next_actions_mcp.utils.parsers import _parse_node, _parse_nodes

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised by a store when its backend cannot be read."""


@runtime_checkable
class TaskStore(Protocol):
    """What the engine needs from the host document store."""

    @property
    def loaded_nodes(self) -> Mapping[str, TaskNode] | None:
        """Already-loaded nodes by id, preferred over async lookups (None if unavailable)."""
        ...

    async def query_tasks_by_tag(self, tag: str) -> list[TaskNode]: ...

    async def get_node_by_id(self, node_id: str) -> TaskNode | None: ...


class InMemoryTaskStore:
    """Store over a fixed set of nodes; the default for embedding and tests."""

    def __init__(self, nodes: Iterable[TaskNode | dict[str, Any]] = ()):
        self._nodes: dict[str, TaskNode] = {}
        for node in nodes:
            self.put(node)

    @property
    def loaded_nodes(self) -> Mapping[str, TaskNode]:
        return self._nodes

    def put(self, node: TaskNode | dict[str, Any]) -> TaskNode:
        parsed = node if isinstance(node, TaskNode) else _parse_node(node)
        self._nodes[parsed.id] = parsed
        return parsed

    def remove(self, node_id: str) -> None:
        self._nodes.pop(node_id, None)

    async def query_tasks_by_tag(self, tag: str) -> list[TaskNode]:
        return [node for node in self._nodes.values() if node.has_tag(tag)]

    async def get_node_by_id(self, node_id: str) -> TaskNode | None:
        return self._nodes.get(node_id)


class JsonSnapshotStore:
    """
    Store backed by a JSON file holding a list of raw nodes.

    The file is re-read on every tag query, so external edits show up on the
    next resolution pass. Node lookups are served from the nodes read by the
    last query. There is no loaded-node index.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._last_read: dict[str, TaskNode] | None = None

    @property
    def loaded_nodes(self) -> None:
        return None

    def _load_nodes(self) -> dict[str, TaskNode]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise StoreError(f"Snapshot file not found: {self.path}") from e
        except (OSError, json.JSONDecodeError, RecursionError) as e:
            raise StoreError(f"Failed to read snapshot {self.path} - {e}") from e

        if isinstance(raw, dict):
            raw = raw.get("nodes", [])
        if not isinstance(raw, list):
            raise StoreError(f"Snapshot {self.path} must hold a list of nodes")

        try:
            return {node.id: node for node in _parse_nodes(raw)}
        except ValidationError as e:
            raise StoreError(f"Invalid node in snapshot {self.path} - {e}") from e

    async def query_tasks_by_tag(self, tag: str) -> list[TaskNode]:
        self._last_read = self._load_nodes()
        return [node for node in self._last_read.values() if node.has_tag(tag)]

    async def get_node_by_id(self, node_id: str) -> TaskNode | None:
        if self._last_read is None:
            self._last_read = self._load_nodes()
        return self._last_read.get(node_id)


async def safe_get_node(store: TaskStore, node_id: str) -> TaskNode | None:
    """Look a node up, treating any store failure as "not found"."""
    loaded = store.loaded_nodes
    if loaded is not None and node_id in loaded:
        return loaded[node_id]
    try:
        return await store.get_node_by_id(node_id)
    except Exception as e:
        logger.warning("Lookup of node %s failed: %s: %s", node_id, type(e).__name__, e)
        return None


async def safe_query_tasks(store: TaskStore, tag: str) -> list[TaskNode]:
    """Batch query by tag; a failing store yields an empty batch."""
    try:
        return list(await store.query_tasks_by_tag(tag))
    except Exception as e:
        logger.error("Query for tag %r failed: %s: %s", tag, type(e).__name__, e)
        return []
