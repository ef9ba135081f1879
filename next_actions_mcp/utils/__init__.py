"""Utility functions for Next Actions MCP."""

from next_actions_mcp.utils.formatters import (
    _format_result_concise,
    _format_result_markdown,
    _format_results_concise,
    _format_results_markdown,
    _result_to_dict,
)
from next_actions_mcp.utils.parsers import _parse_node, _parse_nodes
from next_actions_mcp.utils.store import (
    InMemoryTaskStore,
    JsonSnapshotStore,
    StoreError,
    TaskStore,
    safe_get_node,
    safe_query_tasks,
)

__all__ = [
    "_parse_node",
    "_parse_nodes",
    "_format_result_concise",
    "_format_result_markdown",
    "_format_results_concise",
    "_format_results_markdown",
    "_result_to_dict",
    "TaskStore",
    "StoreError",
    "InMemoryTaskStore",
    "JsonSnapshotStore",
    "safe_get_node",
    "safe_query_tasks",
]
