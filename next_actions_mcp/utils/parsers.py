"""Parser helpers for raw store nodes."""

from typing import Any

from next_actions_mcp.models.task import TaskNode

_CAMEL_KEYS = {
    "parentId": "parent_id",
    "childIds": "child_ids",
    "mirrorOf": "mirror_of",
    "createdAt": "created_at",
    "modifiedAt": "modified_at",
}


def _parse_node(node_dict: dict[str, Any]) -> TaskNode:
    """
    Parse a raw node dictionary into a TaskNode.

    Accepts both snake_case keys and the camelCase keys used by outline
    stores (`parentId`, `childIds`, `mirrorOf`, `createdAt`, `modifiedAt`).
    Numeric ids are turned into strings.

    Args:
        node_dict: Raw node as exported by the host store

    Returns:
        TaskNode instance with validated data
    """
    data = dict(node_dict)
    for camel, snake in _CAMEL_KEYS.items():
        if camel in data and snake not in data:
            data[snake] = data.pop(camel)

    for key in ("id", "parent_id", "mirror_of"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    if isinstance(data.get("child_ids"), list):
        data["child_ids"] = [str(c) for c in data["child_ids"]]
    if isinstance(data.get("refs"), list):
        data["refs"] = [_normalize_ref(r) for r in data["refs"]]

    return TaskNode.model_validate(data)


def _parse_nodes(nodes: list[dict[str, Any]]) -> list[TaskNode]:
    """Parse a list of raw node dictionaries."""
    return [_parse_node(n) for n in nodes]


def _normalize_ref(ref: Any) -> Any:
    if not isinstance(ref, dict):
        return ref
    normalized = dict(ref)
    for key in ("id", "to"):
        if normalized.get(key) is not None:
            normalized[key] = str(normalized[key])
    return normalized
