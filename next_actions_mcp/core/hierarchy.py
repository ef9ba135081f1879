"""Parent/child task hierarchy: open-subtask and ancestor walks."""

from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.models.task import TaskSnapshot


@dataclass
class HierarchyIndex:
    """Nearest task parent and direct task children per task."""

    parent_by_task: dict[str, str | None] = field(default_factory=dict)
    children_by_task: dict[str, list[str]] = field(default_factory=dict)
    status_by_task: dict[str, str] = field(default_factory=dict)

    def children(self, task_id: str) -> list[str]:
        return self.children_by_task.get(task_id, [])

    def parent(self, task_id: str) -> str | None:
        return self.parent_by_task.get(task_id)

    def iter_ancestors(self, task_id: str) -> Iterator[str]:
        """Yield ancestors nearest first; stops on a revisit (corrupted chains)."""
        visited = {task_id}
        ancestor = self.parent(task_id)
        while ancestor is not None and ancestor not in visited:
            visited.add(ancestor)
            yield ancestor
            ancestor = self.parent(ancestor)

    def iter_descendants(self, task_id: str) -> Iterator[str]:
        """Breadth-first walk of all transitive task children."""
        queue = deque(self.children(task_id))
        visited = {task_id}
        while queue:
            child_id = queue.popleft()
            if child_id in visited:
                continue
            visited.add(child_id)
            yield child_id
            queue.extend(c for c in self.children(child_id) if c not in visited)

    def has_open_subtask(self, task_id: str, schema: TaskSchema) -> bool:
        """True if any descendant is neither done nor canceled."""
        for child_id in self.iter_descendants(task_id):
            status = self.status_by_task.get(child_id)
            if status is not None and not schema.is_terminal(status):
                return True
        return False

    def any_ancestor(self, task_id: str, predicate: Callable[[str], bool]) -> bool:
        return any(predicate(ancestor) for ancestor in self.iter_ancestors(task_id))


def build_hierarchy_index(snapshot: TaskSnapshot) -> HierarchyIndex:
    """
    Index the snapshot hierarchy.

    Parents come from each record's resolved `parent_id`; children are the
    inverse of that map restricted to known tasks, in snapshot order. A task
    is never its own parent or child.
    """
    index = HierarchyIndex()

    for task_id, record in snapshot.tasks.items():
        index.status_by_task[task_id] = record.status
        index.children_by_task[task_id] = []

    for task_id, record in snapshot.tasks.items():
        parent_id = record.parent_id
        if parent_id is None or parent_id == task_id or parent_id not in snapshot.tasks:
            index.parent_by_task[task_id] = None
            continue
        index.parent_by_task[task_id] = parent_id
        siblings = index.children_by_task[parent_id]
        if task_id not in siblings:
            siblings.append(task_id)

    return index
