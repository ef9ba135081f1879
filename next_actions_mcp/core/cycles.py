"""Dependency cycle detection (Tarjan strongly-connected components)."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from next_actions_mcp.models.results import CycleComponent
from next_actions_mcp.models.task import TaskSnapshot


@dataclass
class CycleContext:
    """Component id per task and size per component."""

    component_by_task: dict[str, int] = field(default_factory=dict)
    component_size: dict[int, int] = field(default_factory=dict)

    def in_same_cycle(self, source_id: str, target_id: str) -> bool:
        """True when the edge source -> target lies inside a genuine cycle."""
        source_component = self.component_by_task.get(source_id)
        target_component = self.component_by_task.get(target_id)
        if source_component is None or target_component is None:
            return False
        if source_component != target_component:
            return False
        return self.component_size.get(source_component, 0) > 1

    def cycles(self) -> list[CycleComponent]:
        """Components with more than one member, members in insertion order."""
        members: dict[int, list[str]] = {}
        for task_id, component_id in self.component_by_task.items():
            if self.component_size.get(component_id, 0) > 1:
                members.setdefault(component_id, []).append(task_id)
        return [CycleComponent(component_id=cid, task_ids=ids) for cid, ids in sorted(members.items())]


def build_dependency_adjacency(snapshot: TaskSnapshot) -> dict[str, list[str]]:
    """
    Build taskId -> [dependencyTaskId, ...] from resolved dependency refs.

    Edges are deduplicated; self-edges and unresolved targets are dropped.
    """
    adjacency: dict[str, list[str]] = {}
    for task_id, record in snapshot.tasks.items():
        edges: list[str] = []
        for ref in record.depends_on:
            target = ref.target_id
            if target is None or target == task_id or target not in snapshot.tasks:
                continue
            if target not in edges:
                edges.append(target)
        adjacency[task_id] = edges
    return adjacency


def find_strongly_connected_components(adjacency: Mapping[str, Iterable[str]]) -> CycleContext:
    """
    Run Tarjan's algorithm over the adjacency map.

    Iterative to bound stack depth on long dependency chains. Every node,
    including targets that only appear as neighbors, ends up in exactly one
    component. Runs in O(V + E).
    """
    index_by_node: dict[str, int] = {}
    low_by_node: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    context = CycleContext()
    next_index = 0
    next_component = 0

    for root in adjacency:
        if root in index_by_node:
            continue

        index_by_node[root] = low_by_node[root] = next_index
        next_index += 1
        stack.append(root)
        on_stack.add(root)
        work: list[tuple[str, list[str], int]] = [(root, list(adjacency.get(root, ())), 0)]

        while work:
            node, neighbors, position = work[-1]

            if position < len(neighbors):
                work[-1] = (node, neighbors, position + 1)
                neighbor = neighbors[position]
                if neighbor not in index_by_node:
                    index_by_node[neighbor] = low_by_node[neighbor] = next_index
                    next_index += 1
                    stack.append(neighbor)
                    on_stack.add(neighbor)
                    work.append((neighbor, list(adjacency.get(neighbor, ())), 0))
                elif neighbor in on_stack:
                    low_by_node[node] = min(low_by_node[node], index_by_node[neighbor])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low_by_node[parent] = min(low_by_node[parent], low_by_node[node])

            if low_by_node[node] != index_by_node[node]:
                continue

            size = 0
            while stack:
                member = stack.pop()
                on_stack.discard(member)
                context.component_by_task[member] = next_component
                size += 1
                if member == node:
                    break
            context.component_size[next_component] = size
            next_component += 1

    return context


def build_cycle_context(snapshot: TaskSnapshot) -> CycleContext:
    return find_strongly_connected_components(build_dependency_adjacency(snapshot))
