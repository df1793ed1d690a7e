"""Prerequisite graph (DAG) for plan steps - pure, no I/O.

Edges point from prerequisite to dependent: an edge a -> b means b cannot
start until a is completed. Every mutation is validated before it is applied,
so a rejected mutation leaves the graph exactly as it was.
"""

import copy
import heapq
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def _short(node_id: str) -> str:
    return node_id[:8]


class PlanGraphError(Exception):
    """Raised when a graph mutation or structure is invalid."""

    pass


class CycleDetectedError(PlanGraphError):
    def __init__(self, path: list[str]):
        self.path = path
        super().__init__(
            "Cycle detected in dependency graph: " + " → ".join(_short(n) for n in path)
        )


class OrphanEdgeError(PlanGraphError):
    def __init__(self, edge: "PlanEdge"):
        self.edge = edge
        super().__init__(
            f"Edge references non-existent node(s): {_short(edge.from_node_id)} → {_short(edge.to_node_id)}"
        )


class DuplicateEdgeError(PlanGraphError):
    def __init__(self, edge: "PlanEdge"):
        self.edge = edge
        super().__init__(f"Duplicate edge: {_short(edge.from_node_id)} → {_short(edge.to_node_id)}")


class DuplicateNodeIdError(PlanGraphError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node ID: {_short(node_id)}")


class SelfLoopError(PlanGraphError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Self-loop detected: node {_short(node_id)} depends on itself")


class InvalidNodeReferenceError(PlanGraphError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Invalid node reference: {_short(node_id)}")


class NodeType(str, Enum):
    TASK = "task"
    READING = "reading"
    PRACTICE = "practice"
    REVIEW = "review"
    RESEARCH = "research"
    WRITING = "writing"
    PREPARATION = "preparation"
    EXAM = "exam"
    QUIZ = "quiz"
    LAB = "lab"


@dataclass
class NodeMetadata:
    notes: str | None = None
    priority: int | None = None  # 1 = highest
    tags: list[str] = field(default_factory=list)
    recommended_start: datetime | None = None
    due_by: datetime | None = None


@dataclass
class PlanNode:
    """A step in a plan. sort_index breaks ordering ties deterministically."""

    id: str
    title: str
    assignment_id: str | None = None
    node_type: NodeType = NodeType.TASK
    sort_index: int = 0
    estimated_minutes: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)

    def is_overdue(self, as_of: datetime) -> bool:
        due_by = self.metadata.due_by
        return due_by is not None and not self.is_completed and as_of > due_by

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "assignment_id": self.assignment_id,
            "node_type": self.node_type.value,
            "sort_index": self.sort_index,
            "estimated_minutes": self.estimated_minutes,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class EdgeMetadata:
    is_hard: bool = True  # hard dependency vs. recommended ordering
    reason: str | None = None


@dataclass
class PlanEdge:
    """from_node_id is the prerequisite, to_node_id the dependent."""

    from_node_id: str
    to_node_id: str
    metadata: EdgeMetadata = field(default_factory=EdgeMetadata)

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_node_id, self.to_node_id)


@dataclass
class PlanGraphMetadata:
    name: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    last_modified: datetime | None = None
    version: int = 1


@dataclass
class GraphStatistics:
    total_nodes: int
    completed_nodes: int
    total_edges: int
    root_node_count: int
    leaf_node_count: int
    longest_path: int
    estimated_total_minutes: int

    @property
    def completion_percentage(self) -> float:
        if self.total_nodes == 0:
            return 0.0
        return self.completed_nodes / self.total_nodes * 100


@dataclass
class PlanGraph:
    """Directed acyclic graph of plan steps."""

    id: str
    nodes: list[PlanNode] = field(default_factory=list)
    edges: list[PlanEdge] = field(default_factory=list)
    metadata: PlanGraphMetadata = field(default_factory=PlanGraphMetadata)

    # ============== Validation ==============

    def validate(self) -> list[PlanGraphError]:
        """Every structural problem in the graph; empty when valid."""
        errors: list[PlanGraphError] = []

        seen: set[str] = set()
        reported: set[str] = set()
        for node in self.nodes:
            if node.id in seen and node.id not in reported:
                errors.append(DuplicateNodeIdError(node.id))
                reported.add(node.id)
            seen.add(node.id)

        for edge in self.edges:
            if edge.from_node_id not in seen or edge.to_node_id not in seen:
                errors.append(OrphanEdgeError(edge))

        for edge in self.edges:
            if edge.from_node_id == edge.to_node_id:
                errors.append(SelfLoopError(edge.from_node_id))

        edge_keys: set[tuple[str, str]] = set()
        duplicate_keys: set[tuple[str, str]] = set()
        for edge in self.edges:
            if edge.key in edge_keys and edge.key not in duplicate_keys:
                errors.append(DuplicateEdgeError(edge))
                duplicate_keys.add(edge.key)
            edge_keys.add(edge.key)

        cycle = self.detect_cycle()
        if cycle is not None:
            errors.append(CycleDetectedError(cycle))

        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validate()

    def _adjacency(self) -> dict[str, list[str]]:
        adjacency: dict[str, list[str]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            adjacency.setdefault(edge.from_node_id, []).append(edge.to_node_id)
        return adjacency

    def detect_cycle(self) -> list[str] | None:
        """
        Find a cycle with depth-first search.

        Restarts from every unvisited node so disconnected components are
        covered. Returns the node ids along the first cycle found, starting
        and ending with the same id, or None.
        """
        adjacency = self._adjacency()
        visited: set[str] = set()

        for root in self.nodes:
            if root.id in visited:
                continue

            # Explicit recursion stack: the current path and each frame's next child
            path = [root.id]
            on_stack = {root.id}
            frames = [iter(adjacency.get(root.id, []))]
            visited.add(root.id)

            while frames:
                child = next(frames[-1], None)
                if child is None:
                    frames.pop()
                    on_stack.discard(path.pop())
                    continue
                if child in on_stack:
                    return path[path.index(child):] + [child]
                if child in visited:
                    continue
                visited.add(child)
                on_stack.add(child)
                path.append(child)
                frames.append(iter(adjacency.get(child, [])))

        return None

    def topological_sort(self) -> list[PlanNode] | None:
        """
        Order nodes so every prerequisite precedes its dependents.

        Kahn's algorithm; among ready nodes the lowest sort_index goes first,
        then original insertion order. Returns None when a cycle exists.
        """
        position = {node.id: i for i, node in enumerate(self.nodes)}
        by_id = {node.id: node for node in self.nodes}
        in_degree = {node.id: 0 for node in self.nodes}
        adjacency = self._adjacency()
        for edge in self.edges:
            if edge.to_node_id in in_degree:
                in_degree[edge.to_node_id] += 1

        ready = [
            (node.sort_index, position[node.id], node.id)
            for node in self.nodes
            if in_degree[node.id] == 0
        ]
        heapq.heapify(ready)

        result = []
        while ready:
            _, _, node_id = heapq.heappop(ready)
            result.append(by_id[node_id])
            for neighbor in adjacency.get(node_id, []):
                if neighbor not in in_degree:
                    continue
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    heapq.heappush(ready, (by_id[neighbor].sort_index, position[neighbor], neighbor))

        return result if len(result) == len(self.nodes) else None

    # ============== Queries ==============

    def get_node(self, node_id: str) -> PlanNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_node_for_task(self, task_id: str) -> PlanNode | None:
        """First node that refers back to the given task."""
        for node in self.nodes:
            if node.assignment_id == task_id:
                return node
        return None

    def get_prerequisites(self, node_id: str) -> list[PlanNode]:
        """Nodes that must complete before this one."""
        prereq_ids = {e.from_node_id for e in self.edges if e.to_node_id == node_id}
        return [n for n in self.nodes if n.id in prereq_ids]

    def get_dependents(self, node_id: str) -> list[PlanNode]:
        """Nodes that wait on this one."""
        dependent_ids = {e.to_node_id for e in self.edges if e.from_node_id == node_id}
        return [n for n in self.nodes if n.id in dependent_ids]

    def is_node_blocked(self, node_id: str) -> bool:
        return any(not p.is_completed for p in self.get_prerequisites(node_id))

    def get_unblocked_nodes(self) -> list[PlanNode]:
        """Nodes with no incomplete prerequisite, completed ones included."""
        return [n for n in self.nodes if not self.is_node_blocked(n.id)]

    def get_root_nodes(self) -> list[PlanNode]:
        with_prereqs = {e.to_node_id for e in self.edges}
        return [n for n in self.nodes if n.id not in with_prereqs]

    def get_leaf_nodes(self) -> list[PlanNode]:
        with_dependents = {e.from_node_id for e in self.edges}
        return [n for n in self.nodes if n.id not in with_dependents]

    def has_edge(self, from_node_id: str, to_node_id: str) -> bool:
        return any(e.key == (from_node_id, to_node_id) for e in self.edges)

    # ============== Mutations ==============

    def _touch(self) -> None:
        self.metadata.version += 1

    def add_node(self, node: PlanNode) -> None:
        if self.get_node(node.id) is not None:
            raise DuplicateNodeIdError(node.id)
        self.nodes.append(node)
        self._touch()

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it."""
        before = len(self.nodes)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [
            e for e in self.edges if e.from_node_id != node_id and e.to_node_id != node_id
        ]
        if len(self.nodes) != before:
            self._touch()

    def add_edge(
        self,
        from_node_id: str,
        to_node_id: str,
        metadata: EdgeMetadata | None = None,
    ) -> PlanEdge:
        """
        Add a dependency: to_node_id waits on from_node_id.

        Raises a PlanGraphError subclass and leaves the graph untouched when
        the edge is a self loop, references a missing node, already exists,
        or would close a cycle.
        """
        if from_node_id == to_node_id:
            raise SelfLoopError(from_node_id)
        if self.get_node(from_node_id) is None:
            raise InvalidNodeReferenceError(from_node_id)
        if self.get_node(to_node_id) is None:
            raise InvalidNodeReferenceError(to_node_id)

        edge = PlanEdge(from_node_id, to_node_id, metadata or EdgeMetadata())
        if self.has_edge(from_node_id, to_node_id):
            raise DuplicateEdgeError(edge)

        trial = PlanGraph(id=self.id, nodes=self.nodes, edges=self.edges + [edge])
        cycle = trial.detect_cycle()
        if cycle is not None:
            raise CycleDetectedError(cycle)

        self.edges.append(edge)
        self._touch()
        return edge

    def remove_edge(self, from_node_id: str, to_node_id: str) -> None:
        before = len(self.edges)
        self.edges = [e for e in self.edges if e.key != (from_node_id, to_node_id)]
        if len(self.edges) != before:
            self._touch()

    def mark_node_completed(self, node_id: str, at: datetime) -> None:
        node = self.get_node(node_id)
        if node is None:
            return
        node.is_completed = True
        node.completed_at = at
        self.metadata.last_modified = at
        self._touch()

    def mark_node_incomplete(self, node_id: str) -> None:
        node = self.get_node(node_id)
        if node is None:
            return
        node.is_completed = False
        node.completed_at = None
        self._touch()

    def copy(self) -> "PlanGraph":
        return copy.deepcopy(self)

    # ============== Statistics ==============

    def longest_path(self) -> int:
        """Edge count of the critical path; 0 when the graph has a cycle."""
        ordered = self.topological_sort()
        if ordered is None:
            return 0
        adjacency = self._adjacency()
        distances = {node.id: 0 for node in self.nodes}
        for node in ordered:
            for neighbor in adjacency.get(node.id, []):
                if neighbor in distances:
                    distances[neighbor] = max(distances[neighbor], distances[node.id] + 1)
        return max(distances.values(), default=0)

    def get_statistics(self) -> GraphStatistics:
        return GraphStatistics(
            total_nodes=len(self.nodes),
            completed_nodes=sum(1 for n in self.nodes if n.is_completed),
            total_edges=len(self.edges),
            root_node_count=len(self.get_root_nodes()),
            leaf_node_count=len(self.get_leaf_nodes()),
            longest_path=self.longest_path(),
            estimated_total_minutes=sum(n.estimated_minutes for n in self.nodes),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "version": self.metadata.version,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [{"from": e.from_node_id, "to": e.to_node_id} for e in self.edges],
        }
