"""
Graph traversals over a built dependency graph.

All traversals are iterative with explicit stacks so that a long dependency
chain cannot exhaust the interpreter's recursion limit.
"""
from typing import Dict, FrozenSet, Iterable, List, Sequence, Set, Tuple

from third_party_audit.features.third_party.schemas.graph import DependencyEdge, DependencyGraph, EdgeType

# Edges that express "loads before / needs"; conflicts and fallbacks are not ordering constraints
ORDERING_EDGE_TYPES = frozenset({EdgeType.required.value, EdgeType.optional.value, EdgeType.enhancing.value})


def build_adjacency(
    node_ids: Sequence[str],
    edges: Iterable[DependencyEdge],
    edge_types: FrozenSet[str] = ORDERING_EDGE_TYPES,
) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for edge in edges:
        if edge.type not in edge_types:
            continue
        if edge.source in adjacency and edge.target in adjacency and edge.target not in adjacency[edge.source]:
            adjacency[edge.source].append(edge.target)
    return adjacency


def canonical_cycle(cycle: Sequence[str]) -> Tuple[str, ...]:
    """Rotate a cycle so it starts at its smallest node id."""
    start = cycle.index(min(cycle))
    return tuple(cycle[start:]) + tuple(cycle[:start])


def weakly_connected_components(node_ids: Sequence[str], edges: Iterable[DependencyEdge]) -> List[List[str]]:
    """Components of the undirected edge graph, each listed in node order."""
    parent = {node_id: node_id for node_id in node_ids}

    def find(node_id: str) -> str:
        root = node_id
        while parent[root] != root:
            root = parent[root]
        while parent[node_id] != root:
            parent[node_id], node_id = root, parent[node_id]
        return root

    for edge in edges:
        if edge.source in parent and edge.target in parent:
            a, b = find(edge.source), find(edge.target)
            if a != b:
                parent[b] = a

    components: Dict[str, List[str]] = {}
    for node_id in node_ids:
        components.setdefault(find(node_id), []).append(node_id)
    return list(components.values())


class GraphAnalyzer:
    def __init__(self, edge_types: FrozenSet[str] = ORDERING_EDGE_TYPES):
        self.edge_types = edge_types

    def find_cycles(self, graph: DependencyGraph) -> List[List[str]]:
        """
        Depth-first search from every unvisited node.

        A node is expanded at most once across all roots. Reaching a node
        that is on the current path records the path slice from that node
        as a cycle; cycles are rotated to their smallest id and deduplicated.
        """
        adjacency = build_adjacency(graph.node_ids(), graph.edges, self.edge_types)
        visited: Set[str] = set()
        seen: Set[Tuple[str, ...]] = set()
        cycles: List[List[str]] = []

        for root in adjacency:
            if root in visited:
                continue
            visited.add(root)
            path = [root]
            on_path = {root: 0}
            stack = [(root, iter(adjacency[root]))]

            while stack:
                node, neighbors = stack[-1]
                advanced = False
                for neighbor in neighbors:
                    if neighbor in on_path:
                        cycle = canonical_cycle(path[on_path[neighbor]:])
                        if cycle not in seen:
                            seen.add(cycle)
                            cycles.append(list(cycle))
                        continue
                    if neighbor in visited:
                        continue
                    visited.add(neighbor)
                    on_path[neighbor] = len(path)
                    path.append(neighbor)
                    stack.append((neighbor, iter(adjacency[neighbor])))
                    advanced = True
                    break
                if not advanced:
                    stack.pop()
                    path.pop()
                    del on_path[node]

        return cycles

    @staticmethod
    def cycle_severity(cycles: Sequence[Sequence[str]]) -> str:
        if not cycles:
            return "none"
        if len(cycles) == 1 and len(cycles[0]) <= 2:
            return "low"
        if len(cycles) <= 2:
            return "medium"
        return "high"

    def detect_circular_dependencies(self, graph: DependencyGraph) -> Dict[str, object]:
        cycles = self.find_cycles(graph)
        names = {node.id: node.name for node in graph.nodes}
        recommendations = []
        if cycles:
            recommendations.append({
                "type": "break_circular_dependencies",
                "priority": "high",
                "title": "Break circular dependencies",
                "description": f"Found {len(cycles)} circular dependencies between third-party services",
                "action": "Load one side of each cycle lazily or remove the redundant dependency",
                "cycles": [[names.get(node_id, node_id) for node_id in cycle] for cycle in cycles],
            })
        return {
            "detected": bool(cycles),
            "count": len(cycles),
            "cycles": cycles,
            "severity": self.cycle_severity(cycles),
            "recommendations": recommendations,
        }

    def strongly_connected_components(self, graph: DependencyGraph) -> List[List[str]]:
        """Tarjan's algorithm without recursion. Advisory only; cycles come from `find_cycles`."""
        adjacency = build_adjacency(graph.node_ids(), graph.edges, self.edge_types)
        index: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        on_stack: Set[str] = set()
        stack: List[str] = []
        components: List[List[str]] = []
        counter = 0

        for root in adjacency:
            if root in index:
                continue
            work = [(root, iter(adjacency[root]))]
            index[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)

            while work:
                node, neighbors = work[-1]
                descended = False
                for neighbor in neighbors:
                    if neighbor not in index:
                        index[neighbor] = lowlink[neighbor] = counter
                        counter += 1
                        stack.append(neighbor)
                        on_stack.add(neighbor)
                        work.append((neighbor, iter(adjacency[neighbor])))
                        descended = True
                        break
                    if neighbor in on_stack:
                        lowlink[node] = min(lowlink[node], index[neighbor])
                if descended:
                    continue

                work.pop()
                if work:
                    caller = work[-1][0]
                    lowlink[caller] = min(lowlink[caller], lowlink[node])
                if lowlink[node] == index[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(sorted(component))

        return components
