"""
Deadlock Detection Algorithm for the Deadlock Detection & Recovery engine.

Implements cycle-based deadlock detection over a resource allocation graph
for single-instance resources.
"""

from typing import Any, Dict, List, Mapping, Set, Tuple, Union

from models.graph import ResourceAllocationGraph


Cycle = Tuple[str, ...]
GraphInput = Union[ResourceAllocationGraph, Mapping[str, Any]]


def build_adjacency(graph: ResourceAllocationGraph) -> Dict[str, List[str]]:
    """
    Build the combined directed adjacency over processes and resources.

    Allocation edge (resource -> process) and request edge
    (process -> resource) both become directed edges. Neighbour order
    follows edge order in the graph.

    Args:
        graph: Validated resource allocation graph

    Returns:
        Dict mapping every node to its successors
    """
    adjacency: Dict[str, List[str]] = {node: [] for node in graph.processes}
    for node in graph.resources:
        adjacency[node] = []

    for resource_id, process_id in graph.allocations:
        adjacency[resource_id].append(process_id)

    for process_id, resource_id in graph.requests:
        adjacency[process_id].append(resource_id)

    return adjacency


def detect_cycles(graph: GraphInput) -> List[Cycle]:
    """
    Find circular-wait chains among processes.

    Algorithm (Single-Instance Resources):
    1. Build combined adjacency: resource -> holder, process -> awaited resource
    2. Depth-first search from every unvisited process, in graph order
    3. An edge to a node already on the exploration path closes a cycle
    4. Keep only process ids of the closed sub-path, in path order
    5. Report it if it names at least two distinct processes

    The DFS is iterative: the stack holds (node, next-neighbour index)
    frames and a single path buffer is popped on backtrack, so long wait
    chains never hit the interpreter's recursion limit.

    Time Complexity: O(V + E), plus the size of each reported cycle

    Four Deadlock Conditions Manifested:
    - Mutual Exclusion: Each resource has a single holder
    - Hold and Wait: A process on the cycle holds one resource, awaits another
    - No Preemption: Only recovery breaks an allocation edge
    - Circular Wait: The reported cycle itself

    Args:
        graph: Resource allocation graph, or a mapping with 'processes',
            'resources', 'allocations' and 'requests' keys

    Returns:
        List of cycles, each a tuple of process ids in discovery order

    Raises:
        InvalidGraphError: If the graph fails validation

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.6: Deadlock Detection.
    """
    if not isinstance(graph, ResourceAllocationGraph):
        graph = ResourceAllocationGraph.from_dict(graph)

    adjacency = build_adjacency(graph)
    process_ids = set(graph.processes)

    cycles: List[Cycle] = []
    visited: Set[str] = set()
    path: List[str] = []
    # Position of each on-path node within path
    on_path: Dict[str, int] = {}

    for start in graph.processes:
        if start in visited:
            continue

        visited.add(start)
        on_path[start] = len(path)
        path.append(start)
        stack = [(start, 0)]

        while stack:
            node, index = stack[-1]
            neighbours = adjacency[node]

            if index < len(neighbours):
                stack[-1] = (node, index + 1)
                neighbour = neighbours[index]

                if neighbour in on_path:
                    cycle = tuple(n for n in path[on_path[neighbour]:] if n in process_ids)
                    if len(set(cycle)) >= 2:
                        cycles.append(cycle)
                elif neighbour not in visited:
                    visited.add(neighbour)
                    on_path[neighbour] = len(path)
                    path.append(neighbour)
                    stack.append((neighbour, 0))
            else:
                # All neighbours explored - backtrack
                stack.pop()
                path.pop()
                del on_path[node]

    return cycles


def has_deadlock(graph: GraphInput) -> bool:
    """
    Check whether any circular wait exists.

    Args:
        graph: Resource allocation graph (or equivalent mapping)

    Returns:
        True if detect_cycles reports at least one cycle
    """
    return len(detect_cycles(graph)) > 0


def deadlocked_processes(cycles: List[Cycle]) -> List[str]:
    """
    Flatten cycles into the distinct process ids they involve.

    Args:
        cycles: Output of detect_cycles

    Returns:
        Process ids in first-seen order
    """
    seen = []
    for cycle in cycles:
        for pid in cycle:
            if pid not in seen:
                seen.append(pid)
    return seen
