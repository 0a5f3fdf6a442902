"""
Resource Allocation Graph model for the Deadlock Detection & Recovery engine.

An immutable snapshot of processes, single-instance resources, allocation
edges (resource -> process) and request edges (process -> resource).
Validation runs once, at construction; the graph offers no mutation.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from models.errors import InvalidGraphError
from models.process import Process
from models.resource import Resource


Edge = Tuple[str, str]


@dataclass(frozen=True)
class ResourceAllocationGraph:
    """
    Immutable resource allocation graph (RAG).

    Attributes:
        processes: Process identifiers, in iteration order for detection
        resources: Resource identifiers
        allocations: (resource, process) pairs - resource is held by process
        requests: (process, resource) pairs - process is waiting for resource

    Invariants:
        - identifiers are unique and never both a process and a resource
        - every edge endpoint is a declared identifier of the right kind
        - a holder never appears among the waiters of its own resource
    """
    processes: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()
    allocations: Tuple[Edge, ...] = ()
    requests: Tuple[Edge, ...] = ()

    def __post_init__(self):
        """Freeze inputs into tuples and validate the snapshot."""
        object.__setattr__(self, 'processes', _freeze_ids(self.processes, "process"))
        object.__setattr__(self, 'resources', _freeze_ids(self.resources, "resource"))
        object.__setattr__(self, 'allocations', _freeze_edges(self.allocations, "allocation"))
        object.__setattr__(self, 'requests', _freeze_edges(self.requests, "request"))
        self._validate()

    def _validate(self) -> None:
        """
        Validate identifiers and edges.

        Raises:
            InvalidGraphError: If any invariant is violated
        """
        process_ids = _unique_ids(self.processes, "process")
        resource_ids = _unique_ids(self.resources, "resource")

        overlap = process_ids & resource_ids
        if overlap:
            raise InvalidGraphError(
                f"Identifiers declared as both process and resource: {sorted(overlap)}"
            )

        for resource_id, process_id in self.allocations:
            if resource_id not in resource_ids:
                raise InvalidGraphError(
                    f"Allocation edge {resource_id} -> {process_id}: "
                    f"undeclared resource '{resource_id}'"
                )
            if process_id not in process_ids:
                raise InvalidGraphError(
                    f"Allocation edge {resource_id} -> {process_id}: "
                    f"undeclared process '{process_id}'"
                )

        for process_id, resource_id in self.requests:
            if process_id not in process_ids:
                raise InvalidGraphError(
                    f"Request edge {process_id} -> {resource_id}: "
                    f"undeclared process '{process_id}'"
                )
            if resource_id not in resource_ids:
                raise InvalidGraphError(
                    f"Request edge {process_id} -> {resource_id}: "
                    f"undeclared resource '{resource_id}'"
                )

        # Holder must not also wait on its own resource
        waiting = set(self.requests)
        for resource_id, process_id in self.allocations:
            if (process_id, resource_id) in waiting:
                raise InvalidGraphError(
                    f"Process '{process_id}' both holds and waits on '{resource_id}'"
                )

    @classmethod
    def from_entities(
        cls,
        processes: Iterable[Process],
        resources: Iterable[Resource]
    ) -> 'ResourceAllocationGraph':
        """
        Build a graph from Process and Resource records.

        Edges are the union of what both sides record: Resource.holder and
        Process.held give allocation edges, Process.waiting_on and
        Resource.waiters give request edges.

        Args:
            processes: Process records, in detection order
            resources: Resource records

        Returns:
            Validated ResourceAllocationGraph

        Raises:
            InvalidGraphError: If records disagree on who holds a resource,
                or if the resulting graph is invalid
        """
        processes = list(processes)
        resources = list(resources)

        holders: Dict[str, str] = {}
        allocations: List[Edge] = []

        def add_holder(resource_id: str, process_id: str) -> None:
            current = holders.get(resource_id)
            if current is None:
                holders[resource_id] = process_id
                allocations.append((resource_id, process_id))
            elif current != process_id:
                raise InvalidGraphError(
                    f"Resource '{resource_id}' held by both '{current}' and '{process_id}'"
                )

        for resource in resources:
            if resource.holder is not None:
                add_holder(resource.rid, resource.holder)
        for process in processes:
            for resource_id in sorted(process.held):
                add_holder(resource_id, process.pid)

        requests: List[Edge] = []
        seen: Set[Edge] = set()
        for process in processes:
            if process.waiting_on is not None:
                edge = (process.pid, process.waiting_on)
                if edge not in seen:
                    seen.add(edge)
                    requests.append(edge)
        for resource in resources:
            for process_id in resource.waiters:
                edge = (process_id, resource.rid)
                if edge not in seen:
                    seen.add(edge)
                    requests.append(edge)

        return cls(
            processes=tuple(p.pid for p in processes),
            resources=tuple(r.rid for r in resources),
            allocations=tuple(allocations),
            requests=tuple(requests)
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ResourceAllocationGraph':
        """
        Build a graph from a plain mapping.

        Expected keys: 'processes', 'resources', and optionally
        'allocations' ([resource, process] pairs) and 'requests'
        ([process, resource] pairs).

        Raises:
            InvalidGraphError: If required keys are missing or the graph is invalid
        """
        for key in ('processes', 'resources'):
            if key not in data:
                raise InvalidGraphError(f"Graph missing '{key}' field")

        return cls(
            processes=data['processes'],
            resources=data['resources'],
            allocations=data.get('allocations', ()),
            requests=data.get('requests', ())
        )

    def to_dict(self) -> Dict[str, List]:
        """Serialise to the plain mapping accepted by from_dict."""
        return {
            'processes': list(self.processes),
            'resources': list(self.resources),
            'allocations': [list(edge) for edge in self.allocations],
            'requests': [list(edge) for edge in self.requests],
        }

    def held_by(self, process_id: str) -> Tuple[str, ...]:
        """Resources held by a process, in allocation-edge order."""
        return tuple(r for r, p in self.allocations if p == process_id)

    def waiting_for(self, process_id: str) -> Tuple[str, ...]:
        """Resources a process is waiting for, in request-edge order."""
        return tuple(r for p, r in self.requests if p == process_id)

    def holder_of(self, resource_id: str) -> Optional[str]:
        """Process holding a resource, or None if it is free."""
        return next((p for r, p in self.allocations if r == resource_id), None)

    def waiters_of(self, resource_id: str) -> Tuple[str, ...]:
        """Processes waiting for a resource, in request order."""
        return tuple(p for p, r in self.requests if r == resource_id)

    def allocation_map(self) -> Dict[str, Tuple[str, ...]]:
        """
        Map every process to the resources it holds.

        This is the allocation view consumed by the recovery planner.
        """
        allocation: Dict[str, List[str]] = {pid: [] for pid in self.processes}
        for resource_id, process_id in self.allocations:
            allocation[process_id].append(resource_id)
        return {pid: tuple(held) for pid, held in allocation.items()}

    def without_process(self, process_id: str) -> 'ResourceAllocationGraph':
        """
        Return a copy of the graph with a process and all its edges removed.

        Raises:
            InvalidGraphError: If the process is not declared
        """
        if process_id not in self.processes:
            raise InvalidGraphError(f"Unknown process '{process_id}'")

        return ResourceAllocationGraph(
            processes=tuple(p for p in self.processes if p != process_id),
            resources=self.resources,
            allocations=tuple(e for e in self.allocations if e[1] != process_id),
            requests=tuple(e for e in self.requests if e[0] != process_id)
        )

    @property
    def num_processes(self) -> int:
        """Number of processes in the graph."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of resources in the graph."""
        return len(self.resources)


def _freeze_ids(ids: Iterable, kind: str) -> Tuple[str, ...]:
    """Convert an iterable of identifiers into a tuple of strings."""
    if isinstance(ids, str):
        raise InvalidGraphError(f"Expected a collection of {kind} identifiers, got string {ids!r}")
    try:
        frozen = tuple(ids)
    except TypeError:
        raise InvalidGraphError(f"Expected a collection of {kind} identifiers, got {ids!r}")
    for identifier in frozen:
        if not isinstance(identifier, str):
            raise InvalidGraphError(f"{kind.capitalize()} identifier must be a string: {identifier!r}")
    return frozen


def _freeze_edges(edges: Iterable, kind: str) -> Tuple[Edge, ...]:
    """Convert an iterable of pairs into a tuple of string 2-tuples."""
    if isinstance(edges, str):
        raise InvalidGraphError(f"Expected a collection of {kind} edges, got string {edges!r}")
    frozen = []
    for edge in edges:
        if isinstance(edge, str) or not isinstance(edge, Iterable):
            raise InvalidGraphError(f"Malformed {kind} edge: {edge!r}")
        pair = tuple(edge)
        if len(pair) != 2 or not all(isinstance(end, str) for end in pair):
            raise InvalidGraphError(f"Malformed {kind} edge: {edge!r}")
        frozen.append(pair)
    return tuple(frozen)


def _unique_ids(ids: Tuple[str, ...], kind: str) -> Set[str]:
    """Return ids as a set, rejecting empty or duplicate identifiers."""
    unique: Set[str] = set()
    for identifier in ids:
        if not identifier:
            raise InvalidGraphError(f"Empty {kind} identifier")
        if identifier in unique:
            raise InvalidGraphError(f"Duplicate {kind} identifier '{identifier}'")
        unique.add(identifier)
    return unique
