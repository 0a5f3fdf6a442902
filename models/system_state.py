"""
System State model for the Deadlock Detection & Recovery engine.

Caller-side owned state: the live graph of processes and single-instance
resources (SystemState) and the multi-instance count matrices (MatrixState).
These objects are mutated by the caller; the detection algorithms only ever
see the immutable snapshots they hand out.
"""

import numpy as np
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from algorithms.safety import validate_state
from models.graph import ResourceAllocationGraph
from models.process import Process
from models.resource import Resource


@dataclass
class SystemState:
    """
    Live resource allocation state owned by the caller.

    Attributes:
        processes: Process records keyed by PID (insertion order preserved)
        resources: Resource records keyed by resource id
    """
    processes: Dict[str, Process] = field(default_factory=dict)
    resources: Dict[str, Resource] = field(default_factory=dict)

    @property
    def num_processes(self) -> int:
        """Number of processes in the system."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of resources in the system."""
        return len(self.resources)

    def add_process(self, pid: str, priority: int = 0) -> None:
        """
        Add a process holding nothing. No-op if the PID already exists.

        Raises:
            ValueError: If pid is empty
        """
        if not pid:
            raise ValueError("Process id must be a non-empty string")
        if pid not in self.processes:
            self.processes[pid] = Process(pid=pid, priority=priority)

    def add_resource(self, rid: str) -> None:
        """
        Add a free resource. No-op if the id already exists.

        Raises:
            ValueError: If rid is empty
        """
        if not rid:
            raise ValueError("Resource id must be a non-empty string")
        if rid not in self.resources:
            self.resources[rid] = Resource(rid=rid)

    def allocate(self, pid: str, rid: str) -> None:
        """
        Give a resource to a process.

        Clears the process's wait on the resource and removes it from the
        resource's waiters.

        Raises:
            ValueError: If either id is unknown or the resource is held by
                another process
        """
        process = self._get_process(pid)
        resource = self._get_resource(rid)

        if resource.holder is not None and resource.holder != pid:
            raise ValueError(
                f"{pid}: Cannot allocate {rid} - already held by {resource.holder}"
            )

        waiting_on = None if process.waiting_on == rid else process.waiting_on
        self.processes[pid] = replace(process, held=process.held | {rid}, waiting_on=waiting_on)
        self.resources[rid] = replace(
            resource,
            holder=pid,
            waiters=tuple(w for w in resource.waiters if w != pid)
        )

    def request(self, pid: str, rid: str) -> None:
        """
        Make a process wait on a resource.

        A process waits on at most one resource: a previous pending request
        is withdrawn first.

        Raises:
            ValueError: If either id is unknown or the process already holds
                the resource
        """
        process = self._get_process(pid)
        resource = self._get_resource(rid)

        if process.holds(rid):
            raise ValueError(f"{pid}: Cannot request {rid} - already holding it")

        if process.waiting_on is not None and process.waiting_on != rid:
            self._withdraw_wait(pid, process.waiting_on)

        self.processes[pid] = replace(process, waiting_on=rid)
        if pid not in resource.waiters:
            self.resources[rid] = replace(resource, waiters=resource.waiters + (pid,))

    def release(self, pid: str, rid: str) -> None:
        """
        Release a resource held by a process.

        Raises:
            ValueError: If either id is unknown or the process does not hold
                the resource
        """
        process = self._get_process(pid)
        resource = self._get_resource(rid)

        if not process.holds(rid):
            raise ValueError(f"{pid}: Cannot release {rid} - not holding it")

        self.processes[pid] = replace(process, held=process.held - {rid})
        if resource.holder == pid:
            self.resources[rid] = replace(resource, holder=None)

    def terminate(self, pid: str) -> List[str]:
        """
        Remove a process and all of its edges from the system.

        Returns:
            Resource ids released by the termination, sorted

        Raises:
            ValueError: If the process is unknown
        """
        process = self._get_process(pid)
        released = sorted(process.held)

        for rid, resource in list(self.resources.items()):
            holder = None if resource.holder == pid else resource.holder
            waiters = tuple(w for w in resource.waiters if w != pid)
            if holder != resource.holder or waiters != resource.waiters:
                self.resources[rid] = replace(resource, holder=holder, waiters=waiters)

        del self.processes[pid]
        return released

    def preempt(self, pid: str, rid: str) -> None:
        """
        Forcibly reclaim a resource from a process.

        The process stays in the system with its pending request untouched;
        the reclaimed resource becomes free.

        Raises:
            ValueError: If the process does not hold the resource
        """
        self.release(pid, rid)

    def apply_termination(self, pid: str) -> List[str]:
        """Apply a termination planned by the recovery planner."""
        return self.terminate(pid)

    def apply_preemption(self, action: Tuple[str, str]) -> None:
        """Apply a (process_id, resource_id) preemption planned by the recovery planner."""
        pid, rid = action
        self.preempt(pid, rid)

    def snapshot(self) -> ResourceAllocationGraph:
        """Take an immutable, validated snapshot of the current graph."""
        return ResourceAllocationGraph.from_entities(
            self.processes.values(),
            self.resources.values()
        )

    def priorities(self) -> Dict[str, int]:
        """Priority of each process, keyed by PID."""
        return {pid: p.priority for pid, p in self.processes.items()}

    def _withdraw_wait(self, pid: str, rid: str) -> None:
        """Remove pid from the waiters of rid."""
        resource = self.resources.get(rid)
        if resource is not None:
            self.resources[rid] = replace(
                resource,
                waiters=tuple(w for w in resource.waiters if w != pid)
            )

    def _get_process(self, pid: str) -> Process:
        if pid not in self.processes:
            raise ValueError(f"Process {pid} not found")
        return self.processes[pid]

    def _get_resource(self, rid: str) -> Resource:
        if rid not in self.resources:
            raise ValueError(f"Resource {rid} not found")
        return self.resources[rid]

    def display(self) -> str:
        """
        Generate readable string representation of system state.

        Returns:
            Formatted string listing processes and resources
        """
        output = []
        output.append("\n" + "="*60)
        output.append("SYSTEM STATE")
        output.append("="*60)

        output.append("\nProcesses:")
        for pid, process in self.processes.items():
            held = ", ".join(sorted(process.held)) or "-"
            waiting = process.waiting_on or "-"
            output.append(
                f"  {pid:6} holds [{held}]  waiting: {waiting}  (priority={process.priority})"
            )

        output.append("\nResources:")
        for rid, resource in self.resources.items():
            holder = resource.holder or "-"
            waiters = ", ".join(resource.waiters) or "-"
            output.append(f"  {rid:6} held by {holder:6} waiters: [{waiters}]")

        output.append("\n" + "="*60)
        return "\n".join(output)


@dataclass
class MatrixState:
    """
    Multi-instance resource state for Banker's-style detection.

    Attributes:
        process_ids: Row labels, one per process
        resource_ids: Column labels, one per resource type
        available: [R] Free instances by resource type
        maximum: [P][R] Maximum demand declared by each process
        allocation: [P][R] Instances currently held by each process
    """
    process_ids: List[str]
    resource_ids: List[str]
    available: np.ndarray
    maximum: np.ndarray
    allocation: np.ndarray

    @classmethod
    def from_lists(
        cls,
        available: Sequence[int],
        maximum: Sequence[Sequence[int]],
        allocation: Sequence[Sequence[int]],
        process_ids: Optional[Sequence[str]] = None,
        resource_ids: Optional[Sequence[str]] = None
    ) -> 'MatrixState':
        """
        Build a state from nested lists, labelling rows P0.. and columns R0.. by default.

        Raises:
            MatrixValidationError: If the counts fail validate_state
        """
        available_arr, maximum_arr, allocation_arr = validate_state(
            available, maximum, allocation
        )
        num_resources = len(available_arr)

        if process_ids is None:
            process_ids = [f"P{i}" for i in range(len(maximum_arr))]
        if resource_ids is None:
            resource_ids = [f"R{j}" for j in range(num_resources)]

        return cls(
            process_ids=list(process_ids),
            resource_ids=list(resource_ids),
            available=available_arr,
            maximum=maximum_arr,
            allocation=allocation_arr
        )

    @property
    def num_processes(self) -> int:
        """Number of processes in the system."""
        return len(self.process_ids)

    @property
    def num_resources(self) -> int:
        """Number of resource types in the system."""
        return len(self.resource_ids)

    @property
    def need_matrix(self) -> np.ndarray:
        """Need = Max - Allocation."""
        return self.maximum - self.allocation

    def index_of(self, pid: str) -> int:
        """Row index of a process."""
        if pid not in self.process_ids:
            raise ValueError(f"Process {pid} not found")
        return self.process_ids.index(pid)

    def allocation_map(self) -> Dict[str, Tuple[str, ...]]:
        """
        Map each process to the resource instances it holds.

        A process holding 2 instances of R0 maps to ('R0', 'R0').
        """
        allocation = {}
        for i, pid in enumerate(self.process_ids):
            held = []
            for j, rid in enumerate(self.resource_ids):
                held.extend([rid] * int(self.allocation[i][j]))
            allocation[pid] = tuple(held)
        return allocation

    def terminate(self, pid: str) -> List[int]:
        """
        Remove a process, returning its allocation to the available pool.

        Returns:
            List of released amounts by resource type
        """
        i = self.index_of(pid)
        released = [int(x) for x in self.allocation[i]]

        self.available = self.available + self.allocation[i]
        self.maximum = np.delete(self.maximum, i, axis=0)
        self.allocation = np.delete(self.allocation, i, axis=0)
        del self.process_ids[i]

        return released

    def preempt(self, pid: str, rid: str) -> None:
        """
        Reclaim one instance of a resource type from a process.

        The process keeps its declared maximum, so its need grows by one.

        Raises:
            ValueError: If the process holds no instance of the resource
        """
        i = self.index_of(pid)
        if rid not in self.resource_ids:
            raise ValueError(f"Resource {rid} not found")
        j = self.resource_ids.index(rid)

        if self.allocation[i][j] < 1:
            raise ValueError(f"{pid}: Cannot preempt {rid} - holding no instances")

        self.allocation[i][j] -= 1
        self.available[j] += 1

    def apply_termination(self, pid: str) -> List[int]:
        """Apply a termination planned by the recovery planner."""
        return self.terminate(pid)

    def apply_preemption(self, action: Tuple[str, str]) -> None:
        """Apply a (process_id, resource_id) preemption planned by the recovery planner."""
        pid, rid = action
        self.preempt(pid, rid)

    def display(self) -> str:
        """
        Generate readable string representation of the count matrices.

        Returns:
            Formatted string showing all matrices and vectors
        """
        header = "       " + " ".join(f"{rid:>4}" for rid in self.resource_ids)

        output = []
        output.append("\n" + "="*60)
        output.append("SYSTEM STATE")
        output.append("="*60)

        output.append("\nAvailable Resources:")
        output.append("  [" + ", ".join(
            f"{rid}:{int(self.available[j]):2}" for j, rid in enumerate(self.resource_ids)
        ) + "]")

        for title, matrix in (
            ("Allocation Matrix:", self.allocation),
            ("Max Demand Matrix:", self.maximum),
            ("Need Matrix (Max - Allocation):", self.need_matrix),
        ):
            output.append("\n" + title)
            output.append(header)
            for i, pid in enumerate(self.process_ids):
                row = " ".join(f"{int(matrix[i][j]):4}" for j in range(self.num_resources))
                output.append(f"  {pid:4} {row}")

        output.append("\n" + "="*60)
        return "\n".join(output)
