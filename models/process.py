"""
Process model for the Deadlock Detection & Recovery engine.

Represents a process in a single-instance resource allocation graph.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Process:
    """
    Represents a process in the resource allocation graph.

    Attributes:
        pid: Process identifier (unique string token, e.g. "P1")
        held: Identifiers of resources currently held by the process
        waiting_on: Identifier of the resource the process is blocked on, if any
        priority: Priority level (higher value = cheaper victim for recovery)

    Invariant:
        waiting_on is not in held (checked by the graph, not here, so that
        the caller-side state may pass through transient inconsistency)
    """
    pid: str
    held: FrozenSet[str] = field(default_factory=frozenset)
    waiting_on: Optional[str] = None
    priority: int = 0

    def __post_init__(self):
        """Normalise held resources to a frozenset."""
        if not isinstance(self.held, frozenset):
            object.__setattr__(self, 'held', frozenset(self.held))

    def is_waiting(self) -> bool:
        """True if the process is blocked on a resource."""
        return self.waiting_on is not None

    def holds(self, resource_id: str) -> bool:
        """True if the process currently holds the resource."""
        return resource_id in self.held

    def __repr__(self) -> str:
        """String representation for debugging."""
        held = ", ".join(sorted(self.held))
        return (
            f"Process(pid={self.pid}, held=[{held}], "
            f"waiting_on={self.waiting_on}, priority={self.priority})"
        )
