"""
Resource model for the Deadlock Detection & Recovery engine.

Represents a single-instance resource in the allocation graph.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Resource:
    """
    Represents a single-instance resource.

    Attributes:
        rid: Resource identifier (unique string token, e.g. "R1")
        holder: PID of the process holding the resource, or None if free
        waiters: PIDs waiting for the resource, in request order

    Invariant:
        holder not in waiters
    """
    rid: str
    holder: Optional[str] = None
    waiters: Tuple[str, ...] = ()

    def __post_init__(self):
        """Normalise waiters to a tuple."""
        if not isinstance(self.waiters, tuple):
            object.__setattr__(self, 'waiters', tuple(self.waiters))

    def is_free(self) -> bool:
        """True if no process holds the resource."""
        return self.holder is None

    def is_consistent(self) -> bool:
        """
        Check the holder/waiter invariant.

        Implements Mutual Exclusion condition: the single instance is either
        held or awaited by a given process, never both.
        """
        return self.holder is None or self.holder not in self.waiters
