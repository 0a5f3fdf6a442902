"""
Event Model for the Deadlock Detection & Recovery engine.

Defines event types for tracking detection rounds and recovery actions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class EventType(Enum):
    """Types of events in a detection run."""
    DEADLOCK = "deadlock"
    SAFE = "safe"
    TERMINATION = "termination"
    PREEMPTION = "preemption"
    FALLBACK = "fallback"


@dataclass
class DetectionEvent:
    """
    Represents a single event in a detection run.

    Attributes:
        round: Detection round when the event occurred
        event_type: Type of event
        processes: Processes involved (the cycle, the deadlocked set or the victim)
        resource_id: Resource involved (preemption only)
        message: Human-readable description
    """
    round: int
    event_type: EventType
    processes: Tuple[str, ...] = ()
    resource_id: Optional[str] = None
    message: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"Round {self.round}:"
        members = ", ".join(self.processes)

        if self.event_type == EventType.DEADLOCK:
            return f"{base} DEADLOCK DETECTED [{members}] ({self.message})"
        elif self.event_type == EventType.SAFE:
            return f"{base} NO DEADLOCK ({self.message})"
        elif self.event_type == EventType.TERMINATION:
            return f"{base} RECOVERY - Terminated {members} ({self.message})"
        elif self.event_type == EventType.PREEMPTION:
            return f"{base} RECOVERY - Preempted {self.resource_id} from {members}"
        elif self.event_type == EventType.FALLBACK:
            return f"{base} {members} holds nothing to preempt - falling back to termination"
        else:
            return f"{base} {self.event_type.value}: {self.message}"


@dataclass
class EventLog:
    """Collection of detection events."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []

    def add(self, event: DetectionEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_by_round(self, round_number: int) -> list:
        """Get all events from a specific round."""
        return [e for e in self.events if e.round == round_number]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
