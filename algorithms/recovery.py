"""
Deadlock Recovery Planner for the Deadlock Detection & Recovery engine.

Implements process termination and resource preemption planning. Planners
only choose; the caller applies the returned action to its own state.
"""

from typing import Callable, Dict, Mapping, NamedTuple, Optional, Sequence, Union


AllocationLookup = Callable[[str], Sequence[str]]
AllocationInput = Union[Mapping[str, Sequence[str]], AllocationLookup, None]
SelectionPolicy = Callable[[Sequence[str], AllocationLookup], str]
ResourcePolicy = Callable[[str, Sequence[str]], str]


class PreemptionAction(NamedTuple):
    """Reclaim resource_id from process_id."""
    process_id: str
    resource_id: str


class RecoveryPlan(NamedTuple):
    """
    Outcome of plan_recovery.

    Attributes:
        method: "terminate" or "preempt" (the method actually chosen)
        process_id: Victim process
        resource_id: Resource to reclaim (preempt only, else None)
        fallback: True if preemption was inapplicable and termination was
            planned instead
    """
    method: str
    process_id: str
    resource_id: Optional[str] = None
    fallback: bool = False


def _as_lookup(allocation_of: AllocationInput) -> AllocationLookup:
    """Normalise a mapping, callable or None into a lookup function."""
    if allocation_of is None:
        return lambda pid: ()
    if callable(allocation_of):
        return allocation_of
    mapping = allocation_of
    return lambda pid: tuple(mapping.get(pid, ()))


# ---------------------------------------------------------------------------
# Selection policies
# ---------------------------------------------------------------------------

def first_in_cycle(cycle: Sequence[str], allocation_of: AllocationLookup) -> str:
    """Select the first process of the cycle."""
    return cycle[0]


def fewest_resources(cycle: Sequence[str], allocation_of: AllocationLookup) -> str:
    """Select the process holding the fewest resources (minimise waste). Ties go to the earliest."""
    return min(cycle, key=lambda pid: len(allocation_of(pid)))


def most_resources(cycle: Sequence[str], allocation_of: AllocationLookup) -> str:
    """Select the process holding the most resources (free the most). Ties go to the earliest."""
    return max(cycle, key=lambda pid: len(allocation_of(pid)))


def by_priority(priorities: Mapping[str, int]) -> SelectionPolicy:
    """
    Build a policy that selects the process with the highest priority value.

    Lower value = higher priority, so the highest value is the cheapest
    victim. Processes missing from priorities count as 0.
    """
    def select(cycle: Sequence[str], allocation_of: AllocationLookup) -> str:
        return max(cycle, key=lambda pid: priorities.get(pid, 0))
    return select


def first_held(process_id: str, held: Sequence[str]) -> str:
    """Select the first resource the process holds."""
    return held[0]


SELECTION_POLICIES: Dict[str, SelectionPolicy] = {
    "first": first_in_cycle,
    "fewest": fewest_resources,
    "most": most_resources,
}


def get_selection_policy(
    name: str,
    priorities: Optional[Mapping[str, int]] = None
) -> SelectionPolicy:
    """
    Look up a built-in selection policy by name.

    Args:
        name: One of "first", "fewest", "most", "priority"
        priorities: Required by "priority"

    Raises:
        ValueError: If the name is unknown
    """
    if name == "priority":
        return by_priority(priorities or {})
    if name not in SELECTION_POLICIES:
        raise ValueError(f"Unknown selection policy: {name}")
    return SELECTION_POLICIES[name]


# ---------------------------------------------------------------------------
# Planners
# ---------------------------------------------------------------------------

def _select(
    cycle: Sequence[str],
    lookup: AllocationLookup,
    selection_policy: SelectionPolicy
) -> str:
    victim = selection_policy(cycle, lookup)
    if victim not in cycle:
        raise ValueError(f"Selection policy chose {victim!r}, which is not in the cycle")
    return victim


def plan_recovery_by_termination(
    cycle: Sequence[str],
    selection_policy: SelectionPolicy = first_in_cycle,
    allocation_of: AllocationInput = None
) -> str:
    """
    Select a victim process to terminate.

    Terminating the victim releases everything it holds and removes its
    request edge, which breaks the circular wait.

    Args:
        cycle: Process ids forming the deadlock
        selection_policy: Callable (cycle, allocation_of) -> process id
        allocation_of: Optional mapping or callable giving each process's
            held resources, for cost-aware policies

    Returns:
        PID of the selected victim

    Raises:
        ValueError: If the cycle is empty or the policy picks a process
            outside the cycle
    """
    if not cycle:
        raise ValueError("Cannot plan termination for an empty cycle")

    return _select(cycle, _as_lookup(allocation_of), selection_policy)


def plan_recovery_by_preemption(
    cycle: Sequence[str],
    allocation_of: AllocationInput,
    selection_policy: SelectionPolicy = first_in_cycle,
    resource_policy: ResourcePolicy = first_held
) -> Optional[PreemptionAction]:
    """
    Select a process and one of its held resources to reclaim.

    Args:
        cycle: Process ids forming the deadlock
        allocation_of: Mapping or callable giving each process's held resources
        selection_policy: Callable (cycle, allocation_of) -> process id
        resource_policy: Callable (process id, held resources) -> resource id

    Returns:
        PreemptionAction, or None if the selected process holds nothing
        (preemption is inapplicable; fall back to termination)

    Raises:
        ValueError: If a policy picks something outside its candidates
    """
    if not cycle:
        return None

    lookup = _as_lookup(allocation_of)
    victim = _select(cycle, lookup, selection_policy)

    held = tuple(lookup(victim))
    if not held:
        return None

    resource_id = resource_policy(victim, held)
    if resource_id not in held:
        raise ValueError(
            f"Resource policy chose {resource_id!r}, which {victim} does not hold"
        )

    return PreemptionAction(process_id=victim, resource_id=resource_id)


def plan_recovery(
    cycle: Sequence[str],
    allocation_of: AllocationInput,
    method: str = "terminate",
    selection_policy: SelectionPolicy = first_in_cycle
) -> RecoveryPlan:
    """
    Plan recovery for one deadlock cycle.

    Methods:
    - "terminate": Kill the selected victim
    - "preempt": Reclaim one resource from the selected victim; falls back
      to termination when the victim holds nothing

    Args:
        cycle: Process ids forming the deadlock
        allocation_of: Mapping or callable giving each process's held resources
        method: Recovery method
        selection_policy: Victim selection policy

    Returns:
        RecoveryPlan describing the action to apply

    Raises:
        ValueError: If the method is unknown or the cycle is empty
    """
    if method == "terminate":
        victim = plan_recovery_by_termination(cycle, selection_policy, allocation_of)
        return RecoveryPlan(method="terminate", process_id=victim)

    elif method == "preempt":
        action = plan_recovery_by_preemption(cycle, allocation_of, selection_policy)
        if action is not None:
            return RecoveryPlan(
                method="preempt",
                process_id=action.process_id,
                resource_id=action.resource_id
            )

        victim = plan_recovery_by_termination(cycle, selection_policy, allocation_of)
        return RecoveryPlan(method="terminate", process_id=victim, fallback=True)

    else:
        raise ValueError(f"Unknown recovery method: {method}")
