"""
Safety Checker (Banker's Algorithm) for the Deadlock Detection & Recovery engine.

Determines which processes are stuck in a multi-instance resource system,
given the current allocation and each process's bounded maximum demand.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple

from models.errors import DimensionMismatchError, MatrixValidationError, NegativeValueError


def validate_state(
    available: Sequence[int],
    maximum: Sequence[Sequence[int]],
    allocation: Sequence[Sequence[int]]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Validate count-matrix input and convert it to integer arrays.

    Checks, in order:
    1. available is a vector, maximum and allocation are matrices
    2. len(available) == columns of maximum == columns of allocation
    3. maximum and allocation have identical shapes
    4. no element is negative
    5. allocation <= maximum element-wise (Need is never negative)

    Args:
        available: [R] Free instances by resource type
        maximum: [P][R] Maximum demand of each process
        allocation: [P][R] Current allocation of each process

    Returns:
        Tuple of (available, maximum, allocation) as int64 arrays

    Raises:
        DimensionMismatchError: If shapes disagree
        NegativeValueError: If a count is negative or allocation exceeds maximum
        MatrixValidationError: If a count is not an integer
    """
    available_arr = _as_int_array(available, "available")
    if available_arr.ndim != 1:
        raise DimensionMismatchError(
            f"available must be a vector, got shape {available_arr.shape}"
        )
    num_resources = available_arr.shape[0]

    maximum_arr = _as_matrix(maximum, "maximum", num_resources)
    allocation_arr = _as_matrix(allocation, "allocation", num_resources)

    if maximum_arr.shape[1] != num_resources:
        raise DimensionMismatchError(
            f"maximum has {maximum_arr.shape[1]} columns, "
            f"available has {num_resources} resource types"
        )
    if allocation_arr.shape[1] != num_resources:
        raise DimensionMismatchError(
            f"allocation has {allocation_arr.shape[1]} columns, "
            f"available has {num_resources} resource types"
        )
    if maximum_arr.shape != allocation_arr.shape:
        raise DimensionMismatchError(
            f"maximum shape {maximum_arr.shape} does not match "
            f"allocation shape {allocation_arr.shape}"
        )

    for name, arr in (("available", available_arr),
                      ("maximum", maximum_arr),
                      ("allocation", allocation_arr)):
        if np.any(arr < 0):
            raise NegativeValueError(f"{name} contains negative values")

    over = np.argwhere(allocation_arr > maximum_arr)
    if len(over) > 0:
        p, r = (int(x) for x in over[0])
        raise NegativeValueError(
            f"allocation[{p}][{r}] ({allocation_arr[p][r]}) exceeds "
            f"maximum[{p}][{r}] ({maximum_arr[p][r]})"
        )

    return available_arr, maximum_arr, allocation_arr


def _as_int_array(value, name: str) -> np.ndarray:
    """Convert nested sequences to an int64 array, rejecting ragged rows."""
    try:
        arr = np.asarray(value)
    except ValueError:
        raise DimensionMismatchError(f"{name} has rows of differing lengths")

    if arr.dtype == object:
        raise DimensionMismatchError(f"{name} has rows of differing lengths")

    if arr.size and arr.dtype.kind not in "iub":
        if arr.dtype.kind != "f" or not np.all(np.equal(np.mod(arr, 1), 0)):
            raise MatrixValidationError(f"{name} must contain integer counts")

    return arr.astype(np.int64)


def _as_matrix(value, name: str, num_resources: int) -> np.ndarray:
    """Convert to a [P][R] matrix; an empty sequence means zero processes."""
    arr = _as_int_array(value, name)
    if arr.size == 0 and arr.ndim == 1:
        return arr.reshape(0, num_resources)
    if arr.ndim != 2:
        raise DimensionMismatchError(f"{name} must be a matrix, got shape {arr.shape}")
    return arr


def _work_finish(
    available: np.ndarray,
    maximum: np.ndarray,
    allocation: np.ndarray
) -> Tuple[np.ndarray, List[int]]:
    """
    Run the Work/Finish fixed point on validated arrays.

    Returns:
        Tuple of (finish flags, indices in the order they finished)
    """
    num_processes = allocation.shape[0]

    # Step 1: Need = Max - Allocation
    need = maximum - allocation

    # Step 2: Work = Available (copy), Finish = [False] * P
    work = available.copy()
    finish = np.zeros(num_processes, dtype=bool)
    sequence = []

    # Step 3-4: First-fit by index, restarting the scan after each finish
    made_progress = True
    while made_progress:
        made_progress = False

        for i in range(num_processes):
            if finish[i]:
                continue

            if np.all(need[i] <= work):
                # Process can run to completion and release everything it holds
                work += allocation[i]
                finish[i] = True
                sequence.append(i)
                made_progress = True
                break

    return finish, sequence


def detect_deadlocked_processes(
    available: Sequence[int],
    maximum: Sequence[Sequence[int]],
    allocation: Sequence[Sequence[int]]
) -> List[int]:
    """
    Detect processes that can never complete.

    Algorithm (Multi-Instance Resources):
    1. Need = Max - Allocation, Work = Available.copy(), Finish = [False] * P
    2. Find the first i (by index) with Finish[i] == False and Need[i] <= Work
    3. If found: Work += Allocation[i], Finish[i] = True, restart from step 2
    4. Stop when a full scan makes no progress
    5. Every process with Finish[i] == False is deadlocked

    This answers "who is stuck right now" for the exact snapshot given,
    not "would granting a hypothetical request be safe".

    Time Complexity: O(P²×R) where P = processes, R = resource types

    Args:
        available: [R] Free instances by resource type
        maximum: [P][R] Maximum demand of each process
        allocation: [P][R] Current allocation of each process

    Returns:
        Indices of deadlocked processes, ascending

    Raises:
        DimensionMismatchError: If shapes disagree
        NegativeValueError: If a count is negative or allocation exceeds maximum

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.5: Deadlock Avoidance.
    """
    available_arr, maximum_arr, allocation_arr = validate_state(available, maximum, allocation)
    finish, _ = _work_finish(available_arr, maximum_arr, allocation_arr)

    return [i for i, is_finished in enumerate(finish) if not is_finished]


def find_safe_sequence(
    available: Sequence[int],
    maximum: Sequence[Sequence[int]],
    allocation: Sequence[Sequence[int]]
) -> Optional[List[int]]:
    """
    Find the order in which every process can run to completion.

    Uses the same greedy first-fit scan as detect_deadlocked_processes.

    Returns:
        Process indices in completion order, or None if some process
        can never finish

    Raises:
        DimensionMismatchError: If shapes disagree
        NegativeValueError: If a count is negative or allocation exceeds maximum
    """
    available_arr, maximum_arr, allocation_arr = validate_state(available, maximum, allocation)
    finish, sequence = _work_finish(available_arr, maximum_arr, allocation_arr)

    if np.all(finish):
        return sequence
    return None


def is_safe_state(
    available: Sequence[int],
    maximum: Sequence[Sequence[int]],
    allocation: Sequence[Sequence[int]]
) -> Tuple[bool, Optional[List[int]]]:
    """
    Check if the system is in a safe state.

    Returns:
        Tuple of (is_safe, safe_sequence if exists else None)
    """
    sequence = find_safe_sequence(available, maximum, allocation)
    return sequence is not None, sequence
