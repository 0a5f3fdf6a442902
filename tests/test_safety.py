"""
Safety Checker Tests - Banker's Algorithm

Tests multi-instance deadlock detection and safe-sequence search.
"""

import sys
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.errors import (
    DimensionMismatchError,
    MatrixValidationError,
    NegativeValueError,
)
from algorithms.safety import (
    detect_deadlocked_processes,
    find_safe_sequence,
    is_safe_state,
    validate_state,
)


# Silberschatz, Operating System Concepts, Chapter 7.5
TEXTBOOK_AVAILABLE = [3, 3, 2]
TEXTBOOK_MAXIMUM = [
    [7, 5, 3],
    [3, 2, 2],
    [9, 0, 2],
    [2, 2, 2],
    [4, 3, 3],
]
TEXTBOOK_ALLOCATION = [
    [0, 1, 0],
    [2, 0, 0],
    [3, 0, 2],
    [2, 1, 1],
    [0, 0, 2],
]


def expect_error(error_type, available, maximum, allocation) -> str:
    """Run detection that must fail with error_type; return the message."""
    try:
        detect_deadlocked_processes(available, maximum, allocation)
    except error_type as e:
        return str(e)
    assert False, f"Should have raised {error_type.__name__}"


def test_textbook_safe_state():
    """Test the standard textbook safe-state example."""
    print("\n" + "="*60)
    print("TEST 1: Textbook Safe State")
    print("="*60)

    deadlocked = detect_deadlocked_processes(
        TEXTBOOK_AVAILABLE, TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION
    )
    print(f"\n  Deadlocked: {deadlocked}")
    assert deadlocked == [], "Textbook example is safe"

    sequence = find_safe_sequence(TEXTBOOK_AVAILABLE, TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION)
    print(f"  Safe sequence: {sequence}")
    # Greedy first-fit by index, restarting after each finish
    assert sequence == [1, 3, 0, 2, 4]

    safe, seq = is_safe_state(TEXTBOOK_AVAILABLE, TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION)
    assert safe and seq == sequence
    print("  ✓ No deadlocked process, safe sequence P1 -> P3 -> P0 -> P2 -> P4")

    print("\n✅ Textbook Safe State Tests PASSED")


def test_nothing_available():
    """Test that every process with unmet need is stuck when nothing is free."""
    print("\n" + "="*60)
    print("TEST 2: Zeroed Available Vector")
    print("="*60)

    deadlocked = detect_deadlocked_processes([0, 0, 0], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION)
    print(f"\n  Deadlocked: {deadlocked}")
    assert deadlocked == [0, 1, 2, 3, 4], "Every process still needs something"

    assert find_safe_sequence([0, 0, 0], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION) is None
    assert is_safe_state([0, 0, 0], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION) == (False, None)
    print("  ✓ All processes reported deadlocked, no safe sequence")

    print("\n✅ Zeroed Available Tests PASSED")


def test_partial_deadlock():
    """Test that only the stuck processes are reported, ascending."""
    print("\n" + "="*60)
    print("TEST 3: Partial Deadlock")
    print("="*60)

    available = [0, 0]
    maximum = [
        [2, 1],  # P0 needs one more R0, held by P2
        [1, 1],  # P1 already holds its maximum
        [2, 1],  # P2 needs one more R1, held by P0
    ]
    allocation = [
        [1, 1],
        [1, 1],
        [1, 0],
    ]

    # P1 finishes and frees [1, 1]; then P0 (need [1, 0]) finishes; then P2
    assert detect_deadlocked_processes(available, maximum, allocation) == []

    stuck_maximum = [
        [3, 1],
        [1, 1],
        [3, 2],
    ]
    deadlocked = detect_deadlocked_processes(available, stuck_maximum, allocation)
    print(f"\n  Deadlocked: {deadlocked}")
    assert deadlocked == [0, 2], "P1 can finish, P0 and P2 cannot"
    print("  ✓ Finishing processes release their allocation into Work")

    print("\n✅ Partial Deadlock Tests PASSED")


def test_dimension_errors():
    """Test shape validation before any computation."""
    print("\n" + "="*60)
    print("TEST 4: Dimension Mismatch")
    print("="*60)

    msg = expect_error(
        DimensionMismatchError,
        TEXTBOOK_AVAILABLE, TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION[:4]
    )
    print(f"\n  ✓ Differing row counts: {msg}")

    msg = expect_error(
        DimensionMismatchError,
        [3, 3], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION
    )
    print(f"  ✓ Available length vs columns: {msg}")

    msg = expect_error(
        DimensionMismatchError,
        [1, 1], [[1, 1], [1]], [[0, 0], [0, 0]]
    )
    print(f"  ✓ Ragged rows: {msg}")

    msg = expect_error(DimensionMismatchError, [[1, 1]], [[1, 1]], [[0, 0]])
    print(f"  ✓ Available not a vector: {msg}")

    msg = expect_error(DimensionMismatchError, [1, 1], [1, 1], [0, 0])
    print(f"  ✓ Matrices not two-dimensional: {msg}")

    assert issubclass(DimensionMismatchError, MatrixValidationError)

    print("\n✅ Dimension Mismatch Tests PASSED")


def test_value_errors():
    """Test negative and over-allocated values."""
    print("\n" + "="*60)
    print("TEST 5: Negative Values")
    print("="*60)

    msg = expect_error(NegativeValueError, [-1, 0], [[1, 1]], [[0, 0]])
    print(f"\n  ✓ Negative available: {msg}")

    msg = expect_error(NegativeValueError, [1, 0], [[1, -1]], [[0, -1]])
    print(f"  ✓ Negative matrix entry: {msg}")

    msg = expect_error(NegativeValueError, [1, 0], [[1, 1]], [[2, 0]])
    assert "exceeds" in msg
    print(f"  ✓ Allocation above maximum: {msg}")

    msg = expect_error(MatrixValidationError, [1.5, 0], [[1, 1]], [[0, 0]])
    print(f"  ✓ Fractional count: {msg}")

    print("\n✅ Negative Value Tests PASSED")


def test_edge_shapes_and_inputs():
    """Test empty systems, numpy input and input immutability."""
    print("\n" + "="*60)
    print("TEST 6: Edge Shapes")
    print("="*60)

    assert detect_deadlocked_processes([1, 2], [], []) == []
    assert find_safe_sequence([1, 2], [], []) == []
    print("\n  ✓ Zero processes is a valid, safe system")

    available = np.array(TEXTBOOK_AVAILABLE)
    allocation = np.array(TEXTBOOK_ALLOCATION)
    detect_deadlocked_processes(available, np.array(TEXTBOOK_MAXIMUM), allocation)
    assert list(available) == TEXTBOOK_AVAILABLE, "Caller's available vector must not change"
    assert allocation.tolist() == TEXTBOOK_ALLOCATION
    print("  ✓ numpy input accepted and left untouched")

    available_arr, maximum_arr, allocation_arr = validate_state(
        [3.0, 3.0, 2.0], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION
    )
    assert available_arr.dtype.kind == "i"
    assert maximum_arr.shape == (5, 3) and allocation_arr.shape == (5, 3)
    print("  ✓ Integral floats are converted to integer counts")

    result = detect_deadlocked_processes([0, 0, 0], TEXTBOOK_MAXIMUM, TEXTBOOK_ALLOCATION)
    assert all(type(i) is int for i in result), "Indices are plain ints"

    print("\n✅ Edge Shape Tests PASSED")


def main():
    """Run all safety checker tests."""
    print("\n" + "="*70)
    print(" "*20 + "SAFETY CHECKER TESTS")
    print("="*70)

    try:
        test_textbook_safe_state()
        test_nothing_available()
        test_partial_deadlock()
        test_dimension_errors()
        test_value_errors()
        test_edge_shapes_and_inputs()

        print("\n" + "="*70)
        print("\n🎉 ALL SAFETY CHECKER TESTS PASSED")
        print("="*70 + "\n")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
