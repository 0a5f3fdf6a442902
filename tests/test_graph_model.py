"""
Graph Model Tests

Tests Process, Resource and ResourceAllocationGraph construction and validation.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.errors import InvalidGraphError, DeadlockError
from models.graph import ResourceAllocationGraph
from models.process import Process
from models.resource import Resource


def canonical_graph() -> ResourceAllocationGraph:
    """P1 holds R2 waits R1; P2 holds R1 waits R3; P3 holds R3 waits R2."""
    return ResourceAllocationGraph(
        processes=["P1", "P2", "P3"],
        resources=["R1", "R2", "R3"],
        allocations=[("R2", "P1"), ("R1", "P2"), ("R3", "P3")],
        requests=[("P1", "R1"), ("P2", "R3"), ("P3", "R2")]
    )


def expect_invalid(**kwargs) -> str:
    """Build a graph that must fail validation; return the error message."""
    try:
        ResourceAllocationGraph(**kwargs)
    except InvalidGraphError as e:
        return str(e)
    assert False, f"Should have raised InvalidGraphError for {kwargs}"


def test_process_and_resource_records():
    """Test Process and Resource records."""
    print("\n" + "="*60)
    print("TEST 1: Process and Resource Records")
    print("="*60)

    process = Process(pid="P1", held=["R2"], waiting_on="R1")
    print(f"\nCreated: {process}")
    assert process.held == frozenset({"R2"}), "held should be normalised to a frozenset"
    assert process.is_waiting(), "P1 is waiting on R1"
    assert process.holds("R2") and not process.holds("R1")

    resource = Resource(rid="R1", holder="P2", waiters=["P1"])
    assert resource.waiters == ("P1",), "waiters should be normalised to a tuple"
    assert not resource.is_free()
    assert resource.is_consistent()

    broken = Resource(rid="R1", holder="P1", waiters=("P1",))
    assert not broken.is_consistent(), "Holder in its own waiters is inconsistent"
    print("  ✓ Records normalise and report state correctly")

    print("\n✅ Record Tests PASSED")


def test_valid_graph():
    """Test construction of a valid graph and its accessors."""
    print("\n" + "="*60)
    print("TEST 2: Valid Graph")
    print("="*60)

    graph = canonical_graph()
    print(f"\n  Processes: {graph.processes}")
    print(f"  Resources: {graph.resources}")

    assert graph.num_processes == 3 and graph.num_resources == 3
    assert isinstance(graph.allocations, tuple), "Edges must be frozen into tuples"
    assert graph.held_by("P1") == ("R2",)
    assert graph.waiting_for("P1") == ("R1",)
    assert graph.holder_of("R1") == "P2"
    assert graph.holder_of("R9") is None
    assert graph.waiters_of("R2") == ("P3",)
    assert graph.allocation_map() == {"P1": ("R2",), "P2": ("R1",), "P3": ("R3",)}
    print("  ✓ Accessors reflect the edges")

    empty = ResourceAllocationGraph()
    assert empty.num_processes == 0 and empty.allocation_map() == {}
    print("  ✓ Empty graph is valid")

    print("\n✅ Valid Graph Tests PASSED")


def test_invalid_graphs():
    """Test that invalid graphs are rejected, never repaired."""
    print("\n" + "="*60)
    print("TEST 3: Invalid Graphs")
    print("="*60)

    msg = expect_invalid(processes=["P1"], resources=["R1"], allocations=[("R2", "P1")])
    print(f"\n  ✓ Dangling allocation resource: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], allocations=[("R1", "P9")])
    print(f"  ✓ Dangling allocation process: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], requests=[("P2", "R1")])
    print(f"  ✓ Dangling request process: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], requests=[("P1", "R7")])
    print(f"  ✓ Dangling request resource: {msg}")

    msg = expect_invalid(
        processes=["P1"], resources=["R1"],
        allocations=[("R1", "P1")], requests=[("P1", "R1")]
    )
    assert "both holds and waits" in msg
    print(f"  ✓ Holder waiting on its own resource: {msg}")

    msg = expect_invalid(processes=["P1", "P1"], resources=["R1"])
    print(f"  ✓ Duplicate process: {msg}")

    msg = expect_invalid(processes=["X"], resources=["X"])
    print(f"  ✓ Id declared as process and resource: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], requests=[("P1",)])
    print(f"  ✓ Malformed edge: {msg}")

    # Edges are reversed relative to their declared kind
    msg = expect_invalid(processes=["P1"], resources=["R1"], allocations=[("P1", "R1")])
    print(f"  ✓ Edge with swapped endpoints: {msg}")

    # A bare string must not be split into one-character ids
    msg = expect_invalid(processes="P12", resources=["R1"])
    assert "P12" in msg
    print(f"  ✓ String as process collection: {msg}")

    msg = expect_invalid(processes=["P1"], resources="R1")
    print(f"  ✓ String as resource collection: {msg}")

    msg = expect_invalid(processes=[["P1"]], resources=["R1"])
    print(f"  ✓ Unhashable process id: {msg}")

    msg = expect_invalid(processes=["P1"], resources=[7])
    print(f"  ✓ Non-string resource id: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], requests=[("P1", ["R1"])])
    print(f"  ✓ Unhashable edge endpoint: {msg}")

    msg = expect_invalid(processes=["P1"], resources=["R1"], requests=["PR"])
    print(f"  ✓ String as edge: {msg}")

    try:
        ResourceAllocationGraph.from_dict({'processes': "P1", 'resources': ["R1"]})
        assert False, "from_dict should reject a string process list"
    except InvalidGraphError as e:
        print(f"  ✓ from_dict string process list: {e}")

    assert issubclass(InvalidGraphError, DeadlockError)

    print("\n✅ Invalid Graph Tests PASSED")


def test_from_entities():
    """Test building a graph from Process and Resource records."""
    print("\n" + "="*60)
    print("TEST 4: Graph From Records")
    print("="*60)

    processes = [
        Process(pid="P1", held={"R2"}, waiting_on="R1"),
        Process(pid="P2", held={"R1"}, waiting_on="R3"),
        Process(pid="P3", held={"R3"}, waiting_on="R2"),
    ]
    resources = [
        Resource(rid="R1", holder="P2", waiters=("P1",)),
        Resource(rid="R2", holder="P1", waiters=("P3",)),
        Resource(rid="R3", holder="P3", waiters=("P2",)),
    ]

    graph = ResourceAllocationGraph.from_entities(processes, resources)
    assert set(graph.allocations) == set(canonical_graph().allocations)
    assert set(graph.requests) == set(canonical_graph().requests)
    assert len(graph.allocations) == 3, "Edges recorded on both sides are not duplicated"
    assert len(graph.requests) == 3
    print("  ✓ Both sides of the records merge into one edge set")

    # Only one side records the hold
    graph = ResourceAllocationGraph.from_entities(
        [Process(pid="P1", held={"R1"})],
        [Resource(rid="R1")]
    )
    assert graph.allocations == (("R1", "P1"),)
    print("  ✓ Hold recorded only on the process is kept")

    try:
        ResourceAllocationGraph.from_entities(
            [Process(pid="P1", held={"R1"}), Process(pid="P2")],
            [Resource(rid="R1", holder="P2")]
        )
        assert False, "Conflicting holders should be rejected"
    except InvalidGraphError as e:
        print(f"  ✓ Conflicting holders rejected: {e}")

    try:
        ResourceAllocationGraph.from_entities(
            [Process(pid="P1", held={"R1"}, waiting_on="R1")],
            [Resource(rid="R1")]
        )
        assert False, "Hold-and-wait on the same resource should be rejected"
    except InvalidGraphError as e:
        print(f"  ✓ Inconsistent holder/waiter rejected: {e}")

    print("\n✅ From Records Tests PASSED")


def test_dict_round_trip_and_removal():
    """Test from_dict/to_dict and without_process."""
    print("\n" + "="*60)
    print("TEST 5: Plain Mapping and Process Removal")
    print("="*60)

    graph = canonical_graph()
    data = graph.to_dict()
    assert data['allocations'][0] == ["R2", "P1"]
    assert ResourceAllocationGraph.from_dict(data) == graph
    print("  ✓ to_dict output is accepted by from_dict")

    try:
        ResourceAllocationGraph.from_dict({'processes': ["P1"]})
        assert False, "Missing 'resources' should be rejected"
    except InvalidGraphError as e:
        print(f"  ✓ Missing key rejected: {e}")

    reduced = graph.without_process("P1")
    assert reduced.processes == ("P2", "P3")
    assert ("R2", "P1") not in reduced.allocations
    assert ("P1", "R1") not in reduced.requests
    assert graph.num_processes == 3, "Original snapshot is unchanged"
    print("  ✓ without_process drops the process and its edges")

    try:
        graph.without_process("P9")
        assert False, "Unknown process should be rejected"
    except InvalidGraphError:
        print("  ✓ Unknown process rejected")

    print("\n✅ Mapping and Removal Tests PASSED")


def main():
    """Run all graph model tests."""
    print("\n" + "="*70)
    print(" "*20 + "GRAPH MODEL TESTS")
    print("="*70)

    try:
        test_process_and_resource_records()
        test_valid_graph()
        test_invalid_graphs()
        test_from_entities()
        test_dict_round_trip_and_removal()

        print("\n" + "="*70)
        print("\n🎉 ALL GRAPH MODEL TESTS PASSED")
        print("="*70 + "\n")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
