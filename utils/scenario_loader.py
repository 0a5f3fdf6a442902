"""
Scenario Loader for the Deadlock Detection & Recovery engine.

Loads and validates JSON scenario files describing either a single-instance
resource allocation graph or multi-instance count matrices.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from models.errors import MatrixValidationError
from models.system_state import MatrixState, SystemState


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


@dataclass
class Scenario:
    """
    A loaded scenario.

    Attributes:
        description: Free-text description from the file
        model: "graph" or "matrix"
        state: SystemState for graph scenarios, MatrixState for matrix scenarios
    """
    description: str
    model: str
    state: Union[SystemState, MatrixState]


def load_scenario(file_path: str) -> Scenario:
    """
    Load scenario from JSON file.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Scenario with an initialised state

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")
    except UnicodeDecodeError as e:
        raise ScenarioLoadError(f"Scenario file is not valid UTF-8: {e}")
    except OSError as e:
        raise ScenarioLoadError(f"Cannot read scenario file {file_path}: {e}")

    return parse_scenario(data)


def parse_scenario(data: Dict[str, Any]) -> Scenario:
    """
    Build a Scenario from already-decoded JSON data.

    The model defaults to "matrix" when an 'available' vector is present,
    otherwise "graph".

    Raises:
        ScenarioLoadError: If the data is invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")

    model = data.get('model', 'matrix' if 'available' in data else 'graph')
    description = data.get('description', '')

    if 'processes' not in data:
        raise ScenarioLoadError("Scenario missing 'processes' field")

    if model == 'graph':
        state = _load_graph(data)
    elif model == 'matrix':
        state = _load_matrix(data)
    else:
        raise ScenarioLoadError(f"Unknown scenario model '{model}'")

    return Scenario(description=description, model=model, state=state)


def _entry_id(entry: Any, kind: str) -> str:
    """Accept either a bare id string or an object with an 'id' field."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and 'id' in entry:
        if not isinstance(entry['id'], str):
            raise ScenarioLoadError(f"{kind} id must be a string: {entry['id']!r}")
        return entry['id']
    raise ScenarioLoadError(f"{kind} entry missing 'id' field: {entry!r}")


def _load_graph(data: Dict[str, Any]) -> SystemState:
    """
    Load a resource allocation graph scenario.

    Resources are declared first; then processes, their holds, and finally
    their pending requests are applied through the SystemState primitives.

    Args:
        data: Scenario dictionary

    Returns:
        Initialised SystemState
    """
    if 'resources' not in data:
        raise ScenarioLoadError("Scenario missing 'resources' field")

    state = SystemState()

    try:
        for entry in data['resources']:
            rid = _entry_id(entry, "Resource")
            if rid in state.resources:
                raise ScenarioLoadError(f"Duplicate resource id '{rid}'")
            state.add_resource(rid)

        process_entries = data['processes']
        for entry in process_entries:
            pid = _entry_id(entry, "Process")
            if pid in state.processes:
                raise ScenarioLoadError(f"Duplicate process id '{pid}'")
            priority = entry.get('priority', 0) if isinstance(entry, dict) else 0
            state.add_process(pid, priority=priority)

        for entry in process_entries:
            if not isinstance(entry, dict):
                continue
            for rid in entry.get('holds', []):
                state.allocate(entry['id'], rid)

        for entry in process_entries:
            if not isinstance(entry, dict):
                continue
            if entry.get('waiting'):
                state.request(entry['id'], entry['waiting'])
    except ValueError as e:
        raise ScenarioLoadError(f"Invalid graph scenario: {e}")

    return state


def _load_matrix(data: Dict[str, Any]) -> MatrixState:
    """
    Load a multi-instance count-matrix scenario.

    Args:
        data: Scenario dictionary

    Returns:
        Initialised MatrixState
    """
    if 'available' not in data:
        raise ScenarioLoadError("Scenario missing 'available' field")

    available = data['available']
    if not isinstance(available, list) or not available:
        raise ScenarioLoadError("'available' must be a non-empty list of counts")
    num_resources = len(available)

    resource_ids = data.get('resources', [f"R{j}" for j in range(num_resources)])
    resource_ids = [_entry_id(entry, "Resource") for entry in resource_ids]
    if len(resource_ids) != num_resources:
        raise ScenarioLoadError(
            f"resources length ({len(resource_ids)}) does not match "
            f"available length ({num_resources})"
        )

    process_ids: List[str] = []
    maximum: List[List[int]] = []
    allocation: List[List[int]] = []

    for i, proc in enumerate(data['processes']):
        if not isinstance(proc, dict):
            raise ScenarioLoadError(f"Process {i} must be an object")
        if 'maximum' not in proc:
            raise ScenarioLoadError(f"Process {i} missing 'maximum' field")

        pid = proc.get('id', f"P{i}")
        row_max = proc['maximum']
        row_alloc = proc.get('allocation', [0] * num_resources)

        if not isinstance(row_max, list) or not isinstance(row_alloc, list):
            raise ScenarioLoadError(f"Process {pid}: maximum and allocation must be lists")
        if len(row_max) != num_resources:
            raise ScenarioLoadError(
                f"Process {pid}: maximum length ({len(row_max)}) "
                f"does not match resource count ({num_resources})"
            )
        if len(row_alloc) != num_resources:
            raise ScenarioLoadError(
                f"Process {pid}: allocation length mismatch"
            )

        process_ids.append(pid)
        maximum.append(list(row_max))
        allocation.append(list(row_alloc))

    try:
        return MatrixState.from_lists(
            available,
            maximum,
            allocation,
            process_ids=process_ids,
            resource_ids=resource_ids
        )
    except MatrixValidationError as e:
        raise ScenarioLoadError(f"Invalid matrix scenario: {e}")


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Description string, or empty string if not present or unreadable
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return ''
    if not isinstance(data, dict):
        return ''
    return data.get('description', '')
