#!/usr/bin/env python3
"""
Deadlock Detection & Recovery
Main entry point for the detection driver.

Loads a scenario, runs the selected detection mode, and repeatedly plans and
applies recovery (snapshot -> detect -> plan -> apply) until the system is
deadlock-free or the round limit is reached.
"""

import argparse
import sys
from typing import Optional, Tuple

from models.errors import DeadlockError
from models.system_state import MatrixState, SystemState
from utils.scenario_loader import load_scenario, ScenarioLoadError
from utils.logger import DetectorLogger
from algorithms.detection import detect_cycles
from algorithms.safety import detect_deadlocked_processes, find_safe_sequence
from algorithms.recovery import get_selection_policy, plan_recovery
from analysis.events import EventLog, DetectionEvent, EventType


STOP_DEADLOCK_FREE = "Deadlock-free"
STOP_NO_RECOVERY = "Deadlock remains (recovery disabled)"
STOP_MAX_ROUNDS = "Max rounds reached"
STOP_LOAD_FAILED = "Scenario load failed"
STOP_INVALID_INPUT = "Invalid input"

MODEL_FOR_MODE = {'cycle': 'graph', 'banker': 'matrix'}
MODE_FOR_MODEL = {model: mode for mode, model in MODEL_FOR_MODE.items()}


def run_detection(
    scenario_path: str,
    mode: Optional[str] = None,
    recovery: str = "terminate",
    victim: str = "first",
    max_rounds: int = 10,
    verbose: bool = False,
    log_file: Optional[str] = None
) -> Tuple[EventLog, str]:
    """
    Run deadlock detection and recovery on a scenario.

    Round Ordering (for deterministic execution):
    1. Take a snapshot of the current state
    2. Detect (cycle detection or Banker's safety check)
    3. If deadlock and recovery enabled -> plan for the first deadlock
    4. Apply the planned action to the state, then start the next round

    Args:
        scenario_path: Path to scenario JSON file
        mode: 'cycle' or 'banker'; inferred from the scenario when None
        recovery: One of 'terminate', 'preempt', 'none'
        victim: Victim selection policy ('first', 'fewest', 'most', 'priority')
        max_rounds: Maximum number of detect/recover rounds
        verbose: Enable verbose logging
        log_file: Optional path to mirror the log into

    Returns:
        Tuple of (EventLog, stop reason)
    """
    logger = DetectorLogger(verbose=verbose, log_file=log_file)
    event_log = EventLog()

    try:
        try:
            scenario = load_scenario(scenario_path)
        except ScenarioLoadError as e:
            logger.log(f"Failed to load scenario: {e}", "error")
            return event_log, STOP_LOAD_FAILED

        if mode is None:
            mode = MODE_FOR_MODEL[scenario.model]
        if MODEL_FOR_MODE[mode] != scenario.model:
            logger.log(
                f"Mode '{mode}' requires a {MODEL_FOR_MODE[mode]} scenario, "
                f"got a {scenario.model} scenario",
                "error"
            )
            return event_log, STOP_INVALID_INPUT

        logger.log(f"\n{'='*60}")
        logger.log(f"DEADLOCK DETECTION: {mode.upper()} (recovery: {recovery})")
        logger.log(f"Scenario: {scenario_path}")
        if scenario.description:
            logger.log(scenario.description)
        logger.log(f"{'='*60}\n")
        logger.log(scenario.state.display())

        try:
            if mode == 'cycle':
                stop_reason = _run_cycle_mode(
                    scenario.state, recovery, victim, max_rounds, logger, event_log
                )
            else:
                stop_reason = _run_banker_mode(
                    scenario.state, recovery, victim, max_rounds, logger, event_log
                )
        except DeadlockError as e:
            logger.log(f"Detection failed: {e}", "error")
            return event_log, STOP_INVALID_INPUT

        logger.log(f"\n{'='*60}")
        logger.log(f"DETECTION COMPLETE: {stop_reason}")
        logger.log(f"{'='*60}\n")
        logger.log(scenario.state.display(), "debug")

        return event_log, stop_reason
    finally:
        logger.close()


def _run_cycle_mode(
    state: SystemState,
    recovery: str,
    victim: str,
    max_rounds: int,
    logger: DetectorLogger,
    event_log: EventLog
) -> str:
    """Detect/recover loop over the single-instance allocation graph."""
    for round_number in range(1, max_rounds + 1):
        graph = state.snapshot()
        cycles = detect_cycles(graph)
        logger.log_cycles(round_number, cycles)

        if not cycles:
            event_log.add(DetectionEvent(
                round=round_number,
                event_type=EventType.SAFE,
                message="no circular wait"
            ))
            return STOP_DEADLOCK_FREE

        for cycle in cycles:
            event_log.add(DetectionEvent(
                round=round_number,
                event_type=EventType.DEADLOCK,
                processes=cycle,
                message="circular wait"
            ))

        if recovery == "none":
            return STOP_NO_RECOVERY

        policy = get_selection_policy(victim, state.priorities())
        plan = plan_recovery(cycles[0], graph.allocation_map(), recovery, policy)
        _apply_plan(state, plan, round_number, logger, event_log)
        logger.log_state(round_number, state.display())

    if not detect_cycles(state.snapshot()):
        return STOP_DEADLOCK_FREE
    return STOP_MAX_ROUNDS


def _run_banker_mode(
    state: MatrixState,
    recovery: str,
    victim: str,
    max_rounds: int,
    logger: DetectorLogger,
    event_log: EventLog
) -> str:
    """Detect/recover loop over the multi-instance count matrices."""
    for round_number in range(1, max_rounds + 1):
        indices = detect_deadlocked_processes(state.available, state.maximum, state.allocation)
        deadlocked = tuple(state.process_ids[i] for i in indices)
        logger.log_deadlocked(round_number, deadlocked)

        if not deadlocked:
            sequence = find_safe_sequence(state.available, state.maximum, state.allocation)
            named = [state.process_ids[i] for i in sequence]
            logger.log_safe_sequence(round_number, named)
            event_log.add(DetectionEvent(
                round=round_number,
                event_type=EventType.SAFE,
                processes=tuple(named),
                message="safe sequence: " + " -> ".join(named)
            ))
            return STOP_DEADLOCK_FREE

        event_log.add(DetectionEvent(
            round=round_number,
            event_type=EventType.DEADLOCK,
            processes=deadlocked,
            message="unsatisfiable need"
        ))

        if recovery == "none":
            return STOP_NO_RECOVERY

        policy = get_selection_policy(victim)
        plan = plan_recovery(deadlocked, state.allocation_map(), recovery, policy)
        _apply_plan(state, plan, round_number, logger, event_log)
        logger.log_state(round_number, state.display())

    if not detect_deadlocked_processes(state.available, state.maximum, state.allocation):
        return STOP_DEADLOCK_FREE
    return STOP_MAX_ROUNDS


def _apply_plan(state, plan, round_number: int, logger: DetectorLogger, event_log: EventLog) -> None:
    """Apply a RecoveryPlan to the caller-side state and record it."""
    if plan.fallback:
        logger.log(
            f"  {plan.process_id} holds nothing to preempt - falling back to termination",
            "warning"
        )
        event_log.add(DetectionEvent(
            round=round_number,
            event_type=EventType.FALLBACK,
            processes=(plan.process_id,)
        ))

    if plan.method == "preempt":
        state.apply_preemption((plan.process_id, plan.resource_id))
        logger.log_recovery(round_number, "preempt", plan.process_id, plan.resource_id)
        event_log.add(DetectionEvent(
            round=round_number,
            event_type=EventType.PREEMPTION,
            processes=(plan.process_id,),
            resource_id=plan.resource_id
        ))
    else:
        released = state.apply_termination(plan.process_id)
        released_str = _describe_released(state, released)
        logger.log_recovery(round_number, "terminate", plan.process_id, released=released_str)
        event_log.add(DetectionEvent(
            round=round_number,
            event_type=EventType.TERMINATION,
            processes=(plan.process_id,),
            message=f"released {released_str or 'nothing'}"
        ))


def _describe_released(state, released) -> str:
    """Describe resources released by a termination."""
    if isinstance(state, MatrixState):
        return ", ".join(
            f"{rid}[{amount}]" for rid, amount in zip(state.resource_ids, released) if amount > 0
        )
    return ", ".join(released)


def main():
    """Main entry point for the detection driver."""
    parser = argparse.ArgumentParser(
        description='Deadlock Detection & Recovery'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path to scenario JSON file'
    )
    parser.add_argument(
        '--mode',
        choices=['cycle', 'banker'],
        default=None,
        help='Detection mode (default: inferred from the scenario)'
    )
    parser.add_argument(
        '--recovery',
        choices=['terminate', 'preempt', 'none'],
        default='terminate',
        help='Recovery method to apply after detection (default: terminate)'
    )
    parser.add_argument(
        '--victim',
        choices=['first', 'fewest', 'most', 'priority'],
        default='first',
        help='Victim selection policy (default: first)'
    )
    parser.add_argument(
        '--max-rounds',
        type=int,
        default=10,
        help='Maximum detect/recover rounds (default: 10)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file'
    )

    args = parser.parse_args()

    if args.max_rounds < 1:
        parser.error('--max-rounds must be at least 1')

    _, stop_reason = run_detection(
        args.scenario,
        mode=args.mode,
        recovery=args.recovery,
        victim=args.victim,
        max_rounds=args.max_rounds,
        verbose=args.verbose,
        log_file=args.log_file
    )

    if stop_reason == STOP_DEADLOCK_FREE:
        return 0
    if stop_reason in (STOP_LOAD_FAILED, STOP_INVALID_INPUT):
        return 1
    return 2


if __name__ == '__main__':
    sys.exit(main())
