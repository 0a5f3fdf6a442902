"""
Logger utility for the Deadlock Detection & Recovery engine.

Provides round-by-round logging with verbosity levels.
"""

from typing import Optional, Sequence
from datetime import datetime


class DetectorLogger:
    """
    Logger for detection rounds and recovery decisions.

    Format: "Round X: DEADLOCK DETECTED - Cycle: P1 -> P2 -> P3 -> P1"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None):
        """
        Initialize logger.

        Args:
            verbose: Enable verbose output
            log_file: Optional file path for logging
        """
        self.verbose = verbose
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Detection Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_round(self, round_number: int, message: str) -> None:
        """Log a detection round message."""
        self.log(f"Round {round_number}: {message}")

    def log_cycles(self, round_number: int, cycles: Sequence[Sequence[str]]) -> None:
        """
        Log the cycles found by cycle detection.

        Args:
            round_number: Current detection round
            cycles: Cycles of process ids
        """
        if not cycles:
            self.log_round(round_number, "No circular wait detected")
            return

        self.log_round(round_number, f"DEADLOCK DETECTED - {len(cycles)} cycle(s)")
        for cycle in cycles:
            chain = " -> ".join(list(cycle) + [cycle[0]])
            self.log(f"  Cycle: {chain}")

    def log_deadlocked(self, round_number: int, deadlocked: Sequence[str]) -> None:
        """
        Log processes reported stuck by the safety checker.

        Args:
            round_number: Current detection round
            deadlocked: Ids of deadlocked processes
        """
        if not deadlocked:
            self.log_round(round_number, "No deadlocked processes")
            return

        pids_str = ", ".join(deadlocked)
        self.log_round(round_number, f"DEADLOCK DETECTED - Processes in deadlock: [{pids_str}]")

    def log_safe_sequence(self, round_number: int, sequence: Optional[Sequence[str]]) -> None:
        """Log the safe completion order, if one exists."""
        if sequence is None:
            self.log_round(round_number, "UNSAFE - no safe sequence exists")
        else:
            self.log_round(round_number, f"SAFE - sequence: {' -> '.join(sequence)}")

    def log_recovery(
        self,
        round_number: int,
        method: str,
        victim_pid: str,
        resource_id: Optional[str] = None,
        released: str = ""
    ) -> None:
        """
        Log recovery action.

        Args:
            round_number: Current detection round
            method: "terminate" or "preempt"
            victim_pid: PID of the victim process
            resource_id: Preempted resource (preempt only)
            released: String describing resources released by termination
        """
        if method == "preempt":
            message = f"RECOVERY - Preempted {resource_id} from {victim_pid}"
        else:
            held = f" (holding {released})" if released else ""
            message = f"RECOVERY - Terminated {victim_pid}{held}"
        self.log_round(round_number, message)

    def log_state(self, round_number: int, state_str: str) -> None:
        """
        Log system state snapshot.

        Args:
            round_number: Current detection round
            state_str: Formatted system state
        """
        if self.verbose:
            self.log_round(round_number, f"System State:\n{state_str}")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
