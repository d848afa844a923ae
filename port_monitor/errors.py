from __future__ import annotations
from typing import Optional, Sequence


class PortMonitorError(Exception):
    kind = "error"


class CommandExecutionError(PortMonitorError):
    """A system utility could not be run or exited non-zero."""
    kind = "command_execution"

    def __init__(self, command: Sequence[str], reason: str, returncode: Optional[int] = None):
        self.command = list(command)
        self.reason = reason
        self.returncode = returncode
        msg = f"{' '.join(self.command)}: {reason}"
        if returncode is not None:
            msg += f" (exit {returncode})"
        super().__init__(msg)


class InterfaceEnumerationError(PortMonitorError):
    kind = "interface_enumeration"


class InsufficientFreePortsError(PortMonitorError):
    kind = "insufficient_free_ports"

    def __init__(self, count: int, low: int, high: int, reason: str = ""):
        self.count = count
        self.low = low
        self.high = high
        msg = f"no {count} consecutive free ports in range {low}-{high}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MalformedInputError(PortMonitorError):
    """Single socket-table row that could not be parsed; callers skip it."""
    kind = "malformed_input"

    def __init__(self, line: str, reason: str):
        self.line = line
        super().__init__(f"{reason}: {line!r}")


class PersistenceError(PortMonitorError):
    kind = "persistence"


class PersistenceCorruptionWarning(UserWarning):
    pass
