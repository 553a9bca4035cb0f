"""Exceptions raised by the execagent core."""

from __future__ import annotations


class ExecAgentError(Exception):
    """Base class for execagent errors."""


class ExecutionNotFoundError(ExecAgentError, KeyError):
    """Raised when an execution ID is not known to the registry."""

    def __init__(self, execution_id: str) -> None:
        super().__init__(f"Unknown command ID {execution_id}")
        self.execution_id = execution_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class ExecutionStateError(ExecAgentError):
    """Raised when a record would break the single terminal transition."""


class ProcessTerminationError(ExecAgentError):
    """Raised when a process cannot be located or signalled."""

    def __init__(self, message: str, process_name: str = "", pid: int | None = None) -> None:
        super().__init__(message)
        self.process_name = process_name
        self.pid = pid


class UnsupportedPlatformError(ProcessTerminationError):
    """Raised when no process listing command is known for the platform."""
