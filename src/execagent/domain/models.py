"""Core domain models for the execagent system.

These models are both the in-memory records tracked by the execution
registry and the JSON shapes exchanged with callers over HTTP:

    Command      {"command": str, "args": [str], "sync": bool}
    CommandID    {"id": str}
    CommandExec  {"id": str, "status": "SUCCESS"|"FAILURE"|"IN PROGRESS", "results": [str]}

``Execution`` is the model serialised as ``CommandExec``.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ExecutionStatus(str, enum.Enum):
    """Status of a tracked execution."""

    IN_PROGRESS = "IN PROGRESS"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.IN_PROGRESS


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Command(BaseModel):
    """A program to run on the host.

    When ``sync`` is true the caller waits for the terminal result instead
    of receiving an execution ID straight away.
    """

    model_config = ConfigDict(frozen=True)

    command: str = Field(description="Program name or path, resolved via PATH")
    args: list[str] = Field(default_factory=list, description="Arguments passed to the program")
    sync: bool = Field(default=False, description="Wait for the command to finish")

    @field_validator("args", mode="before")
    @classmethod
    def _null_args(cls, v: object) -> object:
        # "args": null means no arguments
        return [] if v is None else v

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


class CommandID(BaseModel):
    """Identifier returned for an asynchronously submitted command."""

    model_config = ConfigDict(frozen=True)

    id: str


# ---------------------------------------------------------------------------
# Execution records
# ---------------------------------------------------------------------------


class Execution(BaseModel):
    """The tracked state of one submitted command.

    Created in progress with no results, then replaced exactly once by a
    terminal record carrying either the captured output lines or a single
    error description.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    status: ExecutionStatus = Field(default=ExecutionStatus.IN_PROGRESS)
    results: list[str] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def pending(cls, execution_id: str) -> Execution:
        return cls(id=execution_id, status=ExecutionStatus.IN_PROGRESS, results=[])

    @classmethod
    def succeeded(cls, execution_id: str, lines: list[str]) -> Execution:
        return cls(id=execution_id, status=ExecutionStatus.SUCCESS, results=list(lines))

    @classmethod
    def failed(cls, execution_id: str, message: str) -> Execution:
        return cls(id=execution_id, status=ExecutionStatus.FAILURE, results=[message])
