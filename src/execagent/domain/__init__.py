"""Domain models for execagent.

This package contains the core data structures and enumerations used
throughout the system. All models use Pydantic v2 for validation and
serialization.
"""

from execagent.domain.models import (
    Command,
    CommandID,
    Execution,
    ExecutionStatus,
)

__all__ = [
    "Command",
    "CommandID",
    "Execution",
    "ExecutionStatus",
]
