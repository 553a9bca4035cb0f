"""Execution tracking and concurrency engine.

The registry holds execution state, executors run commands and push
their outcome onto a bounded queue, and a single collector applies
those outcomes back to the registry. The terminator stops processes
by name.
"""

from execagent.core.collector import CompletionCollector
from execagent.core.errors import (
    ExecAgentError,
    ExecutionNotFoundError,
    ExecutionStateError,
    ProcessTerminationError,
    UnsupportedPlatformError,
)
from execagent.core.executor import CommandExecutor
from execagent.core.registry import ExecutionRegistry
from execagent.core.terminator import ProcessTerminator

__all__ = [
    "CommandExecutor",
    "CompletionCollector",
    "ExecAgentError",
    "ExecutionNotFoundError",
    "ExecutionRegistry",
    "ExecutionStateError",
    "ProcessTerminationError",
    "ProcessTerminator",
    "UnsupportedPlatformError",
]
