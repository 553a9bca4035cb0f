"""Thread-safe store of executions keyed by ID.

The registry is the only mutable state shared between request handlers,
executors and the completion collector. Every operation takes the same
lock and only performs dictionary work while holding it.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections import Counter
from typing import Callable

from execagent.core.errors import ExecutionNotFoundError, ExecutionStateError
from execagent.domain.models import Execution, ExecutionStatus

logger = logging.getLogger(__name__)

DEFAULT_ID_PREFIX = "cmd-"


class ExecutionRegistry:
    """Maps execution IDs to their current ``Execution`` record.

    Records are never evicted: every execution registered during the life
    of the agent stays queryable until the process exits.

    Usage::

        registry = ExecutionRegistry()
        execution_id = registry.register()
        registry.get(execution_id).status   # ExecutionStatus.IN_PROGRESS
        registry.apply(Execution.succeeded(execution_id, ["hello"]))
    """

    def __init__(
        self,
        id_prefix: str = DEFAULT_ID_PREFIX,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._id_prefix = id_prefix
        self._id_factory = id_factory or self._random_id
        self._executions: dict[str, Execution] = {}
        self._counts: Counter[ExecutionStatus] = Counter()
        self._lock = threading.Lock()

    def _random_id(self) -> str:
        return f"{self._id_prefix}{secrets.randbits(63)}"

    def register(self) -> str:
        """Create a new in-progress execution and return its unique ID."""
        with self._lock:
            execution_id = self._id_factory()
            while execution_id in self._executions:
                execution_id = self._id_factory()
            self._executions[execution_id] = Execution.pending(execution_id)
            self._counts[ExecutionStatus.IN_PROGRESS] += 1
        logger.debug("Registered execution %s", execution_id)
        return execution_id

    def get(self, execution_id: str) -> Execution:
        """Return the current record for ``execution_id``.

        Raises:
            ExecutionNotFoundError: If the ID was never registered.
        """
        with self._lock:
            execution = self._executions.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    def apply(self, execution: Execution) -> None:
        """Replace an in-progress record with its terminal outcome.

        Raises:
            ExecutionNotFoundError: If the ID was never registered.
            ExecutionStateError: If ``execution`` is not terminal, or the
                stored record already reached a terminal status.
        """
        if not execution.is_terminal:
            raise ExecutionStateError(
                f"Cannot apply non-terminal status {execution.status.value} to {execution.id}"
            )
        with self._lock:
            current = self._executions.get(execution.id)
            if current is None:
                raise ExecutionNotFoundError(execution.id)
            if current.is_terminal:
                raise ExecutionStateError(
                    f"Execution {execution.id} already finished with {current.status.value}"
                )
            self._executions[execution.id] = execution
            self._counts[current.status] -= 1
            self._counts[execution.status] += 1
        logger.debug("Execution %s finished with %s", execution.id, execution.status.value)

    def counts(self) -> dict[ExecutionStatus, int]:
        """Number of held executions per status."""
        with self._lock:
            counts = dict(self._counts)
        return {status: counts.get(status, 0) for status in ExecutionStatus}

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)

    def __contains__(self, execution_id: object) -> bool:
        with self._lock:
            return execution_id in self._executions
