"""Single consumer that records finished executions in the registry."""

from __future__ import annotations

import asyncio
import logging

from execagent.core.errors import ExecAgentError
from execagent.core.registry import ExecutionRegistry
from execagent.domain.models import Execution

logger = logging.getLogger(__name__)


class CompletionCollector:
    """Drains the completion queue into the registry.

    Must be started before any command is submitted: executors block on
    a full queue, so without a running collector they eventually stall.
    """

    def __init__(
        self,
        registry: ExecutionRegistry,
        completed: asyncio.Queue[Execution],
    ) -> None:
        self._registry = registry
        self._completed = completed
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the collector loop in a background task."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._collect_loop(), name="completion-collector"
        )
        logger.info("Completion collector started")

    async def stop(self) -> None:
        """Stop the collector loop."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Completion collector stopped")

    async def _collect_loop(self) -> None:
        while True:
            execution = await self._completed.get()
            try:
                self._registry.apply(execution)
            except ExecAgentError as e:
                logger.error("Dropping completion for %s: %s", execution.id, e)
            finally:
                self._completed.task_done()
