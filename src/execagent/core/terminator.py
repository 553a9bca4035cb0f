"""Find a running process by name and stop it.

The PID is taken from the first line printed by the platform's process
listing command. When several processes share the name only that first
one is signalled; which one comes first is up to the platform.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Callable

from execagent.core.errors import ProcessTerminationError
from execagent.core.executor import describe_exit, split_lines
from execagent.core.process_listing import ps_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0
DEFAULT_SIGNAL = "SIGKILL"


class ProcessTerminator:
    """Stops processes by name.

    Usage::

        terminator = ProcessTerminator()
        ack = await terminator.stop("tail")   # "Process tail was stopped"
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        stop_signal: str = DEFAULT_SIGNAL,
        listing: Callable[[str], tuple[str, list[str]]] = ps_command,
    ) -> None:
        try:
            self._signal = signal.Signals[stop_signal.upper()]
        except KeyError as e:
            raise ValueError(f"Unknown signal: {stop_signal}") from e
        self._timeout = timeout
        self._listing = listing

    async def stop(self, process_name: str, deadline: float | None = None) -> str:
        """Signal the first process named ``process_name``.

        Args:
            process_name: Exact process name to look up.
            deadline: Absolute event loop time bounding the listing command.
                Defaults to the configured timeout from now.

        Returns:
            A confirmation line for the caller.

        Raises:
            ProcessTerminationError: If the process cannot be found or signalled.
        """
        if deadline is None:
            deadline = asyncio.get_running_loop().time() + self._timeout
        pid = await self.find_pid(process_name, deadline)

        try:
            os.kill(pid, 0)
        except ProcessLookupError as e:
            raise ProcessTerminationError(
                f"Failed to find process with name {process_name} (PID: {pid}): {e}",
                process_name=process_name, pid=pid,
            ) from e
        except PermissionError:
            # Exists but belongs to someone else; the real signal reports it
            pass

        try:
            os.kill(pid, self._signal)
        except OSError as e:
            raise ProcessTerminationError(
                f"Failed to stop process {process_name} (PID:{pid}): {e}",
                process_name=process_name, pid=pid,
            ) from e

        logger.info("Sent %s to process %s (PID: %d)", self._signal.name, process_name, pid)
        return f"Process {process_name} was stopped"

    async def find_pid(self, process_name: str, deadline: float) -> int:
        """Return the first PID reported for ``process_name``."""
        program, args = self._listing(process_name)
        output = await self._run_listing(process_name, program, args, deadline)

        first = next(iter(split_lines(output)), "").strip()
        try:
            pid = int(first)
        except ValueError as e:
            raise ProcessTerminationError(
                f"Failed to parse process ID for process {process_name}: {e}",
                process_name=process_name,
            ) from e
        if pid <= 0:
            raise ProcessTerminationError(
                f"Failed to parse process ID for process {process_name}: invalid PID {pid}",
                process_name=process_name,
            )
        return pid

    async def _run_listing(
        self, process_name: str, program: str, args: list[str], deadline: float
    ) -> bytes:
        failure = f"Failed to execute command to find process {process_name}"
        logger.debug("Looking up process %s with %s %s", process_name, program, args)
        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessTerminationError(f"{failure}: {e}", process_name=process_name) from e

        remaining = max(deadline - asyncio.get_running_loop().time(), 0.0)
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=remaining)
        except asyncio.TimeoutError as e:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise ProcessTerminationError(
                f"{failure}: deadline exceeded", process_name=process_name
            ) from e

        if process.returncode != 0:
            raise ProcessTerminationError(
                f"{failure}: {describe_exit(process.returncode, stderr)}",
                process_name=process_name,
            )
        return stdout
