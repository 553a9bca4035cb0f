"""Runs external commands and reports their outcome.

Each submitted command runs in its own asyncio task as a child process
bounded by an absolute deadline. The terminal ``Execution`` is delivered
to the completion queue; when the queue is full the task waits, which
is the only backpressure between executors and the collector.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from execagent.domain.models import Command, Execution

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


def split_lines(data: bytes) -> list[str]:
    """Split captured output into lines.

    Lines are separated by ``\\n``; a trailing ``\\r`` is dropped from each
    line and a final newline does not produce an empty last line.
    """
    if not data:
        return []
    text = data.decode("utf-8", errors="replace")
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def describe_exit(returncode: int, stderr: bytes = b"") -> str:
    """Single-line description of an abnormal process exit."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"signal: {name}"
    message = f"exit status {returncode}"
    first = next(iter(split_lines(stderr)), "").strip()
    if first:
        message = f"{message}: {first}"
    return message


class CommandExecutor:
    """Launches commands as child processes under a per-command deadline.

    Usage::

        completed: asyncio.Queue[Execution] = asyncio.Queue(maxsize=5)
        executor = CommandExecutor(completed, timeout=20.0)
        executor.submit(execution_id, Command(command="echo", args=["hi"]))

    Once submitted a command cannot be withdrawn; it ends when the program
    exits or when its deadline kills it.
    """

    def __init__(
        self,
        completed: asyncio.Queue[Execution],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._completed = completed
        self._timeout = timeout
        self._tasks: set[asyncio.Task[Execution]] = set()

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, execution_id: str, command: Command) -> asyncio.Task[Execution]:
        """Schedule ``command`` and return the task running it.

        The deadline is fixed here, at submission time.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        task = loop.create_task(
            self.run(deadline, execution_id, command),
            name=f"execute-{execution_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, deadline: float, execution_id: str, command: Command) -> Execution:
        """Run ``command`` to completion and deliver its terminal record.

        Args:
            deadline: Absolute event loop time after which the child is killed.
            execution_id: ID the result is recorded under.
            command: The program and arguments to launch.

        Returns:
            The Execution that was put onto the completion queue.
        """
        result = await self._execute(deadline, execution_id, command)
        await self._completed.put(result)
        return result

    async def _execute(self, deadline: float, execution_id: str, command: Command) -> Execution:
        logger.info("Executing command %s with arguments %s", command.command, command.argv)
        try:
            process = await asyncio.create_subprocess_exec(
                *command.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            message = f'exec: "{command.command}": {e.strerror or e}'
            logger.warning("Command %s (%s) failed to start: %s", command.command, execution_id, message)
            return Execution.failed(execution_id, message)

        remaining = max(deadline - asyncio.get_running_loop().time(), 0.0)
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=remaining)
        except asyncio.TimeoutError:
            await self._kill(process)
            message = f"deadline exceeded after {self._timeout:g}s: process killed"
            logger.warning("Command %s (%s) timed out, killed pid %d", command.command, execution_id, process.pid)
            return Execution.failed(execution_id, message)
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            message = describe_exit(process.returncode, stderr)
            logger.warning("Command %s (%s) failed: %s", command.command, execution_id, message)
            return Execution.failed(execution_id, message)

        lines = split_lines(stdout)
        logger.debug("Command %s (%s) succeeded with %d lines", command.command, execution_id, len(lines))
        return Execution.succeeded(execution_id, lines)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill the child's whole process group, then reap the child.

        Descendants holding the output pipes open would otherwise keep
        ``wait()`` from returning after the child itself is gone.
        """
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()

    async def shutdown(self) -> None:
        """Cancel all in-flight commands, killing their processes."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight commands", len(tasks))
