"""FastAPI HTTP server exposing the execution agent.

Endpoints:

    PUT|POST /exec          <- {"command": "echo", "args": ["hi"], "sync": false}
                            -> {"id": "cmd-..."}  (or the full result when sync)
    GET      /status/{id}   -> {"id": ..., "status": "SUCCESS", "results": [...]}
    PUT|POST /findandstop   <- {"command": "tail"}
                            -> {"id": "", "status": "SUCCESS", "results": ["Process tail was stopped"]}
    GET      /health        -> {"status": "ok", ...}

Request errors (bad bodies, unknown IDs, failed terminations) are reported
as 400 responses. A command that fails to run is not a request error: it
is recorded as a FAILURE execution.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from execagent.core.collector import CompletionCollector
from execagent.core.errors import ExecutionNotFoundError, ProcessTerminationError
from execagent.core.executor import DEFAULT_TIMEOUT, CommandExecutor
from execagent.core.registry import DEFAULT_ID_PREFIX, ExecutionRegistry
from execagent.core.terminator import ProcessTerminator
from execagent.domain.models import Command, CommandID, Execution, ExecutionStatus

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 5
DEFAULT_POLL_INTERVAL = 1.0


class HealthResponse(BaseModel):
    status: str = "ok"
    collector_running: bool = False
    executions: int = 0
    in_progress: int = 0


async def wait_for_terminal(
    registry: ExecutionRegistry,
    execution_id: str,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Execution:
    """Poll the registry until ``execution_id`` reaches a terminal status."""
    while True:
        execution = registry.get(execution_id)
        if execution.is_terminal:
            return execution
        await asyncio.sleep(poll_interval)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    registry: ExecutionRegistry | None = None,
    terminator: ProcessTerminator | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    queue_size: int = DEFAULT_QUEUE_SIZE,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    id_prefix: str = DEFAULT_ID_PREFIX,
    stop_timeout: float = 20.0,
    stop_signal: str = "SIGKILL",
) -> FastAPI:
    """Create the agent application.

    Args:
        registry: Optional pre-built ExecutionRegistry (for testing).
        terminator: Optional pre-built ProcessTerminator (for testing).
        timeout: Seconds each command may run before it is killed.
        queue_size: Capacity of the completion queue.
        poll_interval: Seconds between registry polls for sync commands.
        id_prefix: Prefix of generated execution IDs.
        stop_timeout: Seconds allowed for the process listing in /findandstop.
        stop_signal: Signal name sent by /findandstop.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        completed: asyncio.Queue[Execution] = asyncio.Queue(maxsize=queue_size)
        executor = CommandExecutor(completed, timeout=timeout)
        collector = CompletionCollector(app.state.registry, completed)
        app.state.executor = executor
        app.state.collector = collector
        # The collector must be consuming before the first submission
        collector.start()
        logger.info("Execution agent started (timeout=%gs, queue=%d)", timeout, queue_size)
        yield
        await executor.shutdown()
        await collector.stop()
        logger.info("Execution agent stopped")

    app = FastAPI(
        title="execagent",
        description="Remote command execution agent",
        version="0.1.0",
        lifespan=lifespan,
    )
    if registry is None:
        registry = ExecutionRegistry(id_prefix=id_prefix)
    if terminator is None:
        terminator = ProcessTerminator(timeout=stop_timeout, stop_signal=stop_signal)
    app.state.registry = registry
    app.state.terminator = terminator
    app.state.executor = None
    app.state.collector = None

    @app.exception_handler(RequestValidationError)
    async def bad_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.get("/health")
    async def health_check() -> HealthResponse:
        reg: ExecutionRegistry = app.state.registry
        collector: CompletionCollector | None = app.state.collector
        return HealthResponse(
            status="ok",
            collector_running=collector.is_running if collector else False,
            executions=len(reg),
            in_progress=reg.counts()[ExecutionStatus.IN_PROGRESS],
        )

    @app.api_route("/exec", methods=["PUT", "POST"], response_model=None)
    async def execute_command(command: Command) -> CommandID | Execution:
        reg: ExecutionRegistry = app.state.registry
        executor: CommandExecutor | None = app.state.executor
        if executor is None:
            raise HTTPException(status_code=503, detail="Agent is not running")
        execution_id = reg.register()
        executor.submit(execution_id, command)
        if not command.sync:
            return CommandID(id=execution_id)
        return await wait_for_terminal(reg, execution_id, poll_interval)

    @app.get("/status/")
    async def missing_status_id() -> None:
        raise HTTPException(status_code=400, detail="Invalid request, missing command ID")

    @app.get("/status/{execution_id}")
    async def get_status(execution_id: str) -> Execution:
        reg: ExecutionRegistry = app.state.registry
        try:
            return reg.get(execution_id)
        except ExecutionNotFoundError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @app.api_route("/findandstop", methods=["PUT", "POST"])
    async def find_and_stop(command: Command) -> Execution:
        term: ProcessTerminator = app.state.terminator
        try:
            ack = await term.stop(command.command)
        except ProcessTerminationError as e:
            logger.warning("Could not stop process %s: %s", command.command, e)
            raise HTTPException(status_code=400, detail=f"Could not stop process {e}") from e
        return Execution(id="", status=ExecutionStatus.SUCCESS, results=[ack])

    return app


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def main(host: str = "0.0.0.0", port: int = 8086) -> None:
    """Run the agent with default settings."""
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
