"""Command-line interface for execagent.

Runs the agent server, or talks to a running agent as a client.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="execagent",
        description="Remote command execution agent",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/execagent.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the agent HTTP server")
    serve_parser.add_argument("--host", type=str, default=None, help="Interface to bind")
    serve_parser.add_argument("--port", type=int, default=None, help="The port to use")
    serve_parser.add_argument(
        "--log-file", type=str, default=None,
        help="Also append logs to this file (e.g. ./execagent.log)",
    )

    exec_parser = subparsers.add_parser("exec", help="Run a command on an agent")
    exec_parser.add_argument("--sync", action="store_true", help="Wait for the result")
    exec_parser.add_argument("program", help="Program to run")
    exec_parser.add_argument("args", nargs=argparse.REMAINDER, help="Program arguments")

    status_parser = subparsers.add_parser("status", help="Show the status of an execution")
    status_parser.add_argument("id", help="Execution ID")

    stop_parser = subparsers.add_parser("stop", help="Stop a process by name on an agent")
    stop_parser.add_argument("name", help="Process name")

    for sub in (exec_parser, status_parser, stop_parser):
        sub.add_argument(
            "--url", type=str, default=None,
            help="Agent base URL (default: http://localhost:<configured port>)",
        )

    return parser.parse_args(argv)


async def _client_call(args: argparse.Namespace, base_url: str) -> str:
    """Perform one client request and return the JSON response body."""
    from execagent.client import AgentClient

    async with AgentClient(base_url=base_url) as client:
        if args.command == "exec":
            result = await client.execute(args.program, args.args, sync=args.sync)
        elif args.command == "status":
            result = await client.status(args.id)
        else:
            result = await client.find_and_stop(args.name)
    return result.model_dump_json()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the execagent CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from execagent.config.settings import load_settings
    from execagent.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    if args.command == "serve":
        if args.log_file:
            settings.logging.file = args.log_file
        setup_logging(settings.logging)

        from execagent.endpoint.server import create_app
        import uvicorn

        host = args.host or settings.server.host
        port = args.port or settings.server.port
        ex = settings.execution
        app = create_app(
            timeout=ex.timeout,
            queue_size=ex.queue_size,
            poll_interval=ex.poll_interval,
            id_prefix=ex.id_prefix,
            stop_timeout=settings.terminator.timeout,
            stop_signal=settings.terminator.signal,
        )
        logger.info("Starting agent on %s:%d", host, port)
        uvicorn.run(app, host=host, port=port)
        return

    setup_logging(settings.logging)

    from execagent.client import AgentClientError

    base_url = args.url or f"http://localhost:{settings.server.port}"
    try:
        print(asyncio.run(_client_call(args, base_url)))
    except AgentClientError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
