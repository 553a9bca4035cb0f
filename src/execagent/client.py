"""Async HTTP client for a running execagent.

Wraps the agent's JSON API with httpx and returns the domain models.
"""

from __future__ import annotations

import logging

import httpx

from execagent.domain.models import Command, CommandID, Execution

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8086"


class AgentClientError(Exception):
    """Raised when a request to the agent fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AgentClient:
    """Talks to the execagent HTTP API.

    Example usage::

        async with AgentClient("http://host:8086") as client:
            result = await client.execute("uname", ["-a"], sync=True)
            print(result.results)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.debug("Client created for %s", self._base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def execute(
        self, command: str, args: list[str] | None = None, sync: bool = False
    ) -> CommandID | Execution:
        """Submit a command.

        Returns a CommandID for async submissions, or the terminal
        Execution when ``sync`` is true.
        """
        payload = Command(command=command, args=args or [], sync=sync)
        resp = await self._request("POST", "/exec", json=payload.model_dump())
        if sync:
            return Execution.model_validate(resp.json())
        return CommandID.model_validate(resp.json())

    async def status(self, execution_id: str) -> Execution:
        """Fetch the current state of an execution."""
        resp = await self._request("GET", f"/status/{execution_id}")
        return Execution.model_validate(resp.json())

    async def find_and_stop(self, process_name: str) -> Execution:
        """Stop the first process named ``process_name`` on the agent host."""
        payload = Command(command=process_name)
        resp = await self._request("POST", "/findandstop", json=payload.model_dump())
        return Execution.model_validate(resp.json())

    async def _request(self, method: str, path: str, **kwargs: object) -> httpx.Response:
        if self._client is None:
            raise AgentClientError("Not connected to agent")
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise AgentClientError(f"HTTP request to {path} failed: {e}") from e
        if resp.is_error:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise AgentClientError(
                f"{method} {path} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        return resp

    async def __aenter__(self) -> AgentClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()
