"""Shared test fixtures for the execagent test suite.

Child processes are launched with the running interpreter so tests do
not depend on which utilities the host has installed.
"""

from __future__ import annotations

import sys
from typing import Callable

import pytest

from execagent.core.registry import ExecutionRegistry
from execagent.domain.models import Command


@pytest.fixture
def registry() -> ExecutionRegistry:
    """An empty registry."""
    return ExecutionRegistry()


@pytest.fixture
def python_command() -> Callable[..., Command]:
    """Build a Command that runs a Python snippet in a child interpreter."""

    def _build(code: str, sync: bool = False) -> Command:
        return Command(command=sys.executable, args=["-c", code], sync=sync)

    return _build


@pytest.fixture
def missing_command() -> Command:
    """A Command whose program does not exist."""
    return Command(command="execagent-no-such-binary-7f3a", sync=True)
