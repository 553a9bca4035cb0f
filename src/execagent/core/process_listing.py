"""Platform-specific commands that list process IDs by exact name.

Each command prints one PID per matching process, one per line.
"""

from __future__ import annotations

import sys

from execagent.core.errors import UnsupportedPlatformError

_BSD_PREFIXES = ("darwin", "freebsd", "openbsd", "netbsd")


def ps_command(process_name: str, platform: str | None = None) -> tuple[str, list[str]]:
    """Return the program and arguments listing PIDs named ``process_name``.

    Raises:
        UnsupportedPlatformError: If no listing command is known for the platform.
    """
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return "ps", ["-C", process_name, "-o", "pid="]
    if platform.startswith(_BSD_PREFIXES):
        return "pgrep", ["-x", process_name]
    raise UnsupportedPlatformError(
        f"No process listing command for platform {platform}",
        process_name=process_name,
    )
