"""Log output for the agent.

Everything under the ``execagent`` logger goes to stderr and, when a log
file is configured, is appended to it so history survives restarts.
"""

from __future__ import annotations

import logging
import sys

from execagent.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the agent's log handlers.

    Safe to call more than once: handlers from an earlier call are closed
    and replaced, so a CLI override of the level or file takes effect.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    agent_logger = logging.getLogger("execagent")
    agent_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(agent_logger.handlers):
        agent_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    # stderr always
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    agent_logger.addHandler(console_handler)

    # Optional log file, opened for append
    if config.file:
        file_handler = logging.FileHandler(config.file, mode="a")
        file_handler.setFormatter(formatter)
        agent_logger.addHandler(file_handler)

    agent_logger.info("Logging initialized at %s level", config.level)
