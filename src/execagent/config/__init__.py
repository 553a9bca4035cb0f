"""Agent settings: server binding, execution limits, process termination
and logging, read from ``config/execagent.yaml`` and ``EXECAGENT_`` variables.
"""

from execagent.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
