"""execagent -- Remote command-execution agent.

Exposes a small HTTP API that lets a caller launch an external program on
the host, poll for its outcome, or terminate a running program by name.
Executions are tracked in an in-memory registry for the lifetime of the
agent process.
"""

__version__ = "0.1.0"
