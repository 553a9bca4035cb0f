"""HTTP boundary for execagent.

Maps inbound requests onto the execution registry, the command executor
and the process terminator, and serialises their results as JSON.
"""
