"""Exceptions raised by the CSMA/CD simulator.

Collisions and dropped packets are normal simulated outcomes and are
recorded in the statistics; only misconfiguration and engine faults are
raised.
"""


class ConfigError(ValueError):
    """Raised when a simulation parameter is invalid."""


class QueueEmpty(Exception):
    """Raised by EventQueue.pop_next when no event is scheduled."""


class QueueExhaustion(RuntimeError):
    """Raised when the engine requires an event but the calendar is empty."""
