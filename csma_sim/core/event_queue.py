"""Event calendar for CSMA/CD simulation.

This module defines the Event record and the EventQueue, which keeps the
future events of a run in time order. The calendar itself is a SimPy
environment: every scheduled event becomes a SimPy timeout carrying the
Event as its value, and popping an event steps the environment once.
"""

import itertools
from collections import deque
from dataclasses import dataclass, field
from typing import Deque

import simpy

from csma_sim.core.enums import EventKind
from csma_sim.core.errors import QueueEmpty, QueueExhaustion


@dataclass(order=True, frozen=True)
class Event:
    """A scheduled simulation event.

    Events compare by (time, sequence), which is the order they are
    dispatched in.

    Attributes:
        time: Simulation time at which the event fires, in seconds.
        sequence: Tie-breaker assigned when the event is scheduled.
        kind: What happens when the event fires.
        node_id: The node the event is addressed to.
        epoch: Transmission attempt the event belongs to.
    """

    time: float
    sequence: int
    kind: EventKind = field(compare=False)
    node_id: int = field(compare=False)
    epoch: int = field(default=0, compare=False)

    def __str__(self) -> str:
        return f"{self.time:.9f} #{self.sequence} {self.kind.name} node={self.node_id}"


class EventQueue:
    """Time-ordered calendar of future events.

    Attributes:
        env: SimPy environment holding the pending events.
        current_time: Time of the most recently popped event.
    """

    def __init__(self, env: simpy.Environment | None = None) -> None:
        """Initialize an empty event queue.

        Args:
            env: SimPy environment to schedule on (default: a fresh one).
        """
        self.env = env if env is not None else simpy.Environment()
        self.current_time: float = self.env.now
        self._sequence = itertools.count()
        self._fired: Deque[Event] = deque()
        self._pending = 0

    def schedule(
        self, time: float, kind: EventKind, node_id: int, epoch: int = 0
    ) -> Event:
        """Schedule a new event.

        Args:
            time: Absolute simulation time of the event.
            kind: Kind of the event.
            node_id: Node the event is addressed to.
            epoch: Transmission attempt the event belongs to.

        Returns:
            The scheduled Event.

        Raises:
            ValueError: If the event would fire before the current time.
        """
        if time < self.current_time:
            raise ValueError(
                f"Cannot schedule {kind.name} at {time} before current time {self.current_time}"
            )

        event = Event(time, next(self._sequence), kind, node_id, epoch)
        timeout = self.env.timeout(max(0.0, time - self.env.now), value=event)
        timeout.callbacks.append(self._fire)
        self._pending += 1
        return event

    def _fire(self, timeout: simpy.events.Timeout) -> None:
        self._fired.append(timeout.value)

    def pop_next(self) -> Event:
        """Remove and return the earliest scheduled event.

        Returns:
            The earliest Event.

        Raises:
            QueueEmpty: If no event is scheduled.
        """
        while not self._fired:
            if self.env.peek() == float("inf"):
                raise QueueEmpty("No events scheduled")
            self.env.step()

        event = self._fired.popleft()
        self._pending -= 1
        self.current_time = event.time
        return event

    def pop_next_or_raise(self) -> Event:
        """Pop the next event when one is required to exist.

        Raises:
            QueueExhaustion: If the calendar ran dry.
        """
        try:
            return self.pop_next()
        except QueueEmpty as e:
            raise QueueExhaustion(
                f"Event queue exhausted at t={self.current_time}"
            ) from e

    def is_empty(self) -> bool:
        return self._pending == 0

    def __len__(self) -> int:
        return self._pending

    def __repr__(self) -> str:
        return f"EventQueue(now={self.current_time}, pending={self._pending})"
