"""Channel class for CSMA/CD simulation.

This module defines the Channel class, which represents the single shared
medium every station transmits on. The channel tracks which stations are
currently on the medium, detects overlapping transmissions and keeps
account of how long the medium was busy.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Transmission:
    """A station's presence on the medium.

    Attributes:
        node_id: Transmitting node.
        start_time: Time the node registered with the channel.
        epoch: The node's transmission attempt counter at registration.
        collided: Whether a collision has already been signalled for it.
    """

    node_id: int
    start_time: float
    epoch: int
    collided: bool = False


class Channel:
    """Represents the shared medium of the LAN.

    Attributes:
        propagation_delay: End-to-end propagation delay in seconds.
        active_transmitters: Transmissions currently on the medium, keyed by node ID.
        waiting: Nodes waiting for the medium to go idle (1-persistent mode).
        busy_time: Accumulated time with at least one active transmitter.
        collisions: Number of collision incidents observed.
    """

    def __init__(self, propagation_delay: float):
        """Initialize an idle channel.

        Args:
            propagation_delay: End-to-end propagation delay in seconds.
        """
        self.propagation_delay = propagation_delay
        self.active_transmitters: Dict[int, Transmission] = {}
        self.waiting: List[int] = []
        self.busy_time = 0.0
        self.collisions = 0
        self._busy_since: Optional[float] = None

    @property
    def busy(self) -> bool:
        """Whether any station is on the medium."""
        return len(self.active_transmitters) >= 1

    def is_sensed_busy(self, time: float) -> bool:
        """Carrier sense as seen by a station at the given time.

        A transmission is only heard once its signal has had time to cross
        the medium, so transmissions younger than the propagation delay are
        invisible.

        Args:
            time: Current simulation time.

        Returns:
            True if the carrier of some active transmission is present.
        """
        return any(
            time - transmission.start_time >= self.propagation_delay
            for transmission in self.active_transmitters.values()
        )

    def register(self, node_id: int, time: float, epoch: int) -> List[Transmission]:
        """Put a station on the medium.

        Args:
            node_id: Node starting a transmission.
            time: Current simulation time.
            epoch: Transmission attempt counter of the node.

        Returns:
            Transmissions that must be told about a collision. Empty when the
            new transmission does not overlap another one.
        """
        if node_id in self.active_transmitters:
            raise ValueError(f"Node {node_id} is already transmitting")

        if not self.active_transmitters:
            self._busy_since = time

        overlapping = [
            t
            for t in self.active_transmitters.values()
            if time - t.start_time < self.propagation_delay
        ]
        self.active_transmitters[node_id] = Transmission(node_id, time, epoch)

        if not overlapping:
            return []

        self.collisions += 1
        victims = [t for t in self.active_transmitters.values() if not t.collided]
        for transmission in victims:
            transmission.collided = True
        logger.debug(
            "Collision at t=%.9f between nodes %s",
            time,
            sorted(self.active_transmitters),
        )
        return victims

    def unregister(self, node_id: int, time: float) -> List[int]:
        """Take a station off the medium.

        Args:
            node_id: Node ending or aborting its transmission.
            time: Current simulation time.

        Returns:
            Nodes to wake up because the medium just went idle, in the order
            they started waiting.
        """
        if node_id not in self.active_transmitters:
            raise ValueError(f"Node {node_id} is not transmitting")

        del self.active_transmitters[node_id]
        if self.active_transmitters:
            return []

        self.busy_time += time - self._busy_since
        self._busy_since = None

        woken, self.waiting = self.waiting, []
        return woken

    def wait_for_idle(self, node_id: int) -> None:
        """Ask to be woken up the next time the medium goes idle.

        Args:
            node_id: Node waiting for the medium.
        """
        if node_id not in self.waiting:
            self.waiting.append(node_id)

    def close(self, time: float) -> None:
        """Account for a busy period still open at the end of the run.

        Args:
            time: End of the observation window.
        """
        if self._busy_since is not None and time > self._busy_since:
            self.busy_time += time - self._busy_since
            self._busy_since = time

    def __repr__(self) -> str:
        state = "busy" if self.busy else "idle"
        return f"Channel({state}, {len(self.active_transmitters)} active, {self.propagation_delay*1e6:.1f}us)"
