"""Packet class for CSMA/CD simulation.

This module defines the Packet class, which represents a frame queued at a
station of the simulated LAN.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Packet:
    """Represents a packet waiting for, or being sent over, the shared medium.

    Attributes:
        id: Unique identifier for the packet within a run.
        size_bits: Size of the packet in bits.
        arrival_time: Time when the packet arrived at its node.
        node_id: Node that owns the packet.
        attempt_count: Number of transmission attempts made so far.
        delivery_time: Time when the packet was delivered.
        dropped: Whether the packet was dropped.
    """

    id: int
    size_bits: int
    arrival_time: float
    node_id: int
    attempt_count: int = 0
    delivery_time: Optional[float] = None
    dropped: bool = False

    def get_sojourn_time(self) -> Optional[float]:
        """Calculate the time spent at the node if the packet was delivered.

        Returns:
            Sojourn time in seconds or None if the packet hasn't been delivered.
        """
        if self.delivery_time is None:
            return None
        return self.delivery_time - self.arrival_time
