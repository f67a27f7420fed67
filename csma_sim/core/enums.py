"""Enumerations for CSMA/CD simulation.

This module defines enumerations used throughout the simulator.
"""

from enum import Enum


class EventKind(Enum):
    """Enum for the kinds of events the engine dispatches.

    Attributes:
        PACKET_ARRIVAL: A new packet arrives at a node.
        CARRIER_SENSE_RETRY: A node senses the carrier again.
        TRANSMISSION_START: A node starts transmitting its head-of-queue packet.
        TRANSMISSION_END: A transmission has fully cleared the medium.
        COLLISION_DETECTED: A node learns that its transmission collided.
        BACKOFF_EXPIRED: A node's backoff timer has run out.
    """

    PACKET_ARRIVAL = 1
    CARRIER_SENSE_RETRY = 2
    TRANSMISSION_START = 3
    TRANSMISSION_END = 4
    COLLISION_DETECTED = 5
    BACKOFF_EXPIRED = 6


class NodeState(Enum):
    """Enum for the protocol states of a station.

    Attributes:
        IDLE: No packets are queued.
        SENSING: The head-of-queue packet is waiting for channel access.
        TRANSMITTING: The node is on the medium.
        BACKOFF: The node is waiting out a backoff delay after a collision.
    """

    IDLE = 1
    SENSING = 2
    TRANSMITTING = 3
    BACKOFF = 4


class DropReason(str, Enum):
    """Reasons a packet leaves a node without being delivered."""

    EXCESSIVE_COLLISIONS = "Excessive collisions"
    BUFFER_OVERFLOW = "Buffer overflow"
