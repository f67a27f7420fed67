"""Traffic generators for CSMA/CD simulation.

This module provides inter-arrival functions and the TrafficGenerator that
turns them into PACKET_ARRIVAL events for every node of the LAN.
"""

import itertools
import logging
from typing import Callable, Dict, Optional

from csma_sim.config import SimulationConfig
from csma_sim.core.enums import EventKind
from csma_sim.core.event_queue import Event, EventQueue
from csma_sim.core.packet import Packet
from csma_sim.utils.metrics import StatisticsCollector
from csma_sim.utils.rng import RandomSource

logger = logging.getLogger(__name__)


def constant_traffic(rate: float) -> Callable[[], float]:
    """Generate constant rate traffic.

    Args:
        rate: Rate of packet generation in packets per second.

    Returns:
        Function that returns constant interval between packets.
    """
    return lambda: 1 / rate


def poisson_traffic(rate: float, rng: RandomSource) -> Callable[[], float]:
    """Generate Poisson traffic.

    Args:
        rate: Average rate of packet generation in packets per second.
        rng: Random source to draw intervals from.

    Returns:
        Function that returns exponentially distributed interval between packets.
    """
    mean = 1 / rate
    return lambda: rng.exponential(mean)


class TrafficGenerator:
    """Produces packet arrivals for every node.

    Each node has its own arrival clock. Only the next arrival of a node is
    held in the event queue; the one after it is drawn when that arrival is
    released to the node.

    Attributes:
        events: Event queue arrivals are scheduled on.
        stats: Collector counting generated packets.
        duration: End of the observation window.
        packet_size_bits: Size of generated packets.
        interval: Function returning the next inter-arrival time.
    """

    def __init__(
        self,
        events: EventQueue,
        rng: RandomSource,
        stats: StatisticsCollector,
        config: SimulationConfig,
        interval: Optional[Callable[[], float]] = None,
    ):
        """Initialize the generator.

        Args:
            events: Event queue arrivals are scheduled on.
            rng: Random source for Poisson intervals.
            stats: Collector counting generated packets.
            config: Simulation configuration.
            interval: Inter-arrival function (default: Poisson at config.rate).
        """
        self.events = events
        self.stats = stats
        self.duration = config.duration
        self.packet_size_bits = config.packet_size_bits
        self.node_count = config.node_count
        self.interval = interval if interval is not None else poisson_traffic(config.rate, rng)
        self._packet_ids = itertools.count(1)
        self._pending: Dict[int, Packet] = {}

    def start(self) -> None:
        """Schedule the first arrival of every node."""
        for node_id in range(self.node_count):
            self.schedule_next(node_id, 0.0)

    def schedule_next(self, node_id: int, now: float) -> Optional[Event]:
        """Schedule the next arrival of a node.

        Args:
            node_id: Node to generate for.
            now: Time of the previous arrival.

        Returns:
            The scheduled event, or None once the arrival clock passes the
            end of the run.
        """
        arrival_time = now + self.interval()
        if arrival_time > self.duration:
            logger.debug("Node %d: arrival clock passed t=%s, no more arrivals", node_id, self.duration)
            return None

        packet = Packet(next(self._packet_ids), self.packet_size_bits, arrival_time, node_id)
        self._pending[node_id] = packet
        self.stats.record_generated(node_id)
        return self.events.schedule(arrival_time, EventKind.PACKET_ARRIVAL, node_id)

    def release(self, event: Event) -> Packet:
        """Hand the packet of a popped arrival event to its node.

        Also schedules the node's following arrival.

        Args:
            event: The PACKET_ARRIVAL event.

        Returns:
            The arriving packet.
        """
        packet = self._pending.pop(event.node_id)
        self.schedule_next(event.node_id, event.time)
        return packet
