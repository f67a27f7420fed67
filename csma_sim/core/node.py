"""Node class for CSMA/CD simulation.

This module defines the Node class, which represents a station attached to
the shared medium. A node is a state machine: every event addressed to it is
looked up in a transition table keyed by the node's current state and the
event's kind.
"""

import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, Tuple

from csma_sim.config import SimulationConfig
from csma_sim.core.backoff import BinaryExponentialBackoff
from csma_sim.core.channel import Channel
from csma_sim.core.enums import DropReason, EventKind, NodeState
from csma_sim.core.event_queue import Event, EventQueue
from csma_sim.core.packet import Packet
from csma_sim.traffic.generators import TrafficGenerator
from csma_sim.utils.metrics import StatisticsCollector

logger = logging.getLogger(__name__)

Transition = Callable[["Node", Event], None]


class Node:
    """Represents a station running CSMA/CD.

    Attributes:
        id: Unique identifier for the node.
        state: Current protocol state.
        queue: Packets waiting at the node, head of queue first.
        current_attempt: Collisions suffered by the head-of-queue packet.
        backoff_deadline: End of the running backoff, if any.
        epoch: Counter of transmission attempts, used to spot stale events.
        persistent: Whether the node runs 1-persistent CSMA/CD.
    """

    def __init__(
        self,
        node_id: int,
        events: EventQueue,
        channel: Channel,
        backoff: BinaryExponentialBackoff,
        traffic: TrafficGenerator,
        stats: StatisticsCollector,
        config: SimulationConfig,
        call_hooks: Optional[Callable[..., None]] = None,
    ) -> None:
        """Initialize an idle node.

        Args:
            node_id: Unique identifier for the node.
            events: Event queue of the run.
            channel: The shared medium.
            backoff: Backoff policy of the run.
            traffic: Traffic generator handing out arriving packets.
            stats: Statistics collector of the run.
            config: Simulation configuration.
            call_hooks: Callback for simulator hooks.
        """
        self.id = node_id
        self.events = events
        self.channel = channel
        self.backoff = backoff
        self.traffic = traffic
        self.stats = stats
        self.persistent = config.persistent
        self.buffer_limit = config.buffer_limit
        self.transmission_time = config.transmission_time
        self.call_hooks = call_hooks if call_hooks is not None else (lambda *args: None)

        self.state = NodeState.IDLE
        self.queue: Deque[Packet] = deque()
        self.current_attempt = 0
        self.backoff_deadline: Optional[float] = None
        self.epoch = 0

    def handle(self, event: Event) -> None:
        """Dispatch an event to the transition for the current state.

        Events with no transition from the current state are stale and
        ignored.

        Args:
            event: Event addressed to this node.
        """
        transition = TRANSITIONS.get((self.state, event.kind))
        if transition is None:
            logger.debug("Node %d ignores %s in state %s", self.id, event, self.state.name)
            return
        transition(self, event)

    def on_packet_arrival(self, event: Event) -> None:
        packet = self.traffic.release(event)

        if self.buffer_limit is not None and len(self.queue) >= self.buffer_limit:
            self._drop(packet, DropReason.BUFFER_OVERFLOW, event.time)
            return

        self.queue.append(packet)
        if self.state is NodeState.IDLE:
            self._enter_sensing(event.time)

    def on_access_attempt(self, event: Event) -> None:
        """Sense the carrier and transmit the head-of-queue packet if it is idle.

        A busy carrier makes a non-persistent node try again after a random
        interval, while a 1-persistent node waits for the medium to go idle.
        """
        now = event.time
        if not self.channel.is_sensed_busy(now):
            self._start_transmission(now)
            return

        if self.persistent:
            self.channel.wait_for_idle(self.id)
        else:
            self.events.schedule(
                now + self.backoff.sense_delay(), EventKind.CARRIER_SENSE_RETRY, self.id
            )

    def on_transmission_end(self, event: Event) -> None:
        if event.epoch != self.epoch:
            return

        now = event.time
        self._wake(self.channel.unregister(self.id, now), now)

        packet = self.queue.popleft()
        packet.delivery_time = now
        self.current_attempt = 0
        self.stats.record_delivery(packet)
        logger.debug("Node %d delivered packet %d at t=%.9f", self.id, packet.id, now)
        self.call_hooks("packet_delivered", packet, now)

        self._next_packet(now)

    def on_collision(self, event: Event) -> None:
        if event.epoch != self.epoch:
            return

        now = event.time
        self._wake(self.channel.unregister(self.id, now), now)

        self.current_attempt += 1
        self.stats.record_collision(self.id)
        self.call_hooks("collision", self.id, now)

        if self.backoff.should_drop(self.current_attempt):
            packet = self.queue.popleft()
            self.current_attempt = 0
            self._drop(packet, DropReason.EXCESSIVE_COLLISIONS, now)
            self._next_packet(now)
            return

        self.state = NodeState.BACKOFF
        self.backoff_deadline = now + self.backoff.delay(self.current_attempt)
        self.events.schedule(
            self.backoff_deadline, EventKind.BACKOFF_EXPIRED, self.id, self.epoch
        )

    def on_backoff_expired(self, event: Event) -> None:
        self.backoff_deadline = None
        self.state = NodeState.SENSING
        self.on_access_attempt(event)

    def _enter_sensing(self, now: float) -> None:
        self.state = NodeState.SENSING
        self.events.schedule(now, EventKind.TRANSMISSION_START, self.id, self.epoch)

    def _start_transmission(self, now: float) -> None:
        self.epoch += 1
        self.state = NodeState.TRANSMITTING
        self.queue[0].attempt_count += 1
        self.stats.record_attempt(self.id)

        # The medium stays occupied until the last bit reaches the far end.
        end = now + self.transmission_time + self.channel.propagation_delay
        self.events.schedule(end, EventKind.TRANSMISSION_END, self.id, self.epoch)

        for transmission in self.channel.register(self.id, now, self.epoch):
            self.events.schedule(
                now, EventKind.COLLISION_DETECTED, transmission.node_id, transmission.epoch
            )

    def _next_packet(self, now: float) -> None:
        if self.queue:
            self._enter_sensing(now)
        else:
            self.state = NodeState.IDLE

    def _wake(self, node_ids: List[int], now: float) -> None:
        for node_id in node_ids:
            self.events.schedule(now, EventKind.CARRIER_SENSE_RETRY, node_id)

    def _drop(self, packet: Packet, reason: DropReason, now: float) -> None:
        packet.dropped = True
        self.stats.record_drop(packet, reason)
        logger.debug("Node %d dropped packet %d at t=%.9f: %s", self.id, packet.id, now, reason.value)
        self.call_hooks("packet_dropped", packet, reason.value, now)

    def __repr__(self) -> str:
        return f"Node({self.id}, {self.state.name}, queue={len(self.queue)})"


TRANSITIONS: Dict[Tuple[NodeState, EventKind], Transition] = {
    (NodeState.IDLE, EventKind.PACKET_ARRIVAL): Node.on_packet_arrival,
    (NodeState.SENSING, EventKind.PACKET_ARRIVAL): Node.on_packet_arrival,
    (NodeState.TRANSMITTING, EventKind.PACKET_ARRIVAL): Node.on_packet_arrival,
    (NodeState.BACKOFF, EventKind.PACKET_ARRIVAL): Node.on_packet_arrival,
    (NodeState.SENSING, EventKind.TRANSMISSION_START): Node.on_access_attempt,
    (NodeState.SENSING, EventKind.CARRIER_SENSE_RETRY): Node.on_access_attempt,
    (NodeState.TRANSMITTING, EventKind.TRANSMISSION_END): Node.on_transmission_end,
    (NodeState.TRANSMITTING, EventKind.COLLISION_DETECTED): Node.on_collision,
    (NodeState.BACKOFF, EventKind.BACKOFF_EXPIRED): Node.on_backoff_expired,
}
