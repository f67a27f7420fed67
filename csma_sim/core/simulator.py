"""CSMA/CD simulator class.

This module defines the CSMASimulator class, which wires the event queue,
random source, channel, nodes and statistics of a run together and drives
the event loop until the observation window closes.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from csma_sim.config import SimulationConfig
from csma_sim.core.backoff import BinaryExponentialBackoff
from csma_sim.core.channel import Channel
from csma_sim.core.errors import QueueEmpty
from csma_sim.core.event_queue import EventQueue
from csma_sim.core.node import Node
from csma_sim.traffic.generators import TrafficGenerator
from csma_sim.utils.metrics import Statistics, StatisticsCollector
from csma_sim.utils.rng import RandomSource

logger = logging.getLogger(__name__)

TraceEntry = Tuple[float, int, str, int]


class CSMASimulator:
    """Discrete-event simulation of a CSMA/CD LAN.

    Attributes:
        config: Simulation configuration.
        events: Event queue of the run.
        rng: Random source shared by traffic and backoff.
        channel: The shared medium.
        backoff: Backoff policy.
        stats: Statistics collector.
        traffic: Traffic generator.
        nodes: Node objects keyed by node ID.
        trace: Processed events, if tracing is enabled.
        statistics: Final report once the run is over.
    """

    def __init__(
        self,
        config: SimulationConfig,
        interval: Optional[Callable[[], float]] = None,
        record_trace: bool = False,
    ):
        """Initialize the simulator.

        Args:
            config: Simulation configuration.
            interval: Inter-arrival function overriding Poisson traffic.
            record_trace: Whether to keep a trace of processed events.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self.config = config.validate()
        self.record_trace = record_trace

        self.events = EventQueue()
        self.rng = RandomSource(config.seed)
        self.channel = Channel(config.propagation_delay)
        self.backoff = BinaryExponentialBackoff(
            self.rng,
            config.slot_time,
            backoff_cap=config.backoff_cap,
            max_attempts=config.max_attempts,
            sense_slots=config.sense_slots,
        )
        self.stats = StatisticsCollector(config.node_count)
        self.traffic = TrafficGenerator(
            self.events, self.rng, self.stats, config, interval=interval
        )
        self.nodes: Dict[int, Node] = {
            node_id: Node(
                node_id,
                self.events,
                self.channel,
                self.backoff,
                self.traffic,
                self.stats,
                config,
                call_hooks=self.call_hooks,
            )
            for node_id in range(config.node_count)
        }

        self.trace: List[TraceEntry] = []
        self.statistics: Optional[Statistics] = None

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "packet_delivered": [],  # packet sent without collision
            "packet_dropped": [],  # packet given up on
            "collision": [],  # a node aborts a transmission
            "sim_end": [],  # the simulation ends
        }

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type.

        Args:
            event_type: The type of event that occurred.
            *args, **kwargs: Arguments to pass to the callback functions.
        """
        for callback in self.hooks.get(event_type, []):
            callback(*args, **kwargs)

    def run(self) -> Statistics:
        """Run the simulation for the configured duration.

        Events scheduled exactly at the end of the window are still
        processed; anything later is discarded.

        Returns:
            The final Statistics of the run.
        """
        if self.statistics is not None:
            raise RuntimeError("Simulation has already been run")

        duration = self.config.duration
        logger.info(
            "Starting run: %d nodes, rate=%s/s, offered load %.3f, %s",
            self.config.node_count,
            self.config.rate,
            self.config.offered_load,
            "1-persistent" if self.config.persistent else "non-persistent",
        )

        self.traffic.start()
        processed = 0
        while True:
            try:
                event = self.events.pop_next()
            except QueueEmpty:
                break
            if event.time > duration:
                break

            if self.record_trace:
                self.trace.append((event.time, event.sequence, event.kind.name, event.node_id))
            self.nodes[event.node_id].handle(event)
            processed += 1

        self.channel.close(duration)
        in_flight = sum(len(node.queue) for node in self.nodes.values())
        self.statistics = self.stats.snapshot(
            duration, self.channel.busy_time, in_flight, self.channel.collisions
        )

        logger.info(
            "Run finished after %d events: %d delivered, %d dropped, %d collisions",
            processed,
            self.statistics.packets_delivered,
            self.statistics.packets_dropped,
            self.statistics.collisions_total,
        )
        self.call_hooks("sim_end", self.statistics)
        return self.statistics


def run_simulation(config: SimulationConfig, **kwargs: Any) -> Statistics:
    """Build a simulator for the config and run it.

    Args:
        config: Simulation configuration.
        **kwargs: Passed on to CSMASimulator.

    Returns:
        The final Statistics of the run.
    """
    return CSMASimulator(config, **kwargs).run()
