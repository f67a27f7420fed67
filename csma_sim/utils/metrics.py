"""Metrics utilities for CSMA/CD simulation.

This module provides the StatisticsCollector that accumulates counters
during a run, the Statistics snapshot it produces, and helpers for saving
and comparing results.
"""

import csv
import json
import logging
import os
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from csma_sim.core.enums import DropReason
from csma_sim.core.packet import Packet

logger = logging.getLogger(__name__)


@dataclass
class NodeStatistics:
    """Counters of a single node.

    Attributes:
        packets_generated: Packets that arrived at the node.
        packets_delivered: Packets the node sent successfully.
        packets_dropped: Packets the node gave up on.
        collisions: Collisions the node took part in.
        transmission_attempts: Times the node went on the medium.
        bits_delivered: Bits the node sent successfully.
    """

    packets_generated: int = 0
    packets_delivered: int = 0
    packets_dropped: int = 0
    collisions: int = 0
    transmission_attempts: int = 0
    bits_delivered: int = 0


@dataclass
class Statistics:
    """Final report of a run.

    Attributes:
        duration: Length of the observation window in seconds.
        packets_generated: Packets created by the traffic generator.
        packets_delivered: Packets sent without collision.
        packets_dropped: Packets dropped (excessive collisions or full buffer).
        packets_in_flight_at_end: Packets still queued when the run ended.
        collisions_total: Transmission attempts aborted by a collision.
        collision_incidents: Collisions seen on the medium, however many nodes took part.
        transmission_attempts_total: Times any node went on the medium.
        busy_time_total: Time the medium carried at least one transmission.
        bits_delivered_total: Bits delivered without collision.
        throughput_bps: Delivered bits per second.
        utilization: Fraction of the run the medium was busy.
        collision_rate: Fraction of attempts that collided.
        mean_sojourn_time: Mean time from arrival to delivery.
        sojourn_time_stddev: Standard deviation of the sojourn time.
        fairness_index: Jain's fairness index over per-node delivered bits.
        drops_by_reason: Dropped packets per reason.
        per_node: Counters of every node.
    """

    duration: float
    packets_generated: int = 0
    packets_delivered: int = 0
    packets_dropped: int = 0
    packets_in_flight_at_end: int = 0
    collisions_total: int = 0
    collision_incidents: int = 0
    transmission_attempts_total: int = 0
    busy_time_total: float = 0.0
    bits_delivered_total: int = 0
    throughput_bps: float = 0.0
    utilization: float = 0.0
    collision_rate: float = 0.0
    mean_sojourn_time: float = 0.0
    sojourn_time_stddev: float = 0.0
    fairness_index: float = 0.0
    drops_by_reason: Dict[str, int] = field(default_factory=dict)
    per_node: Dict[int, NodeStatistics] = field(default_factory=dict)

    @property
    def delivery_ratio(self) -> float:
        if self.packets_generated == 0:
            return 0.0
        return self.packets_delivered / self.packets_generated

    def is_conserved(self) -> bool:
        """Every generated packet is delivered, dropped or still in flight."""
        return self.packets_generated == (
            self.packets_delivered + self.packets_dropped + self.packets_in_flight_at_end
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable mapping of the report."""
        data = asdict(self)
        data["per_node"] = {str(k): v for k, v in data["per_node"].items()}
        data["delivery_ratio"] = self.delivery_ratio
        return data

    def __str__(self) -> str:
        lines = [
            "Simulation results:",
            f"\t Average sojourn time:    {self.mean_sojourn_time:.6f} +/- {self.sojourn_time_stddev:.6f} seconds",
            f"\t Packets generated:       {self.packets_generated} packets",
            f"\t Packets delivered:       {self.packets_delivered} packets",
            f"\t Packets dropped:         {self.packets_dropped} packets",
            f"\t Packets in flight:       {self.packets_in_flight_at_end} packets",
            f"\t Transmission attempts:   {self.transmission_attempts_total}",
            f"\t Collisions:              {self.collisions_total}",
            f"\t Collision incidents:     {self.collision_incidents}",
            f"\t Collision rate:          {self.collision_rate:.4f}",
            f"\t Throughput:              {self.throughput_bps:.2f} bits/s",
            f"\t Utilization:             {self.utilization:.4f}",
            f"\t Fairness index:          {self.fairness_index:.4f}",
        ]
        return "\n".join(lines)


class StatisticsCollector:
    """Accumulates counters while the engine dispatches events.

    Attributes:
        nodes: Per-node counters keyed by node ID.
        drops_by_reason: Dropped packets per reason.
        sojourn_times: Sojourn time of every delivered packet.
    """

    def __init__(self, node_count: int):
        """Initialize empty counters.

        Args:
            node_count: Number of nodes in the run.
        """
        self.nodes: Dict[int, NodeStatistics] = {
            node_id: NodeStatistics() for node_id in range(node_count)
        }
        self.drops_by_reason: Counter = Counter()
        self.sojourn_times: List[float] = []

    def record_generated(self, node_id: int) -> None:
        self.nodes[node_id].packets_generated += 1

    def record_attempt(self, node_id: int) -> None:
        self.nodes[node_id].transmission_attempts += 1

    def record_collision(self, node_id: int) -> None:
        self.nodes[node_id].collisions += 1

    def record_delivery(self, packet: Packet) -> None:
        """Record a successfully delivered packet.

        Args:
            packet: The delivered packet, with delivery_time set.
        """
        node = self.nodes[packet.node_id]
        node.packets_delivered += 1
        node.bits_delivered += packet.size_bits
        self.sojourn_times.append(packet.get_sojourn_time())

    def record_drop(self, packet: Packet, reason: DropReason) -> None:
        """Record a dropped packet.

        Args:
            packet: The dropped packet.
            reason: Why it was dropped.
        """
        self.nodes[packet.node_id].packets_dropped += 1
        self.drops_by_reason[reason.value] += 1

    def snapshot(
        self,
        duration: float,
        busy_time: float,
        in_flight: int,
        collision_incidents: int = 0,
    ) -> Statistics:
        """Derive the final report.

        Args:
            duration: Length of the observation window.
            busy_time: Time the medium was busy.
            in_flight: Packets still queued at the end of the run.
            collision_incidents: Collisions counted by the channel.

        Returns:
            The Statistics of the run.
        """
        nodes = list(self.nodes.values())
        attempts = sum(n.transmission_attempts for n in nodes)
        collisions = sum(n.collisions for n in nodes)
        bits = sum(n.bits_delivered for n in nodes)

        if self.sojourn_times:
            sojourn = np.asarray(self.sojourn_times)
            mean_sojourn = float(np.mean(sojourn))
            stddev_sojourn = float(np.std(sojourn))
        else:
            mean_sojourn = stddev_sojourn = 0.0

        return Statistics(
            duration=duration,
            packets_generated=sum(n.packets_generated for n in nodes),
            packets_delivered=sum(n.packets_delivered for n in nodes),
            packets_dropped=sum(n.packets_dropped for n in nodes),
            packets_in_flight_at_end=in_flight,
            collisions_total=collisions,
            collision_incidents=collision_incidents,
            transmission_attempts_total=attempts,
            busy_time_total=busy_time,
            bits_delivered_total=bits,
            throughput_bps=bits / duration,
            utilization=busy_time / duration,
            collision_rate=collisions / attempts if attempts > 0 else 0.0,
            mean_sojourn_time=mean_sojourn,
            sojourn_time_stddev=stddev_sojourn,
            fairness_index=calculate_fairness_index(
                {node_id: n.bits_delivered for node_id, n in self.nodes.items()}
            ),
            drops_by_reason=dict(self.drops_by_reason),
            per_node={node_id: NodeStatistics(**asdict(n)) for node_id, n in self.nodes.items()},
        )


def calculate_fairness_index(node_throughputs: Dict[int, float]) -> float:
    """Calculate Jain's fairness index for per-node throughputs.

    Args:
        node_throughputs: Dictionary mapping node IDs to throughputs.

    Returns:
        Fairness index between 0 and 1 (1 is perfectly fair).
    """
    if not node_throughputs:
        return 0.0

    throughputs = np.asarray(list(node_throughputs.values()), dtype=float)
    sum_squared = float(np.sum(throughputs**2))

    if sum_squared == 0:
        return 0.0

    return float(np.sum(throughputs)) ** 2 / (len(throughputs) * sum_squared)


def save_metrics_to_json(
    metrics: Dict[str, Any], filename: str = "results/metrics.json"
) -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Dictionary of metrics to save.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filename, "w") as f:
        json.dump(metrics, f, indent=2)
    logger.info("Saved metrics to %s", filename)


def save_metrics_to_csv(
    metrics_list: List[Dict[str, Any]],
    labels: List[str],
    filename: str = "results/metrics_comparison.csv",
) -> None:
    """Save a comparison of several runs to a CSV file.

    Args:
        metrics_list: List of metrics dictionaries from different simulations.
        labels: Label of each run, in the same order as metrics_list.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filename, "w", newline="") as f:
        writer = csv.writer(f)

        writer.writerow(
            ["Run", "Rate", "Persistent", "Throughput", "Utilization", "Collision Rate", "Delivery Ratio"]
        )

        for label, metrics in zip(labels, metrics_list):
            writer.writerow(
                [
                    label,
                    metrics.get("rate", ""),
                    metrics.get("persistent", ""),
                    metrics["throughput_bps"],
                    metrics["utilization"],
                    metrics["collision_rate"],
                    metrics["delivery_ratio"],
                ]
            )
    logger.info("Saved %d runs to %s", len(metrics_list), filename)


def summarize(statistics: Statistics, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Flatten a report into a single-level mapping for tables and plots.

    Args:
        statistics: The report.
        extra: Additional keys to merge in (e.g. the swept parameters).

    Returns:
        Mapping without the per-node breakdown.
    """
    data = statistics.to_dict()
    data.pop("per_node")
    if extra:
        data.update(extra)
    return data
