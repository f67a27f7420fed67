"""
Configuration settings for the CSMA/CD LAN simulator.
"""

import math
import numbers
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from csma_sim.core.errors import ConfigError

# Defaults
DEFAULT_RATE = 10.0  # Average packets generated per second, per node
DEFAULT_PACKET_SIZE_BITS = 1  # Packet size in bits
DEFAULT_LINK_SPEED_BPS = 1_000_000  # LAN speed in bits per second
DEFAULT_DURATION = 5.0  # Simulated seconds
DEFAULT_NODE_COUNT = 10  # Stations attached to the LAN
DEFAULT_PERSISTENT = False  # Non-persistent CSMA/CD
DEFAULT_SEED = 42

# Medium and backoff constants (classical 10 Mb/s Ethernet)
DEFAULT_PROPAGATION_DELAY = 25.6e-6  # End-to-end delay; one slot is the round trip
BACKOFF_CAP = 10  # Doublings of the backoff window
MAX_ATTEMPTS = 16  # Collisions tolerated before a packet is dropped
SENSE_SLOTS = 8  # Non-persistent re-sense window, in slots


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters of a single simulation run.

    Attributes:
        rate: Average packet arrival rate at each node in packets per second.
        packet_size_bits: Size of every packet in bits.
        link_speed_bps: Speed of the shared medium in bits per second.
        duration: Length of the observation window in seconds.
        node_count: Number of stations sharing the medium.
        persistent: 1-persistent CSMA/CD if True, non-persistent otherwise.
        seed: Seed of the run's random source.
        propagation_delay: End-to-end propagation delay of the medium in seconds.
        backoff_cap: Maximum number of doublings of the backoff window.
        max_attempts: Collisions a packet may suffer before it is dropped.
        sense_slots: Upper bound, in slots, of the non-persistent re-sense interval.
        buffer_limit: Per-node queue capacity in packets (None means unbounded).
    """

    rate: float = DEFAULT_RATE
    packet_size_bits: int = DEFAULT_PACKET_SIZE_BITS
    link_speed_bps: float = DEFAULT_LINK_SPEED_BPS
    duration: float = DEFAULT_DURATION
    node_count: int = DEFAULT_NODE_COUNT
    persistent: bool = DEFAULT_PERSISTENT
    seed: int = DEFAULT_SEED
    propagation_delay: float = DEFAULT_PROPAGATION_DELAY
    backoff_cap: int = BACKOFF_CAP
    max_attempts: int = MAX_ATTEMPTS
    sense_slots: int = SENSE_SLOTS
    buffer_limit: Optional[int] = None

    def validate(self) -> "SimulationConfig":
        """Check every parameter.

        Returns:
            The config itself, so calls can be chained.

        Raises:
            ConfigError: If any parameter is out of range.
        """
        for name in ("rate", "packet_size_bits", "link_speed_bps", "duration", "propagation_delay"):
            value = getattr(self, name)
            if not _is_real(value) or not value > 0 or math.isinf(value):
                raise ConfigError(f"{name} must be a positive finite number, got {value!r}")

        if not _is_integer(self.node_count) or self.node_count < 1:
            raise ConfigError(f"node_count must be at least 1, got {self.node_count!r}")
        if self.backoff_cap < 0:
            raise ConfigError(f"backoff_cap must be non-negative, got {self.backoff_cap}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.sense_slots < 1:
            raise ConfigError(f"sense_slots must be at least 1, got {self.sense_slots}")
        if self.buffer_limit is not None and self.buffer_limit < 1:
            raise ConfigError(f"buffer_limit must be at least 1, got {self.buffer_limit}")
        return self

    @property
    def slot_time(self) -> float:
        """Backoff slot: one round trip of the medium."""
        return 2 * self.propagation_delay

    @property
    def transmission_time(self) -> float:
        """Time to put one packet on the medium."""
        if self.link_speed_bps == 0:
            raise ConfigError("link_speed_bps must be positive")
        return self.packet_size_bits / self.link_speed_bps

    @property
    def mean_interarrival(self) -> float:
        if self.rate == 0:
            raise ConfigError("rate must be positive")
        return 1 / self.rate

    @property
    def offered_load(self) -> float:
        """Offered load relative to the link capacity (1.0 saturates the medium)."""
        return self.node_count * self.rate * self.transmission_time

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "SimulationConfig":
        """Build a config from a mapping, rejecting unknown keys.

        Args:
            values: Field names mapped to values.

        Returns:
            The validated config.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**values).validate()

    def __str__(self) -> str:
        lines = [
            "Simulation configuration:",
            f"\t Rate:                  {self.rate} packets/s",
            f"\t Packet size:           {self.packet_size_bits} bits",
            f"\t LAN speed:             {self.link_speed_bps} bits/s",
            f"\t Simulation duration:   {self.duration}s",
            f"\t Node count:            {self.node_count} nodes",
            f"\t CSMA/CD persistence:   {self.persistent}",
            f"\t Propagation delay:     {self.propagation_delay * 1e6:.2f}us",
            f"\t Seed:                  {self.seed}",
        ]
        return "\n".join(lines)
