"""Backoff policy for CSMA/CD simulation.

This module defines the retry delays a station waits after a collision
(binary exponential backoff) and after sensing a busy medium in
non-persistent mode.
"""

from csma_sim.utils.rng import RandomSource


class BinaryExponentialBackoff:
    """Binary exponential backoff with a capped window and a retry limit.

    Attributes:
        rng: Random source for slot selection.
        slot_time: Backoff unit in seconds.
        backoff_cap: Maximum number of doublings of the window.
        max_attempts: Collisions tolerated before a packet is dropped.
        sense_slots: Upper bound of the non-persistent re-sense interval, in slots.
    """

    def __init__(
        self,
        rng: RandomSource,
        slot_time: float,
        backoff_cap: int = 10,
        max_attempts: int = 16,
        sense_slots: int = 8,
    ):
        """Initialize the backoff policy.

        Args:
            rng: Random source for slot selection.
            slot_time: Backoff unit in seconds.
            backoff_cap: Maximum number of doublings of the window.
            max_attempts: Collisions tolerated before a packet is dropped.
            sense_slots: Upper bound of the non-persistent re-sense interval, in slots.
        """
        self.rng = rng
        self.slot_time = slot_time
        self.backoff_cap = backoff_cap
        self.max_attempts = max_attempts
        self.sense_slots = sense_slots

    def window(self, attempt: int) -> int:
        """Number of slots to choose from after the given collision.

        Args:
            attempt: Collisions suffered so far by the packet (1-indexed).

        Returns:
            Size of the backoff window in slots.
        """
        if attempt < 1:
            raise ValueError(f"Backoff attempt must be at least 1, got {attempt}")
        return 2 ** min(attempt, self.backoff_cap)

    def delay(self, attempt: int) -> float:
        """Draw a backoff delay.

        Args:
            attempt: Collisions suffered so far by the packet (1-indexed).

        Returns:
            Delay in seconds, a whole number of slots.
        """
        slots = self.rng.uniform_int(0, self.window(attempt) - 1)
        return slots * self.slot_time

    def should_drop(self, attempt: int) -> bool:
        """Whether a packet with this many collisions is given up on."""
        return attempt > self.max_attempts

    def sense_delay(self) -> float:
        """Draw the delay before a non-persistent station senses again.

        Returns:
            Delay in seconds, between one and sense_slots slots.
        """
        return self.rng.uniform_int(1, self.sense_slots) * self.slot_time

    def __repr__(self) -> str:
        return f"BinaryExponentialBackoff(slot={self.slot_time*1e6:.1f}us, cap={self.backoff_cap}, max_attempts={self.max_attempts})"
