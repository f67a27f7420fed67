"""Seeded random source for CSMA/CD simulation.

A single RandomSource is created per run and handed to every component
that draws random numbers, so that two runs with the same seed produce the
same event trace.
"""

import numpy as np


class RandomSource:
    """
    Deterministic random number source backed by a NumPy Generator.
    This class supports exponential samples for inter-arrival times and
    uniform integers for backoff slot selection.
    """

    def __init__(self, seed: int):
        """
        Initialize the generator with a seed value.

        Args:
            seed (int): The seed for the underlying PCG64 generator.
        """
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def exponential(self, mean: float) -> float:
        """
        Draw an exponentially distributed sample.

        Args:
            mean (float): Mean of the distribution (1 / rate).

        Returns:
            float: A non-negative sample.

        Raises:
            ValueError: If the mean is not positive.
        """
        if not mean > 0:
            raise ValueError(f"Exponential mean must be positive, got {mean}")
        return float(self._generator.exponential(mean))

    def uniform_int(self, low: int, high: int) -> int:
        """
        Draw an integer uniformly from the closed range [low, high].

        Args:
            low (int): Smallest value that may be returned.
            high (int): Largest value that may be returned.

        Returns:
            int: A uniformly drawn integer.

        Raises:
            ValueError: If the range is empty.
        """
        if high < low:
            raise ValueError(f"Empty range [{low}, {high}]")
        return int(self._generator.integers(low, high, endpoint=True))
