"""Load sweeps for CSMA/CD simulation.

This module runs the same LAN at a range of arrival rates, in both
persistence modes, so that throughput, utilization and collision rate can be
compared as the offered load grows.
"""

import dataclasses
import logging
from typing import Any, Dict, Iterable, List, Sequence

from csma_sim.config import SimulationConfig
from csma_sim.core.simulator import run_simulation
from csma_sim.utils.metrics import summarize

logger = logging.getLogger(__name__)


def run_load_sweep(
    base_config: SimulationConfig,
    rates: Iterable[float],
    modes: Sequence[bool] = (False, True),
) -> List[Dict[str, Any]]:
    """Run one simulation per (rate, persistence mode) pair.

    Args:
        base_config: Configuration every run starts from.
        rates: Arrival rates to sweep, in packets per second per node.
        modes: Persistence modes to run (False is non-persistent).

    Returns:
        One flat metrics dictionary per run, with the swept rate, the mode
        and the offered load merged in.
    """
    results: List[Dict[str, Any]] = []
    rates = list(rates)
    total = len(rates) * len(modes)

    for persistent in modes:
        for rate in rates:
            config = dataclasses.replace(base_config, rate=rate, persistent=persistent)
            statistics = run_simulation(config)
            results.append(
                summarize(
                    statistics,
                    {
                        "rate": rate,
                        "persistent": persistent,
                        "offered_load": config.offered_load,
                    },
                )
            )
            logger.info("Sweep progress: %d/%d runs", len(results), total)

    return results


def sweep_label(metrics: Dict[str, Any]) -> str:
    """Short label of a sweep run, e.g. '1-persistent @ 100/s'."""
    mode = "1-persistent" if metrics["persistent"] else "non-persistent"
    return f"{mode} @ {metrics['rate']:g}/s"
