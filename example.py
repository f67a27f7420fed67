#!/usr/bin/env python3
"""Example CSMA/CD simulation using the csma_sim package.

This script runs a small LAN in both persistence modes across a range of
loads and saves the comparison as JSON, CSV and a plot.
"""

import dataclasses
import os

from csma_sim.config import SimulationConfig
from csma_sim.core.load_sweep import run_load_sweep, sweep_label
from csma_sim.core.simulator import CSMASimulator
from csma_sim.utils.metrics import save_metrics_to_csv, save_metrics_to_json
from csma_sim.utils.visualization import plot_load_sweep, plot_node_statistics


def main(output_dir: str = "results") -> None:
    base = SimulationConfig(
        packet_size_bits=1000,
        link_speed_bps=1_000_000,
        node_count=10,
        duration=2.0,
        seed=42,
    )

    # Single run at moderate load
    simulator = CSMASimulator(dataclasses.replace(base, rate=50.0))
    statistics = simulator.run()
    print(statistics)
    plot_node_statistics(statistics, output_dir=output_dir, show=False)

    # Offered load from 0.05 to 5 times the link capacity
    rates = [5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0]
    results = run_load_sweep(base, rates)
    labels = [sweep_label(m) for m in results]

    save_metrics_to_json({"config": base.to_dict(), "runs": results}, os.path.join(output_dir, "load_sweep.json"))
    save_metrics_to_csv(results, labels, os.path.join(output_dir, "load_sweep.csv"))
    plot_load_sweep(results, output_dir=output_dir, show=False)


if __name__ == "__main__":
    main()
