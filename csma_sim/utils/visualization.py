"""Visualization utilities for CSMA/CD simulation.

This module provides functions for plotting simulation results, both for a
single run (per-node breakdown) and for load sweeps comparing the two
persistence modes.
"""

from typing import Dict, Any, List

import matplotlib.pyplot as plt
import numpy as np
import os

from csma_sim.utils.metrics import Statistics


def plot_node_statistics(
    statistics: Statistics,
    output_dir: str | None = None,
    filename: str = "node_statistics",
    show=True,
) -> None:
    """Plot and save per-node counters of a single run.

    Args:
        statistics: Report of the run.
        output_dir: Directory to save the plot in, or None to show it.
        filename: The filename for the file, without extension.
        show: Whether to display the plot when it is not saved.
    """
    node_ids = sorted(statistics.per_node)
    delivered = [statistics.per_node[n].packets_delivered for n in node_ids]
    dropped = [statistics.per_node[n].packets_dropped for n in node_ids]
    collisions = [statistics.per_node[n].collisions for n in node_ids]

    x = np.arange(len(node_ids))
    fig, ax = plt.subplots(figsize=(12, 5))

    ax.bar(x - 0.25, delivered, width=0.25, label="Delivered")
    ax.bar(x, dropped, width=0.25, color="red", label="Dropped")
    ax.bar(x + 0.25, collisions, width=0.25, color="orange", label="Collisions")
    ax.set_xlabel("Node")
    ax.set_ylabel("Count")
    ax.set_title(f"Per-node Statistics (fairness {statistics.fairness_index:.3f})")
    ax.set_xticks(x)
    ax.set_xticklabels([str(n) for n in node_ids])
    ax.grid(True, linestyle="--", alpha=0.7)
    ax.legend()

    plt.tight_layout()

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        plt.savefig(os.path.join(output_dir, f"{filename}.png"))
        plt.close(fig)
    elif show:
        plt.show()
    else:
        plt.close(fig)


def plot_load_sweep(
    metrics_list: List[Dict[str, Any]],
    output_dir: str | None = None,
    filename: str = "load_sweep",
    show=True,
) -> None:
    """Plot throughput, utilization and collision rate against offered load.

    Args:
        metrics_list: Flat metrics dictionaries from run_load_sweep.
        output_dir: Directory to save the plot in, or None to show it.
        filename: The filename for the file, without extension.
        show: Whether to display the plot when it is not saved.
    """
    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    for persistent, color in ((False, "tab:blue"), (True, "tab:red")):
        runs = sorted(
            (m for m in metrics_list if m["persistent"] == persistent),
            key=lambda m: m["offered_load"],
        )
        if not runs:
            continue

        label = "1-persistent" if persistent else "non-persistent"
        loads = [m["offered_load"] for m in runs]

        axes[0].plot(loads, [m["throughput_bps"] for m in runs], "o-", color=color, label=label)
        axes[1].plot(loads, [m["utilization"] for m in runs], "o-", color=color, label=label)
        axes[2].plot(loads, [m["collision_rate"] for m in runs], "o-", color=color, label=label)

    titles = ["Throughput", "Channel Utilization", "Collision Rate"]
    ylabels = ["Throughput (bits/s)", "Utilization", "Collisions per attempt"]
    for ax, title, ylabel in zip(axes, titles, ylabels):
        ax.set_title(title)
        ax.set_xlabel("Offered load")
        ax.set_ylabel(ylabel)
        ax.set_xscale("log")
        ax.grid(True, linestyle="--", alpha=0.7)
        ax.legend()
    axes[2].set_ylim(0, 1)

    plt.tight_layout()

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        plt.savefig(os.path.join(output_dir, f"{filename}.png"))
        plt.close(fig)
    elif show:
        plt.show()
    else:
        plt.close(fig)
