import argparse
import dataclasses
import logging
import os
import sys

from csma_sim.config import (
    DEFAULT_DURATION,
    DEFAULT_LINK_SPEED_BPS,
    DEFAULT_NODE_COUNT,
    DEFAULT_PACKET_SIZE_BITS,
    DEFAULT_PROPAGATION_DELAY,
    DEFAULT_RATE,
    DEFAULT_SEED,
    SimulationConfig,
)
from csma_sim.core.errors import ConfigError
from csma_sim.core.load_sweep import run_load_sweep, sweep_label
from csma_sim.core.simulator import CSMASimulator
from csma_sim.utils.logging_config import setup_logger
from csma_sim.utils.metrics import save_metrics_to_csv, save_metrics_to_json
from csma_sim.utils.visualization import plot_load_sweep, plot_node_statistics


def build_parser():
    """Build the command line parser"""
    parser = argparse.ArgumentParser(description="CSMA/CD LAN Simulator")
    parser.add_argument(
        "--rate", type=float, default=DEFAULT_RATE,
        help=f"Average number of generated packets/s per node (def: {DEFAULT_RATE})",
    )
    parser.add_argument(
        "--psize", type=int, default=DEFAULT_PACKET_SIZE_BITS,
        help=f"Packet size; bits (def: {DEFAULT_PACKET_SIZE_BITS})",
    )
    parser.add_argument(
        "--lspeed", type=float, default=DEFAULT_LINK_SPEED_BPS,
        help=f"LAN speed; bits/s (def: {DEFAULT_LINK_SPEED_BPS})",
    )
    parser.add_argument(
        "--duration", type=float, default=DEFAULT_DURATION,
        help=f"Duration of simulation; seconds (def: {DEFAULT_DURATION})",
    )
    parser.add_argument(
        "--ncount", type=int, default=DEFAULT_NODE_COUNT,
        help=f"Number of nodes connected to the LAN (def: {DEFAULT_NODE_COUNT})",
    )
    parser.add_argument(
        "--persistence", action="store_true",
        help="Simulate 1-persistent CSMA/CD (def: non-persistent)",
    )
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Random seed")
    parser.add_argument(
        "--propagation-delay", type=float, default=DEFAULT_PROPAGATION_DELAY,
        help=f"End-to-end propagation delay; seconds (def: {DEFAULT_PROPAGATION_DELAY})",
    )
    parser.add_argument(
        "--buffer-limit", type=int, default=None,
        help="Per-node queue capacity in packets (def: unbounded)",
    )
    parser.add_argument("--json", metavar="FILE", help="Save the results to a JSON file")
    parser.add_argument(
        "--sweep", metavar="RATES",
        help="Comma separated rates to sweep in both persistence modes",
    )
    parser.add_argument("--plot", metavar="DIR", help="Save plots to this directory")
    parser.add_argument("--verbose", action="store_true", help="Log every event")
    return parser


def config_from_args(args):
    """Create the simulation config from parsed arguments"""
    return SimulationConfig(
        rate=args.rate,
        packet_size_bits=args.psize,
        link_speed_bps=args.lspeed,
        duration=args.duration,
        node_count=args.ncount,
        persistent=args.persistence,
        seed=args.seed,
        propagation_delay=args.propagation_delay,
        buffer_limit=args.buffer_limit,
    ).validate()


def parse_rates(text):
    try:
        rates = [float(r) for r in text.split(",") if r.strip()]
    except ValueError as e:
        raise ConfigError(f"invalid --sweep rates {text!r}") from e
    if not rates:
        raise ConfigError("--sweep needs at least one rate")
    return rates


def run_sweep(config, rates, args):
    """Run a load sweep and report every run"""
    results = run_load_sweep(config, rates)
    labels = [sweep_label(m) for m in results]

    print("Sweep results:")
    for label, metrics in zip(labels, results):
        print(
            f"\t {label:<28} throughput {metrics['throughput_bps']:>12.2f} bits/s"
            f"  utilization {metrics['utilization']:.4f}"
            f"  collision rate {metrics['collision_rate']:.4f}"
        )

    if args.json:
        save_metrics_to_json({"config": config.to_dict(), "runs": results}, args.json)
        save_metrics_to_csv(results, labels, os.path.splitext(args.json)[0] + ".csv")
    if args.plot:
        plot_load_sweep(results, output_dir=args.plot)


def run_single(config, args):
    """Run a single simulation and report it"""
    statistics = CSMASimulator(config).run()
    print(statistics)

    if args.json:
        save_metrics_to_json(
            {"config": config.to_dict(), "statistics": statistics.to_dict()}, args.json
        )
    if args.plot:
        plot_node_statistics(statistics, output_dir=args.plot)
    return statistics


def main(argv=None):
    """Main function to run simulations"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger("csma_sim", level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = config_from_args(args)
        rates = parse_rates(args.sweep) if args.sweep else None
        for rate in rates or ():
            dataclasses.replace(config, rate=rate).validate()
    except ConfigError as e:
        print(f"{parser.prog}: illegal usage -- {e}")
        parser.print_usage()
        return 1

    print(config)
    if rates:
        run_sweep(config, rates, args)
    else:
        run_single(config, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
