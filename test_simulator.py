import dataclasses
import logging

import pytest

from csma_sim.config import SimulationConfig
from csma_sim.core.enums import NodeState
from csma_sim.core.errors import ConfigError, QueueEmpty
from csma_sim.core.simulator import CSMASimulator, run_simulation
from csma_sim.traffic.generators import constant_traffic

HIGH_LOAD = SimulationConfig(
    rate=200, packet_size_bits=1000, link_speed_bps=1_000_000, duration=0.5, node_count=10
)


@pytest.mark.parametrize("persistent", [False, True])
@pytest.mark.parametrize(
    "overrides",
    [
        {"node_count": 1, "rate": 50},
        {"node_count": 4, "rate": 20, "packet_size_bits": 1000},
        {"node_count": 10, "rate": 300, "packet_size_bits": 1000, "duration": 0.3},
        {"node_count": 6, "rate": 500, "packet_size_bits": 1000, "duration": 0.3, "buffer_limit": 2},
        {"node_count": 3, "rate": 400, "packet_size_bits": 2000, "duration": 0.3, "max_attempts": 2},
    ],
)
def test_packets_are_conserved(persistent, overrides):
    """Every generated packet is delivered, dropped or still in flight"""
    config = SimulationConfig(persistent=persistent, seed=3, **{"duration": 1.0, **overrides})
    statistics = run_simulation(config)

    assert statistics.packets_generated > 0
    assert statistics.packets_generated == (
        statistics.packets_delivered
        + statistics.packets_dropped
        + statistics.packets_in_flight_at_end
    )
    assert sum(statistics.drops_by_reason.values()) == statistics.packets_dropped


@pytest.mark.parametrize("persistent", [False, True])
def test_two_node_scenario_has_collisions(persistent):
    config = SimulationConfig(
        node_count=2,
        rate=1000,
        packet_size_bits=1,
        link_speed_bps=1_000_000,
        duration=1,
        seed=42,
        persistent=persistent,
    )
    statistics = run_simulation(config)

    assert statistics.collisions_total > 0
    assert statistics.is_conserved()


def test_same_seed_same_run():
    first = CSMASimulator(HIGH_LOAD, record_trace=True)
    second = CSMASimulator(HIGH_LOAD, record_trace=True)

    assert first.run() == second.run()
    assert first.trace == second.trace
    assert len(first.trace) > 0


def test_different_seed_different_run():
    first = CSMASimulator(HIGH_LOAD, record_trace=True)
    second = CSMASimulator(dataclasses.replace(HIGH_LOAD, seed=HIGH_LOAD.seed + 1), record_trace=True)
    first.run()
    second.run()

    assert first.trace != second.trace


@pytest.mark.parametrize("persistent", [False, True])
def test_single_node_never_collides(persistent):
    config = dataclasses.replace(HIGH_LOAD, node_count=1, rate=2000, persistent=persistent)
    statistics = run_simulation(config)

    assert statistics.collisions_total == 0
    assert statistics.packets_dropped == 0
    assert statistics.packets_delivered > 0
    assert statistics.utilization > 0.9


def test_low_load_delivers_nearly_everything():
    config = SimulationConfig(rate=0.5, node_count=5, packet_size_bits=1, duration=20, seed=8)
    statistics = run_simulation(config)

    assert statistics.packets_generated > 20
    assert statistics.delivery_ratio >= 0.95
    assert statistics.collision_rate < 0.05
    assert statistics.utilization < 0.01


def test_persistent_mode_collides_more_under_high_load():
    non_persistent = run_simulation(dataclasses.replace(HIGH_LOAD, persistent=False))
    persistent = run_simulation(dataclasses.replace(HIGH_LOAD, persistent=True))

    assert persistent.collision_rate >= non_persistent.collision_rate
    assert persistent.collisions_total > 0


def test_event_at_duration_is_processed():
    """The end of the observation window is inclusive"""
    config = SimulationConfig(rate=1, packet_size_bits=1000, duration=1.0, node_count=1)
    sim = CSMASimulator(config, interval=constant_traffic(1), record_trace=True)
    statistics = sim.run()

    assert (1.0, "PACKET_ARRIVAL", 0) in [(t, kind, node) for t, _, kind, node in sim.trace]
    assert statistics.packets_generated == 1
    assert statistics.transmission_attempts_total == 1
    assert statistics.packets_in_flight_at_end == 1
    assert sim.nodes[0].state is NodeState.TRANSMITTING


def test_derived_metrics_of_a_regular_stream():
    config = SimulationConfig(rate=8, packet_size_bits=1000, duration=1.0, node_count=1)
    statistics = CSMASimulator(config, interval=constant_traffic(8)).run()
    occupancy = config.transmission_time + config.propagation_delay

    assert statistics.packets_generated == 8
    assert statistics.packets_delivered == 7
    assert statistics.packets_in_flight_at_end == 1
    assert statistics.bits_delivered_total == 7000
    assert statistics.throughput_bps == pytest.approx(7000)
    assert statistics.busy_time_total == pytest.approx(7 * occupancy)
    assert statistics.utilization == pytest.approx(7 * occupancy)
    assert statistics.mean_sojourn_time == pytest.approx(occupancy)
    assert statistics.sojourn_time_stddev == pytest.approx(0, abs=1e-12)
    assert statistics.collision_rate == 0
    assert statistics.fairness_index == pytest.approx(1.0)


def test_channel_matches_transmitting_nodes_after_every_event():
    config = dataclasses.replace(HIGH_LOAD, duration=0.1, persistent=True)
    sim = CSMASimulator(config)
    sim.traffic.start()

    while True:
        try:
            event = sim.events.pop_next()
        except QueueEmpty:
            break
        if event.time > config.duration:
            break
        sim.nodes[event.node_id].handle(event)

        transmitting = {n.id for n in sim.nodes.values() if n.state is NodeState.TRANSMITTING}
        assert transmitting == set(sim.channel.active_transmitters)
        assert sim.channel.busy == (len(sim.channel.active_transmitters) >= 1)


def test_buffer_overflow_drops_are_reported():
    config = SimulationConfig(
        rate=2000, packet_size_bits=1000, duration=0.2, node_count=1, buffer_limit=1
    )
    statistics = run_simulation(config)

    assert statistics.drops_by_reason.get("Buffer overflow", 0) > 0
    assert "Excessive collisions" not in statistics.drops_by_reason
    assert statistics.packets_in_flight_at_end <= 1
    assert statistics.is_conserved()


@pytest.mark.parametrize(
    "overrides", [{"rate": 0}, {"link_speed_bps": 0}, {"node_count": 0}, {"duration": -1}]
)
def test_invalid_config_fails_before_running(overrides):
    with pytest.raises(ConfigError):
        CSMASimulator(SimulationConfig(**overrides))


def test_hooks_see_every_outcome():
    sim = CSMASimulator(dataclasses.replace(HIGH_LOAD, duration=0.2, max_attempts=3))
    delivered, dropped, collisions, ended = [], [], [], []
    sim.register_hook("packet_delivered", lambda packet, time: delivered.append(packet))
    sim.register_hook("packet_dropped", lambda packet, reason, time: dropped.append(reason))
    sim.register_hook("collision", lambda node_id, time: collisions.append(node_id))
    sim.register_hook("sim_end", ended.append)

    statistics = sim.run()

    assert len(delivered) == statistics.packets_delivered
    assert len(dropped) == statistics.packets_dropped
    assert len(collisions) == statistics.collisions_total
    assert ended == [statistics]
    assert all(p.delivery_time is not None and not p.dropped for p in delivered)


def test_unknown_hook_and_second_run_are_rejected():
    sim = CSMASimulator(SimulationConfig(duration=0.1))
    with pytest.raises(ValueError):
        sim.register_hook("packet_hop", print)

    sim.run()
    with pytest.raises(RuntimeError):
        sim.run()


def test_collision_incidents_come_from_the_channel():
    sim = CSMASimulator(dataclasses.replace(HIGH_LOAD, persistent=True))
    statistics = sim.run()

    assert statistics.collision_incidents == sim.channel.collisions
    assert 0 < statistics.collision_incidents <= statistics.collisions_total
    assert "Collision incidents:" in str(statistics)


def test_arrival_clock_end_is_logged(caplog):
    config = SimulationConfig(rate=1, duration=1.5, node_count=1)
    with caplog.at_level(logging.DEBUG, logger="csma_sim.traffic.generators"):
        CSMASimulator(config, interval=constant_traffic(1)).run()

    assert "arrival clock passed" in caplog.text
