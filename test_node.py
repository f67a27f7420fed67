from csma_sim.config import SimulationConfig
from csma_sim.core.enums import EventKind, NodeState
from csma_sim.core.event_queue import Event
from csma_sim.core.node import TRANSITIONS
from csma_sim.core.simulator import CSMASimulator
from csma_sim.traffic.generators import constant_traffic


def scripted_intervals(values, then=10.0):
    """Inter-arrival function returning the given values, then a long gap"""
    values = iter(values)
    return lambda: next(values, then)


def test_transition_table_covers_every_state():
    states = {state for state, _ in TRANSITIONS}
    assert states == set(NodeState)
    assert (NodeState.IDLE, EventKind.TRANSMISSION_END) not in TRANSITIONS


def test_single_packet_walks_through_states():
    config = SimulationConfig(rate=8, packet_size_bits=1000, duration=1.0, node_count=1)
    sim = CSMASimulator(config, interval=constant_traffic(8))
    node = sim.nodes[0]
    sim.traffic.start()

    arrival = sim.events.pop_next()
    assert arrival.kind is EventKind.PACKET_ARRIVAL
    assert arrival.time == 0.125
    node.handle(arrival)
    assert node.state is NodeState.SENSING
    assert len(node.queue) == 1

    start = sim.events.pop_next()
    assert start.kind is EventKind.TRANSMISSION_START
    node.handle(start)
    assert node.state is NodeState.TRANSMITTING
    assert node.epoch == 1
    assert sim.channel.busy
    assert node.queue[0].attempt_count == 1

    # An end-of-transmission event from an older attempt is ignored
    node.handle(Event(start.time, 999, EventKind.TRANSMISSION_END, 0, epoch=0))
    assert node.state is NodeState.TRANSMITTING

    end = sim.events.pop_next()
    assert end.kind is EventKind.TRANSMISSION_END
    assert end.time == 0.125 + config.transmission_time + config.propagation_delay
    node.handle(end)
    assert node.state is NodeState.IDLE
    assert not sim.channel.busy
    assert len(node.queue) == 0
    assert sim.stats.nodes[0].packets_delivered == 1


def test_events_without_transition_are_ignored():
    sim = CSMASimulator(SimulationConfig(node_count=1))
    node = sim.nodes[0]
    node.handle(Event(0.0, 0, EventKind.BACKOFF_EXPIRED, 0))
    node.handle(Event(0.0, 1, EventKind.COLLISION_DETECTED, 0, epoch=0))
    assert node.state is NodeState.IDLE
    assert node.current_attempt == 0


def test_simultaneous_arrivals_collide():
    """Two nodes sensing an idle medium at the same instant both transmit"""
    config = SimulationConfig(rate=8, packet_size_bits=1000, duration=0.2, node_count=2)
    sim = CSMASimulator(config, interval=constant_traffic(8))
    statistics = sim.run()

    assert statistics.per_node[0].collisions >= 1
    assert statistics.per_node[1].collisions >= 1
    assert statistics.collisions_total >= 2
    assert statistics.is_conserved()


def test_endless_collisions_drop_the_packet():
    """With no backoff spread the pair collides until both give up"""
    config = SimulationConfig(
        rate=8,
        packet_size_bits=1000,
        duration=0.2,
        node_count=2,
        backoff_cap=0,
        max_attempts=3,
    )
    statistics = CSMASimulator(config, interval=constant_traffic(8)).run()

    assert statistics.packets_generated == 2
    assert statistics.packets_dropped == 2
    assert statistics.packets_delivered == 0
    assert statistics.drops_by_reason == {"Excessive collisions": 2}
    assert statistics.collisions_total == 8
    assert statistics.transmission_attempts_total == 8
    assert statistics.collision_rate == 1.0


def test_persistent_waiters_wake_together_and_collide():
    config = SimulationConfig(
        packet_size_bits=1000, duration=1.0, node_count=3, persistent=True
    )
    interval = scripted_intervals([0.1, 0.1002, 0.1003])
    sim = CSMASimulator(config, interval=interval)
    woken = []
    original = sim.channel.unregister

    def unregister(node_id, time):
        nodes = original(node_id, time)
        woken.extend(nodes)
        return nodes

    sim.channel.unregister = unregister
    statistics = sim.run()

    assert woken[:2] == [1, 2]
    assert statistics.per_node[0].collisions == 0
    assert statistics.per_node[0].packets_delivered == 1
    assert statistics.per_node[1].collisions >= 1
    assert statistics.per_node[2].collisions >= 1
    assert statistics.is_conserved()


def test_non_persistent_node_defers_while_carrier_is_heard():
    config = SimulationConfig(packet_size_bits=1000, duration=1.0, node_count=2)
    interval = scripted_intervals([0.1, 0.1002])
    sim = CSMASimulator(config, interval=interval, record_trace=True)
    statistics = sim.run()

    retries = [entry for entry in sim.trace if entry[2] == "CARRIER_SENSE_RETRY"]
    assert retries
    assert all(entry[3] == 1 for entry in retries)
    assert statistics.collisions_total == 0
    assert statistics.packets_delivered == 2
    assert sim.channel.waiting == []
