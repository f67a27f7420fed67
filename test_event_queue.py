import pytest

from csma_sim.core.enums import EventKind
from csma_sim.core.errors import QueueEmpty, QueueExhaustion
from csma_sim.core.event_queue import Event, EventQueue


def test_events_pop_in_time_order():
    """Events come out earliest first regardless of scheduling order"""
    queue = EventQueue()
    queue.schedule(0.3, EventKind.PACKET_ARRIVAL, 0)
    queue.schedule(0.1, EventKind.PACKET_ARRIVAL, 1)
    queue.schedule(0.2, EventKind.PACKET_ARRIVAL, 2)

    assert [queue.pop_next().node_id for _ in range(3)] == [1, 2, 0]


def test_ties_broken_by_scheduling_order():
    """Events sharing a timestamp pop in the order they were scheduled"""
    queue = EventQueue()
    for node_id in range(3):
        queue.schedule(0.5, EventKind.TRANSMISSION_START, node_id)
    queue.schedule(0.25, EventKind.BACKOFF_EXPIRED, 3)

    popped = [queue.pop_next() for _ in range(4)]

    assert [e.node_id for e in popped] == [3, 0, 1, 2]
    same_time = [e.sequence for e in popped[1:]]
    assert same_time == sorted(same_time)


def test_event_ordering_uses_time_then_sequence():
    early = Event(1.0, 5, EventKind.PACKET_ARRIVAL, 0)
    late = Event(2.0, 1, EventKind.PACKET_ARRIVAL, 0)
    tie = Event(1.0, 6, EventKind.COLLISION_DETECTED, 1)

    assert sorted([late, tie, early]) == [early, tie, late]


def test_current_time_tracks_last_popped_event():
    queue = EventQueue()
    queue.schedule(0.125, EventKind.PACKET_ARRIVAL, 0)
    queue.schedule(0.5, EventKind.PACKET_ARRIVAL, 0)

    assert queue.current_time == 0.0
    queue.pop_next()
    assert queue.current_time == 0.125

    with pytest.raises(ValueError):
        queue.schedule(0.1, EventKind.PACKET_ARRIVAL, 1)


def test_schedule_at_current_time():
    """An event scheduled for 'now' fires before later events"""
    queue = EventQueue()
    queue.schedule(0.25, EventKind.PACKET_ARRIVAL, 0)
    queue.schedule(0.75, EventKind.PACKET_ARRIVAL, 1)
    queue.pop_next()

    queue.schedule(0.25, EventKind.TRANSMISSION_START, 0, epoch=3)
    event = queue.pop_next()

    assert event.kind is EventKind.TRANSMISSION_START
    assert event.time == 0.25
    assert event.epoch == 3
    assert queue.pop_next().node_id == 1


def test_empty_queue():
    queue = EventQueue()
    assert queue.is_empty()
    assert len(queue) == 0

    with pytest.raises(QueueEmpty):
        queue.pop_next()
    with pytest.raises(QueueExhaustion):
        queue.pop_next_or_raise()


def test_pending_count():
    queue = EventQueue()
    queue.schedule(1.0, EventKind.PACKET_ARRIVAL, 0)
    queue.schedule(2.0, EventKind.PACKET_ARRIVAL, 0)
    assert len(queue) == 2

    queue.pop_next_or_raise()
    assert len(queue) == 1
    assert not queue.is_empty()
