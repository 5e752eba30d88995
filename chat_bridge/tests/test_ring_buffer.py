import threading

import pytest

from chat_bridge.infrastructure.telemetry.ring_buffer import LiveRequest, RingBuffer


def test_snapshot_keeps_insertion_order_and_evicts_oldest():
    buf = RingBuffer(3)
    assert buf.snapshot() == []
    for i in range(5):
        buf.append(i)
    assert buf.snapshot() == [2, 3, 4]
    assert buf.latest(2) == [3, 4]
    assert buf.latest(10) == [2, 3, 4]
    assert buf.latest(0) == []
    assert len(buf) == 3


def test_stats_and_clear():
    buf = RingBuffer(4)
    stats = buf.stats()
    assert (stats.size, stats.capacity, stats.usage, stats.last_add) == (0, 4, 0.0, None)
    buf.append(LiveRequest(method="POST", path="/api/talk", status=200, duration_ms=1.5))
    stats = buf.stats()
    assert stats.size == 1
    assert stats.usage == 0.25
    assert stats.last_add is not None
    buf.clear()
    assert buf.size() == 0
    assert buf.snapshot() == []


def test_invalid_capacity():
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_concurrent_appends():
    buf = RingBuffer(50)

    def worker(offset):
        for i in range(100):
            buf.append(offset + i)

    threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    items = buf.snapshot()
    assert len(items) == 50
    assert len(set(items)) == 50
