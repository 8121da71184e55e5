import queue

import pytest

from capture.channel import Channel, ChannelClosed


def test_fifo_and_pending_bytes():
    channel = Channel()
    channel.put("a", 10)
    channel.put("b", 5)
    assert channel.pending_bytes == 15
    assert channel.get(timeout=0.1) == "a"
    assert channel.pending_bytes == 5
    assert channel.get(timeout=0.1) == "b"
    assert channel.pending_bytes == 0


def test_get_times_out_when_empty():
    with pytest.raises(queue.Empty):
        Channel().get(timeout=0.01)


def test_close_is_observable_once_drained():
    channel = Channel()
    channel.put("last", 1)
    assert channel.close() is True
    assert channel.close() is False
    assert channel.closed
    assert channel.get(timeout=0.1) == "last"
    with pytest.raises(ChannelClosed):
        channel.get(timeout=0.1)
    # a second consumer sees the end too
    with pytest.raises(ChannelClosed):
        channel.get(timeout=0.1)


def test_put_after_close_raises():
    channel = Channel()
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.put("x", 1)


def test_iteration_stops_at_close():
    channel = Channel()
    for item in range(3):
        channel.put(item, 1)
    channel.close()
    assert list(channel) == [0, 1, 2]
