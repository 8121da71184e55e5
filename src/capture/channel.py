"""
Closable single-producer channel with pending-byte accounting.

Closing is an explicit call, not a side effect of object lifetime, so
the end-of-stream signal can be observed and tested on its own.
"""
import queue
import threading
from typing import Any, Iterator, Optional

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by put() after close(), and by get() once a closed channel is drained."""


class Channel:
    """
    Unbounded FIFO between the capture thread and its consumers.

    `pending_bytes` is the sum of the sizes given to put() for items not
    yet taken by get(); the monitor budgets against it.
    """

    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._pending_bytes = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_bytes(self) -> int:
        with self._lock:
            return self._pending_bytes

    def qsize(self) -> int:
        return self._queue.qsize()

    def put(self, item: Any, size: int = 0) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosed("channel is closed")
            self._pending_bytes += size
            self._queue.put((item, size))

    def close(self) -> bool:
        """Close the channel. Returns True only for the call that closed it."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._queue.put(_CLOSED)
            return True

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Take the next item.

        Raises queue.Empty if nothing arrives within `timeout`, and
        ChannelClosed once the channel is closed and drained.
        """
        entry = self._queue.get(timeout=timeout)
        if entry is _CLOSED:
            # leave the marker for any other consumer
            self._queue.put(_CLOSED)
            raise ChannelClosed("channel is closed")
        item, size = entry
        with self._lock:
            self._pending_bytes -= size
        return item

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except ChannelClosed:
                return
