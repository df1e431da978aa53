"""Connection timeouts kept in a lazily pruned min-heap."""

from __future__ import annotations

import heapq
import time


def _now_ms():
    return time.monotonic() * 1000.0


class TimerNode:
    """An expiry time for one request; closes the request when it expires."""

    def __init__(self, request, timeout):
        self.request = request
        self.deleted = False
        self.expired_time = _now_ms() + timeout

    def update(self, timeout):
        self.expired_time = _now_ms() + timeout

    def is_valid(self):
        """Return whether the timer is still running; an expired timer is marked deleted."""
        if _now_ms() < self.expired_time:
            return True
        self.deleted = True
        return False

    def clear_request(self):
        """Detach the request so expiry no longer closes it."""
        self.request = None
        self.deleted = True

    def _release(self):
        request, self.request = self.request, None
        if request is not None:
            request.handle_close()

    def __lt__(self, other):
        return self.expired_time < other.expired_time


class TimerManager:
    """Holds timers ordered by expiry.

    Deleted timers are not removed at once; they are dropped once they reach
    the front of the heap, either because they expired or because every
    earlier timer is gone.
    """

    def __init__(self):
        self._heap = []

    def add_timer(self, request, timeout):
        node = TimerNode(request, timeout)
        heapq.heappush(self._heap, node)
        request.link_timer(node)
        return node

    def handle_expired_event(self):
        """Drop deleted or expired timers from the front, closing their requests."""
        while self._heap:
            node = self._heap[0]
            if node.deleted or not node.is_valid():
                heapq.heappop(self._heap)
                node._release()
            else:
                break

    def __len__(self):
        return len(self._heap)