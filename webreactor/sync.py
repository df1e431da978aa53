"""Thread helpers: a count-down latch and a thread that reports its id."""

from __future__ import annotations

import threading


def current_tid():
    """Return the operating-system id of the calling thread."""
    return threading.get_native_id()


class CountDownLatch:
    """Blocks waiters until the count reaches zero."""

    def __init__(self, count):
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self):
        with self._cond:
            return self._count

    def wait(self):
        with self._cond:
            while self._count > 0:
                self._cond.wait()

    def count_down(self):
        with self._cond:
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()


class Thread:
    """A thread whose ``start`` returns only once the function is running."""

    def __init__(self, func, name=""):
        self._func = func
        self.name = name or "Thread"
        self._started = False
        self._joined = False
        self._tid = 0
        self._latch = CountDownLatch(1)
        self._thread = None

    @property
    def started(self):
        return self._started

    @property
    def tid(self):
        return self._tid

    def start(self):
        if self._started:
            raise RuntimeError("thread already started")
        self._started = True
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        try:
            self._thread.start()
        except RuntimeError:
            self._started = False
            self._thread = None
            raise
        self._latch.wait()

    def _run(self):
        self._tid = current_tid()
        self._latch.count_down()
        self._func()

    def join(self):
        if not self._started:
            raise RuntimeError("thread not started")
        if self._joined:
            raise RuntimeError("thread already joined")
        self._joined = True
        self._thread.join()