"""Double-buffered logging backend that writes from a background thread."""

from __future__ import annotations

import threading

from webreactor.logfile import LogFile
from webreactor.logstream import LARGE_BUFFER, FixedBuffer
from webreactor.sync import CountDownLatch, Thread

_MAX_QUEUED_BUFFERS = 25
_KEPT_BUFFERS = 2


class AsyncLogging:
    """Collects log lines in memory and writes them to a file in the background."""

    def __init__(self, basename, flush_interval=2):
        basename = str(basename)
        if len(basename) <= 1:
            raise ValueError("log file name is too short")
        self.basename = basename
        self.flush_interval = flush_interval
        self._running = False
        self._cond = threading.Condition()
        self._current = FixedBuffer(LARGE_BUFFER)
        self._next = FixedBuffer(LARGE_BUFFER)
        self._buffers = []
        self._latch = CountDownLatch(1)
        self._thread = Thread(self._thread_func, "Logging")

    @property
    def running(self):
        return self._running

    def append(self, data):
        data = bytes(data)
        with self._cond:
            if self._current.avail() > len(data):
                self._current.append(data)
                return
            self._buffers.append(self._current)
            if self._next is not None:
                self._current, self._next = self._next, None
            else:
                self._current = FixedBuffer(LARGE_BUFFER)
            self._current.append(data)
            self._cond.notify()

    def start(self):
        self._running = True
        self._thread.start()
        self._latch.wait()

    def stop(self):
        if not self._running:
            return
        with self._cond:
            self._running = False
            self._cond.notify()
        self._thread.join()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def _thread_func(self):
        self._latch.count_down()
        output = LogFile(self.basename)
        spare1 = FixedBuffer(LARGE_BUFFER)
        spare2 = FixedBuffer(LARGE_BUFFER)
        try:
            while self._running:
                with self._cond:
                    if not self._buffers and self._running:
                        self._cond.wait(self.flush_interval)
                    self._buffers.append(self._current)
                    self._current, spare1 = spare1, None
                    to_write, self._buffers = self._buffers, []
                    if self._next is None:
                        self._next, spare2 = spare2, None

                if len(to_write) > _MAX_QUEUED_BUFFERS:
                    del to_write[_KEPT_BUFFERS:]
                for buf in to_write:
                    output.append(buf.data())
                del to_write[_KEPT_BUFFERS:]

                if spare1 is None:
                    spare1 = to_write.pop()
                    spare1.reset()
                if spare2 is None:
                    spare2 = to_write.pop()
                    spare2.reset()
                output.flush()

            with self._cond:
                leftovers = self._buffers + [self._current]
                self._buffers = []
                self._current = FixedBuffer(LARGE_BUFFER)
            for buf in leftovers:
                if len(buf):
                    output.append(buf.data())
            output.flush()
        finally:
            output.close()