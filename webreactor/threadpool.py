"""A fixed-size worker pool fed from a bounded task queue."""

from __future__ import annotations

import collections
import enum
import threading
import traceback

MAX_THREADS = 1024
MAX_QUEUE = 65535
DEFAULT_THREADS = 4
DEFAULT_QUEUE = 1024


class ShutdownOption(enum.IntEnum):
    """How the pool stops: drop pending tasks or finish them first."""

    IMMEDIATE = 1
    GRACEFUL = 2


class ThreadPoolError(Exception):
    """Base class of thread-pool errors."""


class QueueFullError(ThreadPoolError):
    """The task queue has no room left."""


class PoolShutdownError(ThreadPoolError):
    """The pool is shutting down or already shut down."""


class ThreadPool:
    """Runs ``func(arg)`` tasks on worker threads.

    Out-of-range sizes fall back to 4 threads and a queue of 1024.
    """

    def __init__(self, thread_count=DEFAULT_THREADS, queue_size=DEFAULT_QUEUE):
        if (
            thread_count <= 0
            or thread_count > MAX_THREADS
            or queue_size <= 0
            or queue_size > MAX_QUEUE
        ):
            thread_count = DEFAULT_THREADS
            queue_size = DEFAULT_QUEUE
        self.thread_count = thread_count
        self.queue_size = queue_size
        self._queue = collections.deque()
        self._cond = threading.Condition()
        self._shutdown = None
        self._started = 0
        self._threads = []
        for i in range(thread_count):
            worker = threading.Thread(
                target=self._worker, name=f"ThreadPool-{i}", daemon=True
            )
            worker.start()
            self._threads.append(worker)
            self._started += 1

    @property
    def shutdown_option(self):
        """The option the pool was shut down with, or None while running."""
        return self._shutdown

    @property
    def pending(self):
        with self._cond:
            return len(self._queue)

    @property
    def running_threads(self):
        with self._cond:
            return self._started

    def add(self, func, arg=None):
        """Queue ``func(arg)``; raise if the queue is full or the pool is stopping."""
        with self._cond:
            if len(self._queue) == self.queue_size:
                raise QueueFullError("task queue is full")
            if self._shutdown is not None:
                raise PoolShutdownError("thread pool is shut down")
            self._queue.append((func, arg))
            self._cond.notify()

    def destroy(self, option=ShutdownOption.GRACEFUL):
        """Stop the workers and wait for them to exit."""
        with self._cond:
            if self._shutdown is not None:
                raise PoolShutdownError("thread pool is already shut down")
            self._shutdown = ShutdownOption(option)
            self._cond.notify_all()
        for worker in self._threads:
            worker.join()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        if self._shutdown is None:
            self.destroy()

    def _worker(self):
        while True:
            with self._cond:
                while not self._queue and self._shutdown is None:
                    self._cond.wait()
                if self._shutdown is ShutdownOption.IMMEDIATE or (
                    self._shutdown is ShutdownOption.GRACEFUL and not self._queue
                ):
                    self._started -= 1
                    return
                func, arg = self._queue.popleft()
            try:
                func(arg)
            except Exception:
                traceback.print_exc()