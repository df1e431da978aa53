"""Appending log files with periodic flushing."""

from __future__ import annotations

import sys
import threading

_FILE_BUFFER_SIZE = 64 * 1024


class AppendFile:
    """A file opened for appending with a large user-space buffer."""

    def __init__(self, filename):
        self.filename = str(filename)
        self._file = open(self.filename, "ab", buffering=_FILE_BUFFER_SIZE)

    def append(self, data):
        try:
            self._file.write(bytes(data))
        except OSError as exc:
            print(f"appending to {self.filename} failed: {exc}", file=sys.stderr)

    def flush(self):
        self._file.flush()

    def close(self):
        if not self._file.closed:
            self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class LogFile:
    """Thread-safe log file that flushes after every ``flush_every_n`` appends."""

    def __init__(self, basename, flush_every_n=1024):
        self.basename = str(basename)
        self.flush_every_n = flush_every_n
        self._count = 0
        self._lock = threading.Lock()
        self._file = AppendFile(self.basename)

    def append(self, data):
        with self._lock:
            self._file.append(data)
            self._count += 1
            if self._count >= self.flush_every_n:
                self._count = 0
                self._file.flush()

    def flush(self):
        with self._lock:
            self._file.flush()

    def close(self):
        with self._lock:
            self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()