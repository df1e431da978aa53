"""Front end of the logging system: timestamped records sent to a file."""

from __future__ import annotations

import atexit
import inspect
import threading
import time

from webreactor.asynclogging import AsyncLogging
from webreactor.logstream import LogStream

DEFAULT_LOG_FILE = "./WebServer.log"

_lock = threading.Lock()
_log_file_name = DEFAULT_LOG_FILE
_backend = None


def _stop_backend():
    global _backend
    with _lock:
        backend, _backend = _backend, None
    if backend is not None:
        backend.stop()


atexit.register(_stop_backend)


def set_log_file_name(name):
    """Set the log file; a running backend is stopped so later records use it."""
    global _log_file_name
    with _lock:
        _log_file_name = str(name)
    _stop_backend()


def get_log_file_name():
    with _lock:
        return _log_file_name


def output(data):
    """Hand a finished record to the background writer, starting it if needed."""
    global _backend
    with _lock:
        if _backend is None:
            _backend = AsyncLogging(_log_file_name)
            _backend.start()
        backend = _backend
    backend.append(data)


class Logger:
    """One log record: a timestamp line, the streamed values and a source tag."""

    def __init__(self, file_name, line):
        self.file_name = file_name
        self.line = line
        self.stream = LogStream()
        self._finished = False
        self.stream << time.strftime("%Y-%m-%d %H:%M:%S\n", time.localtime())

    def __lshift__(self, value):
        self.stream << value
        return self

    def finish(self):
        """Close the record and send it; later calls do nothing."""
        if self._finished:
            return
        self._finished = True
        self.stream << " -- " << self.file_name << ":" << self.line << "\n"
        output(self.stream.getvalue())

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.finish()


def log(*args):
    """Write one record made of ``args``, tagged with the caller's file and line."""
    frame = inspect.currentframe().f_back
    try:
        file_name, line = frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame
    with Logger(file_name, line) as record:
        for value in args:
            record << value