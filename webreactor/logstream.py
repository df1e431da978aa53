"""Fixed-size byte buffers and a stream that formats values into them."""

from __future__ import annotations

SMALL_BUFFER = 4000
LARGE_BUFFER = 4000 * 1000
MAX_NUMERIC_SIZE = 32


class FixedBuffer:
    """A byte buffer with a hard capacity; data that does not fit is dropped."""

    def __init__(self, size=SMALL_BUFFER):
        if size <= 0:
            raise ValueError("buffer size must be positive")
        self.size = size
        self._data = bytearray()

    def append(self, data):
        """Append ``data`` if it fits strictly inside the remaining space."""
        data = bytes(data)
        if self.avail() > len(data):
            self._data += data

    def avail(self):
        return self.size - len(self._data)

    def reset(self):
        self._data.clear()

    def data(self):
        return bytes(self._data)

    def __len__(self):
        return len(self._data)


def format_value(value):
    """Render one value the way the log stream writes it."""
    if value is None:
        return b"(null)"
    if isinstance(value, bool):
        return b"1" if value else b"0"
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, float):
        return b"%.12g" % value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value).encode("utf-8")


def _is_numeric(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class LogStream:
    """Accumulates formatted values with ``stream << value``."""

    def __init__(self):
        self.buffer = FixedBuffer(SMALL_BUFFER)

    def __lshift__(self, value):
        if _is_numeric(value) and self.buffer.avail() < MAX_NUMERIC_SIZE:
            return self
        self.buffer.append(format_value(value))
        return self

    def append(self, data):
        self.buffer.append(data)

    def getvalue(self):
        return self.buffer.data()

    def reset_buffer(self):
        self.buffer.reset()