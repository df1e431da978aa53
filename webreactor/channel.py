"""A file descriptor with the events it waits for and the handlers to run."""

from __future__ import annotations

import enum
import weakref


class EventFlag(enum.IntFlag):
    """Readiness bits with the values the kernel uses for epoll."""

    IN = 0x001
    PRI = 0x002
    OUT = 0x004
    ERR = 0x008
    HUP = 0x010
    RDHUP = 0x2000
    ONESHOT = 1 << 30
    ET = 1 << 31


class Channel:
    """Dispatches readiness events on one descriptor to its handlers."""

    def __init__(self, loop, fd=0):
        self.loop = loop
        self.fd = fd
        self.events = 0
        self.revents = 0
        self.last_events = 0
        self.read_handler = None
        self.write_handler = None
        self.error_handler = None
        self.conn_handler = None
        self._holder = None

    @property
    def holder(self):
        """The object owning this channel, or None once it is gone."""
        return self._holder() if self._holder is not None else None

    @holder.setter
    def holder(self, value):
        self._holder = weakref.ref(value) if value is not None else None

    def equal_and_update_last_events(self):
        """Return whether the events are unchanged since the last call, then record them."""
        same = self.last_events == self.events
        self.last_events = self.events
        return same

    def handle_events(self):
        self.events = 0
        revents = self.revents
        if (revents & EventFlag.HUP) and not (revents & EventFlag.IN):
            return
        if revents & EventFlag.ERR:
            if self.error_handler:
                self.error_handler()
            self.events = 0
            return
        if revents & (EventFlag.IN | EventFlag.PRI | EventFlag.RDHUP):
            self.handle_read()
        if revents & EventFlag.OUT:
            self.handle_write()
        self.handle_conn()

    def handle_read(self):
        if self.read_handler:
            self.read_handler()

    def handle_write(self):
        if self.write_handler:
            self.write_handler()

    def handle_conn(self):
        if self.conn_handler:
            self.conn_handler()