"""Readiness polling for channels, with per-connection timeouts."""

from __future__ import annotations

import errno
import os
import select
import selectors
import time

from webreactor.channel import EventFlag
from webreactor.logger import log
from webreactor.timer import TimerManager

EVENTS_NUM = 4096
EPOLL_WAIT_TIME = 10000  # ms

_READ_MASK = EventFlag.IN | EventFlag.PRI | EventFlag.RDHUP


def _fileno(fd):
    return fd if isinstance(fd, int) else fd.fileno()


class _EpollBackend:
    def __init__(self):
        self._epoll = select.epoll()

    def register(self, fd, mask):
        self._epoll.register(fd, int(mask))

    def modify(self, fd, mask):
        self._epoll.modify(fd, int(mask))

    def unregister(self, fd):
        self._epoll.unregister(fd)

    def poll(self, seconds):
        return self._epoll.poll(-1 if seconds is None else seconds, EVENTS_NUM)

    def fileno(self):
        return self._epoll.fileno()

    def close(self):
        self._epoll.close()


class _SelectorBackend:
    """Level-triggered stand-in where epoll is not available."""

    def __init__(self):
        self._selector = selectors.DefaultSelector()
        self._masks = {}

    def _apply(self, fd):
        mask = self._masks.get(fd, 0)
        wanted = 0
        if mask & _READ_MASK:
            wanted |= selectors.EVENT_READ
        if mask & EventFlag.OUT:
            wanted |= selectors.EVENT_WRITE
        registered = fd in self._selector.get_map()
        if registered and wanted:
            self._selector.modify(fd, wanted)
        elif registered:
            self._selector.unregister(fd)
        elif wanted:
            self._selector.register(fd, wanted)

    def register(self, fd, mask):
        if fd in self._masks:
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST))
        self._masks[fd] = mask
        self._apply(fd)

    def modify(self, fd, mask):
        if fd not in self._masks:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT))
        self._masks[fd] = mask
        self._apply(fd)

    def unregister(self, fd):
        if fd not in self._masks:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT))
        self._masks[fd] = 0
        self._apply(fd)
        del self._masks[fd]

    def poll(self, seconds):
        if not self._selector.get_map():
            time.sleep(EPOLL_WAIT_TIME / 1000 if seconds is None else seconds)
            return []
        ready = []
        for key, events in self._selector.select(seconds):
            mask = 0
            if events & selectors.EVENT_READ:
                mask |= EventFlag.IN
            if events & selectors.EVENT_WRITE:
                mask |= EventFlag.OUT
            ready.append((key.fd, mask))
        return ready

    def fileno(self):
        return self._selector.fileno() if hasattr(self._selector, "fileno") else -1

    def close(self):
        self._selector.close()


class Poller:
    """Maps descriptors to channels and reports which channels are ready."""

    def __init__(self):
        self._backend = _EpollBackend() if hasattr(select, "epoll") else _SelectorBackend()
        self._fd2chan = {}
        self._fd2http = {}
        self.timer_manager = TimerManager()

    def fileno(self):
        return self._backend.fileno()

    def get_channel(self, fd):
        """Return the channel registered for ``fd``, or None."""
        return self._fd2chan.get(_fileno(fd))

    def poll(self, timeout=None):
        """Return the ready channels.

        With ``timeout`` None, keep waiting until some channel is ready; with a
        timeout in milliseconds, wait once and return what is ready, possibly
        nothing. A negative timeout waits without limit.
        """
        wait_ms = EPOLL_WAIT_TIME if timeout is None else timeout
        seconds = None if wait_ms < 0 else wait_ms / 1000
        while True:
            channels = self.get_events_request(self._backend.poll(seconds))
            if channels or timeout is not None:
                return channels

    def get_events_request(self, events):
        """Turn ``(fd, mask)`` pairs into channels, recording what happened on each."""
        channels = []
        for fd, mask in events:
            channel = self._fd2chan.get(fd)
            if channel is None:
                log("SP cur_req is invalid")
                continue
            channel.revents = mask
            channel.events = 0
            channels.append(channel)
        return channels

    def epoll_add(self, channel, timeout=0):
        fd = _fileno(channel.fd)
        if timeout > 0:
            self.add_timer(channel, timeout)
            self._fd2http[fd] = channel.holder
        events = channel.events
        channel.equal_and_update_last_events()
        self._fd2chan[fd] = channel
        try:
            self._backend.register(fd, events)
        except OSError:
            self._fd2chan.pop(fd, None)
            raise

    def epoll_mod(self, channel, timeout=0):
        if timeout > 0:
            self.add_timer(channel, timeout)
        fd = _fileno(channel.fd)
        if not channel.equal_and_update_last_events():
            try:
                self._backend.modify(fd, channel.events)
            except OSError:
                self._fd2chan.pop(fd, None)
                raise

    def epoll_del(self, channel):
        fd = _fileno(channel.fd)
        try:
            self._backend.unregister(fd)
        except OSError as exc:
            log("epoll_del error: ", str(exc))
        self._fd2chan.pop(fd, None)
        self._fd2http.pop(fd, None)

    def add_timer(self, channel, timeout):
        holder = channel.holder
        if holder is not None:
            self.timer_manager.add_timer(holder, timeout)
        else:
            log("timer add fail")

    def handle_expired(self):
        self.timer_manager.handle_expired_event()

    def close(self):
        self._backend.close()
        self._fd2chan.clear()
        self._fd2http.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()