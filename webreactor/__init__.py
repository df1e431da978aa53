"""Reactor building blocks (poller, channels, timers, thread pool, async logging) and a web benchmark."""

__version__ = "1.0.0"