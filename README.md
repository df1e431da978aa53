# webreactor

Building blocks for a reactor-style network server, and a small web benchmark.

* A readiness **poller** that maps file descriptors to **channels** and
  dispatches read, write, error and connection events to their handlers. It
  uses `epoll` where available and falls back to a level-triggered selector
  elsewhere.
* A **timer manager** that expires idle requests from a lazily pruned min-heap.
* A bounded **thread pool** for running tasks on worker threads.
* A double-buffered **asynchronous logger** that writes timestamped records to
  a file from a background thread.
* **`webbench`**, a command that runs a number of HTTP clients against one URL
  for a fixed time and reports pages per minute, bytes per second, and how many
  requests succeeded and failed.

Only the standard library is used.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

* `webreactor.logstream`: `FixedBuffer`, a byte buffer with a hard capacity
  that drops data which does not fit, and `LogStream`, which formats values
  into one with `stream << value`. `format_value` renders a single value
  (`True`/`False` as `1`/`0`, floats with `%.12g`, `None` as `(null)`).
* `webreactor.logfile`: `AppendFile`, a file opened for appending with a
  64 KiB buffer, and `LogFile`, a thread-safe wrapper that flushes after every
  `flush_every_n` appends (1024 by default).
* `webreactor.sync`: `CountDownLatch`, `Thread` (whose `start` returns only
  once the function is running and its `tid` is known) and `current_tid`.
* `webreactor.asynclogging`: `AsyncLogging`, the background writer. Lines are
  collected in 4 MB buffers and written every `flush_interval` seconds (2 by
  default) or when a buffer fills. If more than 25 buffers pile up, only the
  first two are written.
* `webreactor.logger`: `log`, `Logger`, `output`, `set_log_file_name` and
  `get_log_file_name`.
* `webreactor.timer`: `TimerNode` and `TimerManager`.
* `webreactor.channel`: `Channel` and `EventFlag`, readiness bits with the
  kernel's epoll values.
* `webreactor.poller`: `Poller`.
* `webreactor.threadpool`: `ThreadPool`, `ShutdownOption` and the errors
  `ThreadPoolError`, `QueueFullError` and `PoolShutdownError`.
* `webreactor.webbench`: the benchmark: `parse_args`, `build_request`,
  `bench_core`, `bench`, `format_report`, `main`, and the `BenchOptions`,
  `BenchResult`, `Method` and `UsageError` types.

## Logging

```python
from webreactor.logger import set_log_file_name, log

set_log_file_name("/tmp/app.log")
log("listening on port ", 8080)
```

Each record is a `YYYY-MM-DD HH:MM:SS` line, then the values, then
` -- <file>:<line>` naming the caller. The default file is `./WebServer.log`.
The background writer starts with the first record. It is stopped when the
process exits, and also when the file name is changed.

`Logger(file_name, line)` builds a record by hand. Use it with `<<` and send it
with `finish()`, or use it as a context manager.

## Timers

`TimerManager.add_timer(request, timeout_ms)` pushes a `TimerNode` and calls
`request.link_timer(node)`. `handle_expired_event()` pops timers from the front
of the heap while they are deleted or expired. When the popped timer still holds
its request, it calls `request.handle_close()` on it. `TimerNode.clear_request()`
detaches the request and marks the node deleted. The node then stays in the heap
until it reaches the front.

## Poller and channels

```python
import socket
from webreactor.channel import Channel, EventFlag
from webreactor.poller import Poller

a, b = socket.socketpair()
with Poller() as poller:
    channel = Channel(None, a.fileno())
    channel.events = EventFlag.IN
    channel.read_handler = lambda: print(a.recv(100))
    poller.epoll_add(channel, 0)
    b.send(b"ping")
    for ready in poller.poll(1000):
        ready.handle_events()
```

`poll(timeout)` waits once for up to `timeout` milliseconds. A negative
timeout waits without limit. With no timeout it keeps waiting, 10 seconds at a
time, until some channel is ready. `epoll_add` and `epoll_mod` accept a timeout
in milliseconds. When it is positive, they register a timer for the channel's
`holder`. `epoll_mod` only re-registers when the channel's events changed.

## Thread pool

```python
from webreactor.threadpool import ThreadPool, ShutdownOption

with ThreadPool(4, 64) as pool:
    pool.add(print, "hello")
```

Out-of-range sizes fall back to 4 threads and a queue of 1024. `add` raises
`QueueFullError` when the queue is full and `PoolShutdownError` after shutdown.
`destroy(ShutdownOption.GRACEFUL)` finishes the queued tasks before the workers
exit. `destroy(ShutdownOption.IMMEDIATE)` drops them. Leaving the `with`
block destroys the pool gracefully.

## Benchmarking

```
webbench [option]... URL
```

* `-f`, `--force`: don't wait for the reply from the server.
* `-r`, `--reload`: send `Pragma: no-cache` (with a proxy).
* `-t`, `--time SEC`: run for SEC seconds. Default 30.
* `-p`, `--proxy HOST:PORT`: send requests through a proxy server.
* `-c`, `--clients N`: run N clients at once, each on its own thread. Default one.
* `-k`: reuse one Keep-Alive connection per client.
* `-9`, `--http09` / `-1`, `--http10` / `-2`, `--http11`: protocol version.
* `--get`, `--head`, `--options`, `--trace`: request method. HEAD raises the
  version to at least HTTP/1.0, and OPTIONS and TRACE raise it to HTTP/1.1.
* `-?`, `-h`, `--help`: usage. `-V`, `--version`: print the version.

The URL must start with `http://` and must contain a `/` after the host, for
example `http://127.0.0.1:8080/hello`. The exit status is `0` on success, `1`
if the server could not be reached, and `2` for bad arguments or a bad URL.

## What this package does not include

There is no runnable HTTP server here. The package has no event loop that ties
the poller to worker threads, no listening-socket or connection handling, and
no HTTP request parsing or file serving. The poller, channels, timers, thread
pool and logger are the pieces such a server is built from. The only command
provided is `webbench`.