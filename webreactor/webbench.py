"""A simple HTTP benchmark: many clients hammering one URL for a fixed time."""

from __future__ import annotations

import concurrent.futures
import enum
import getopt
import re
import socket
import sys
import time
from dataclasses import dataclass

PROGRAM_VERSION = "1.5"
MAX_URL_LENGTH = 1500
READ_SIZE = 1500
DEFAULT_BENCH_TIME = 30
_MIN_WAIT = 0.001

USAGE = (
    "webbench [option]... URL\n"
    "  -f|--force               Don't wait for reply from server.\n"
    "  -r|--reload              Send reload request - Pragma: no-cache.\n"
    "  -t|--time <sec>          Run benchmark for <sec> seconds. Default 30.\n"
    "  -p|--proxy <server:port> Use proxy server for request.\n"
    "  -c|--clients <n>         Run <n> HTTP clients at once. Default one.\n"
    "  -k|--keep                Keep-Alive\n"
    "  -9|--http09              Use HTTP/0.9 style requests.\n"
    "  -1|--http10              Use HTTP/1.0 protocol.\n"
    "  -2|--http11              Use HTTP/1.1 protocol.\n"
    "  --get                    Use GET request method.\n"
    "  --head                   Use HEAD request method.\n"
    "  --options                Use OPTIONS request method.\n"
    "  --trace                  Use TRACE request method.\n"
    "  -?|-h|--help             This information.\n"
    "  -V|--version             Display program version.\n"
)

_SHORT_OPTIONS = "912Vfrt:p:c:?hk"
_LONG_OPTIONS = [
    "force", "reload", "time=", "help", "http09", "http10", "http11",
    "get", "head", "options", "trace", "version", "proxy=", "clients=",
]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text):
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class Method(enum.IntEnum):
    GET = 0
    HEAD = 1
    OPTIONS = 2
    TRACE = 3


class UsageError(Exception):
    """Bad command line or URL; ``show_usage`` asks for the help text."""

    def __init__(self, message="", show_usage=False):
        super().__init__(message)
        self.message = message
        self.show_usage = show_usage


@dataclass
class BenchOptions:
    force: bool = False
    force_reload: bool = False
    bench_time: int = DEFAULT_BENCH_TIME
    http_version: int = 1  # 0: HTTP/0.9, 1: HTTP/1.0, 2: HTTP/1.1
    method: Method = Method.GET
    clients: int = 1
    proxy_host: str | None = None
    proxy_port: int = 80
    keep_alive: bool = False
    url: str = ""
    show_version: bool = False


@dataclass
class BenchResult:
    speed: int = 0
    failed: int = 0
    bytes_read: int = 0

    def __add__(self, other):
        return BenchResult(
            self.speed + other.speed,
            self.failed + other.failed,
            self.bytes_read + other.bytes_read,
        )


def connect(host, port):
    """Open an IPv4 TCP connection; raises OSError on failure."""
    address = socket.gethostbyname(host)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except OSError:
        sock.close()
        raise
    return sock


def _parse_proxy(value, options):
    colon = value.rfind(":")
    if colon < 0:
        options.proxy_host = value
        return
    if colon == 0:
        raise UsageError(f"Error in option --proxy {value}: Missing hostname.")
    if colon == len(value) - 1:
        raise UsageError(f"Error in option --proxy {value} Port number is missing.")
    options.proxy_host = value[:colon]
    options.proxy_port = _atoi(value[colon + 1:])


def parse_args(argv):
    """Turn the command line into BenchOptions; raises UsageError."""
    try:
        opts, args = getopt.gnu_getopt(list(argv), _SHORT_OPTIONS, _LONG_OPTIONS)
    except getopt.GetoptError as exc:
        raise UsageError(str(exc), show_usage=True) from exc
    options = BenchOptions()
    methods = {"--get": Method.GET, "--head": Method.HEAD,
               "--options": Method.OPTIONS, "--trace": Method.TRACE}
    versions = {"-9": 0, "--http09": 0, "-1": 1, "--http10": 1, "-2": 2, "--http11": 2}
    for opt, value in opts:
        if opt in ("-f", "--force"):
            options.force = True
        elif opt in ("-r", "--reload"):
            options.force_reload = True
        elif opt in versions:
            options.http_version = versions[opt]
        elif opt in methods:
            options.method = methods[opt]
        elif opt in ("-V", "--version"):
            options.show_version = True
            return options
        elif opt in ("-t", "--time"):
            options.bench_time = _atoi(value)
        elif opt == "-k":
            options.keep_alive = True
        elif opt in ("-p", "--proxy"):
            _parse_proxy(value, options)
        elif opt in ("-c", "--clients"):
            options.clients = _atoi(value)
        else:
            raise UsageError(show_usage=True)
    if not args:
        raise UsageError("webbench: Missing URL!", show_usage=True)
    options.url = args[0]
    if options.clients == 0:
        options.clients = 1
    if options.bench_time == 0:
        options.bench_time = DEFAULT_BENCH_TIME
    return options


def _effective_version(options):
    version = options.http_version
    if options.force_reload and options.proxy_host is not None and version < 1:
        version = 1
    if options.method == Method.HEAD and version < 1:
        version = 1
    if options.method in (Method.OPTIONS, Method.TRACE) and version < 2:
        version = 2
    return version


def build_request(url, options):
    """Build the request text; return ``(request, host, port)`` to connect to."""
    version = _effective_version(options)
    separator = url.find("://")
    if separator < 0:
        raise UsageError(f"{url}: is not a valid URL.")
    if len(url) > MAX_URL_LENGTH:
        raise UsageError("URL is too long.")
    if url[:7].lower() != "http://":
        raise UsageError(
            "Only HTTP protocol is directly supported, set --proxy for others."
        )
    rest = url[separator + 3:]
    slash = rest.find("/")
    if slash < 0:
        raise UsageError("Invalid URL syntax - hostname don't ends with '/'.")

    request = options.method.name + " "
    if options.proxy_host is None:
        colon = rest.find(":")
        if 0 <= colon < slash:
            host = rest[:colon]
            port = _atoi(rest[colon + 1:slash][:9]) or 80
        else:
            host = rest[:slash]
            port = options.proxy_port
        request += rest[slash:]
    else:
        host, port = options.proxy_host, options.proxy_port
        request += url

    if version == 1:
        request += " HTTP/1.0"
    elif version == 2:
        request += " HTTP/1.1"
    request += "\r\n"
    if version > 0:
        request += f"User-Agent: WebBench {PROGRAM_VERSION}\r\n"
    if options.proxy_host is None and version > 0:
        request += f"Host: {host}\r\n"
    if options.force_reload and options.proxy_host is not None:
        request += "Pragma: no-cache\r\n"
    if version > 1:
        request += (
            "Connection: Keep-Alive\r\n" if options.keep_alive else "Connection: close\r\n"
        )
    if version > 0:
        request += "\r\n"
    return request, host, port


def _corrected(result):
    # The request cut short by the deadline is not a real failure.
    if result.failed > 0:
        result.failed -= 1
    return result


def _simple_core(host, port, payload, options, remaining):
    result = BenchResult()
    version = _effective_version(options)
    while True:
        if remaining() <= 0:
            return _corrected(result)
        try:
            sock = connect(host, port)
        except OSError:
            result.failed += 1
            continue
        with sock:
            try:
                sock.settimeout(max(remaining(), _MIN_WAIT))
                sock.sendall(payload)
            except OSError:
                result.failed += 1
                continue
            if version == 0:
                try:
                    sock.shutdown(socket.SHUT_WR)
                except OSError:
                    result.failed += 1
                    continue
            if not options.force:
                try:
                    while remaining() > 0:
                        sock.settimeout(max(remaining(), _MIN_WAIT))
                        chunk = sock.recv(READ_SIZE)
                        if not chunk:
                            break
                        result.bytes_read += len(chunk)
                except OSError:
                    result.failed += 1
                    continue
        result.speed += 1


def _connect_until(host, port, remaining):
    while remaining() > 0:
        try:
            return connect(host, port)
        except OSError:
            continue
    return None


def _keep_alive_core(host, port, payload, options, remaining):
    result = BenchResult()
    sock = _connect_until(host, port, remaining)
    if sock is None:
        return _corrected(result)
    try:
        while True:
            if remaining() <= 0:
                return _corrected(result)
            try:
                sock.settimeout(max(remaining(), _MIN_WAIT))
                sock.sendall(payload)
            except OSError:
                result.failed += 1
                sock.close()
                sock = _connect_until(host, port, remaining)
                if sock is None:
                    return _corrected(result)
                continue
            if not options.force and remaining() > 0:
                try:
                    sock.settimeout(max(remaining(), _MIN_WAIT))
                    result.bytes_read += len(sock.recv(READ_SIZE))
                except OSError:
                    result.failed += 1
                    sock.close()
                    continue
            result.speed += 1
    finally:
        sock.close()


def bench_core(host, port, request, options):
    """Run one client for ``options.bench_time`` seconds and count its results."""
    deadline = time.monotonic() + options.bench_time

    def remaining():
        return deadline - time.monotonic()

    payload = request.encode("latin-1")
    core = _keep_alive_core if options.keep_alive else _simple_core
    return core(host, port, payload, options, remaining)


def bench(options, host, port, request):
    """Check the server is up, run all clients at once and add up their results."""
    try:
        probe = connect(host, port)
    except OSError as exc:
        raise ConnectionError("Connect to server failed. Aborting benchmark.") from exc
    probe.close()
    total = BenchResult()
    with concurrent.futures.ThreadPoolExecutor(max_workers=options.clients) as pool:
        futures = [
            pool.submit(bench_core, host, port, request, options)
            for _ in range(options.clients)
        ]
        for future in futures:
            try:
                total = total + future.result()
            except Exception:
                print("Some of our childrens died.", file=sys.stderr)
                break
    return total


def format_report(result, bench_time):
    pages = int((result.speed + result.failed) / (bench_time / 60.0))
    rate = int(result.bytes_read / bench_time)
    return (
        f"\nSpeed={pages} pages/min, {rate} bytes/sec.\n"
        f"Requests: {result.speed} susceed, {result.failed} failed.\n"
    )


def _running_info(options):
    info = "1 client" if options.clients == 1 else f"{options.clients} clients"
    info += f", running {options.bench_time} sec"
    if options.force:
        info += ", early socket close"
    if options.proxy_host is not None:
        info += f", via proxy server {options.proxy_host}:{options.proxy_port}"
    if options.force_reload:
        info += ", forcing reload"
    return f"Running info: {info}."


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        sys.stderr.write(USAGE)
        return 2
    try:
        options = parse_args(argv)
        if options.show_version:
            print(PROGRAM_VERSION)
            return 0
        print(f"Webbench - Simple Web Benchmark {PROGRAM_VERSION}", file=sys.stderr)
        request, host, port = build_request(options.url, options)
    except UsageError as exc:
        if exc.message:
            print(exc.message, file=sys.stderr)
        if exc.show_usage:
            sys.stderr.write(USAGE)
        return 2
    print(f"\nRequest:\n{request}")
    print(_running_info(options))
    try:
        result = bench(options, host, port, request)
    except ConnectionError as exc:
        print(f"\n{exc}", file=sys.stderr)
        return 1
    sys.stdout.write(format_report(result, options.bench_time))
    return 0