import socket
import threading

import pytest

from webreactor.webbench import (
    BenchOptions,
    BenchResult,
    Method,
    UsageError,
    bench,
    bench_core,
    build_request,
    format_report,
    main,
    parse_args,
)

RESPONSE = b"HTTP/1.0 200 OK\r\nContent-Length: 2\r\n\r\nok"


@pytest.fixture
def http_server():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    listener.listen(128)
    listener.settimeout(0.2)
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                conn.settimeout(2)
                data = b""
                try:
                    while b"\r\n\r\n" not in data:
                        chunk = conn.recv(1024)
                        if not chunk:
                            break
                        data += chunk
                    conn.sendall(RESPONSE)
                except OSError:
                    pass

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield listener.getsockname()[1]
    stop.set()
    thread.join(2)
    listener.close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def test_parse_args_defaults():
    options = parse_args(["http://localhost/"])
    assert options.url == "http://localhost/"
    assert options.clients == 1
    assert options.bench_time == 30
    assert options.method is Method.GET
    assert options.http_version == 1
    assert options.proxy_host is None


def test_parse_args_zero_values_fall_back():
    options = parse_args(["-c", "0", "-t", "0", "http://h/"])
    assert (options.clients, options.bench_time) == (1, 30)


def test_parse_args_flags():
    options = parse_args(["-f", "-r", "-k", "--head", "-c", "5", "--time=7", "http://h/"])
    assert options.force and options.force_reload and options.keep_alive
    assert options.method is Method.HEAD
    assert (options.clients, options.bench_time) == (5, 7)


def test_parse_args_last_version_wins():
    assert parse_args(["-9", "-2", "http://h/"]).http_version == 2


def test_parse_args_proxy_with_port():
    options = parse_args(["-p", "proxy:3128", "http://h/"])
    assert (options.proxy_host, options.proxy_port) == ("proxy", 3128)


def test_parse_args_proxy_without_port():
    options = parse_args(["--proxy", "proxy", "http://h/"])
    assert (options.proxy_host, options.proxy_port) == ("proxy", 80)


@pytest.mark.parametrize("proxy", [":80", "proxy:"])
def test_parse_args_bad_proxy(proxy):
    with pytest.raises(UsageError) as info:
        parse_args(["-p", proxy, "http://h/"])
    assert not info.value.show_usage


def test_parse_args_missing_url():
    with pytest.raises(UsageError) as info:
        parse_args(["-f"])
    assert info.value.message == "webbench: Missing URL!"
    assert info.value.show_usage


@pytest.mark.parametrize("argv", [["--bogus", "http://h/"], ["-h", "http://h/"]])
def test_parse_args_help_and_unknown(argv):
    with pytest.raises(UsageError) as info:
        parse_args(argv)
    assert info.value.show_usage


def test_parse_args_version():
    assert parse_args(["-V"]).show_version is True


def test_build_request_get():
    request, host, port = build_request("http://localhost/index.html", BenchOptions())
    assert request == (
        "GET /index.html HTTP/1.0\r\nUser-Agent: WebBench 1.5\r\nHost: localhost\r\n\r\n"
    )
    assert (host, port) == ("localhost", 80)


def test_build_request_http09():
    request, _, _ = build_request("http://localhost/", BenchOptions(http_version=0))
    assert request == "GET /\r\n"


def test_build_request_options_upgrades_to_http11():
    request, _, _ = build_request(
        "http://localhost/", BenchOptions(http_version=0, method=Method.OPTIONS)
    )
    assert request.startswith("OPTIONS / HTTP/1.1\r\n")
    assert "Connection: close\r\n" in request
    assert request.endswith("\r\n\r\n")


def test_build_request_keep_alive():
    request, _, _ = build_request(
        "http://localhost/", BenchOptions(http_version=2, keep_alive=True)
    )
    assert "Connection: Keep-Alive\r\n" in request


def test_build_request_port_from_url():
    request, host, port = build_request("http://example.com:8080/a", BenchOptions())
    assert (host, port) == ("example.com", 8080)
    assert request.startswith("GET /a HTTP/1.0\r\n")
    assert "Host: example.com\r\n" in request


def test_build_request_zero_port_means_80():
    _, _, port = build_request("http://example.com:0/", BenchOptions())
    assert port == 80


def test_build_request_via_proxy():
    options = BenchOptions(proxy_host="proxy", proxy_port=3128, force_reload=True)
    request, host, port = build_request("http://example.com/x", options)
    assert request.startswith("GET http://example.com/x HTTP/1.0\r\n")
    assert "Host:" not in request
    assert "Pragma: no-cache\r\n" in request
    assert (host, port) == ("proxy", 3128)


def test_reload_without_proxy_sends_no_pragma():
    request, _, _ = build_request("http://example.com/", BenchOptions(force_reload=True))
    assert "Pragma" not in request


@pytest.mark.parametrize(
    "url",
    ["localhost/", "ftp://example.com/", "http://example.com", "http://h/" + "a" * 1500],
)
def test_build_request_rejects_bad_urls(url):
    with pytest.raises(UsageError):
        build_request(url, BenchOptions())


def test_bench_core_force_reads_nothing(http_server):
    options = BenchOptions(bench_time=1, force=True)
    request, _, _ = build_request("http://127.0.0.1/", options)
    result = bench_core("127.0.0.1", http_server, request, options)
    assert result.speed > 0
    assert result.bytes_read == 0


def test_bench_sums_clients(http_server):
    options = BenchOptions(bench_time=1, clients=2)
    request, _, _ = build_request("http://127.0.0.1/", options)
    result = bench(options, "127.0.0.1", http_server, request)
    assert result.speed > 0
    assert result.bytes_read >= result.speed * len(RESPONSE)


def test_bench_refuses_dead_server(closed_port):
    with pytest.raises(ConnectionError):
        bench(BenchOptions(bench_time=1), "127.0.0.1", closed_port, "GET /\r\n")


def test_bench_result_addition():
    total = BenchResult(1, 2, 3) + BenchResult(4, 5, 6)
    assert (total.speed, total.failed, total.bytes_read) == (5, 7, 9)


def test_format_report():
    report = format_report(BenchResult(speed=5, failed=1, bytes_read=120), 60)
    assert report == "\nSpeed=6 pages/min, 2 bytes/sec.\nRequests: 5 susceed, 1 failed.\n"


def test_main_without_arguments():
    assert main([]) == 2


def test_main_version(capsys):
    assert main(["-V"]) == 0
    assert capsys.readouterr().out == "1.5\n"


def test_main_bad_url():
    assert main(["http://localhost"]) == 2


def test_main_dead_server(closed_port):
    assert main(["-t", "1", f"http://127.0.0.1:{closed_port}/"]) == 1


def test_main_runs_benchmark(http_server, capsys):
    assert main(["-t", "1", f"http://127.0.0.1:{http_server}/"]) == 0
    out = capsys.readouterr().out
    assert "Speed=" in out
    assert "Request:\nGET / HTTP/1.0\r\n" in out