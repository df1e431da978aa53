import inspect
from datetime import datetime

import pytest

from webreactor.logger import (
    Logger,
    get_log_file_name,
    log,
    set_log_file_name,
)
from webreactor.sync import Thread


@pytest.fixture
def log_path(tmp_path):
    previous = get_log_file_name()
    path = tmp_path / "server.log"
    set_log_file_name(str(path))
    yield path
    set_log_file_name(previous)


def _collect(path, tmp_path):
    set_log_file_name(str(tmp_path / "next.log"))
    return path.read_bytes()


def _message(record):
    return record.stream.getvalue().split(b"\n", 1)[1]


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, b"0"),
        (1234567890123, b"1234567890123"),
        (1.0, b"1"),
        (3.1415926, b"3.1415926"),
        (1, b"1"),
        (1.6555556, b"1.6555556"),
        ("c", b"c"),
        ("abcdefg", b"abcdefg"),
        ("This is a string", b"This is a string"),
    ],
)
def test_type_cases(log_path, value, expected):
    record = Logger("LoggingTest.cpp", 1) << value
    assert _message(record) == expected
    record.finish()


def test_other_case_chains(log_path):
    record = Logger("LoggingTest.cpp", 1) << "fddsa" << "c" << 0 << 3.666 << "This is a string"
    assert _message(record) == b"fddsac03.666This is a string"
    record.finish()


def test_record_has_timestamp_line(log_path):
    record = Logger("x.py", 5)
    first_line = record.stream.getvalue().split(b"\n", 1)[0]
    assert len(first_line) == 19
    stamp = datetime.strptime(first_line.decode(), "%Y-%m-%d %H:%M:%S")
    assert abs((datetime.now() - stamp).total_seconds()) < 60
    record.finish()


def test_finish_writes_record_with_source_tag(log_path, tmp_path):
    with Logger("module.py", 42) as record:
        record << "hello"
    content = _collect(log_path, tmp_path)
    assert content.endswith(b"\nhello -- module.py:42\n")


def test_finish_twice_writes_once(log_path, tmp_path):
    record = Logger("m.py", 7) << "once"
    record.finish()
    record.finish()
    content = _collect(log_path, tmp_path)
    assert content.count(b"once -- m.py:7\n") == 1


def test_log_tags_caller_location(log_path, tmp_path):
    line = inspect.currentframe().f_lineno + 1
    log("value=", 3)
    content = _collect(log_path, tmp_path)
    assert f"value=3 -- {__file__}:{line}\n".encode() in content


def test_stressing_single_thread(log_path, tmp_path):
    for i in range(1000):
        log(i)
    content = _collect(log_path, tmp_path)
    assert content.count(b" -- ") == 1000


def test_stressing_multi_threads(log_path, tmp_path):
    def thread_func():
        for i in range(1000):
            log(i)

    threads = [Thread(thread_func, "testFunc") for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    content = _collect(log_path, tmp_path)
    assert content.count(b" -- ") == 4000


def test_set_and_get_log_file_name(tmp_path):
    previous = get_log_file_name()
    target = str(tmp_path / "named.log")
    set_log_file_name(target)
    try:
        assert get_log_file_name() == target
    finally:
        set_log_file_name(previous)