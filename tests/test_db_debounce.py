import threading

import pytest

from boxgen.db.debounce import DebouncedWriter


def test_requests_within_window_share_one_write():
    calls = []
    writer = DebouncedWriter(lambda: calls.append(1), delay=0.2)

    futures = [writer.request() for _ in range(3)]
    for future in futures:
        future.result(timeout=5)

    assert len(calls) == 1
    assert writer.write_count == 1


def test_failure_reaches_every_request_in_batch():
    def write():
        raise OSError("boom")

    writer = DebouncedWriter(write, delay=0.05)
    futures = [writer.request(), writer.request()]

    for future in futures:
        with pytest.raises(OSError, match="boom"):
            future.result(timeout=5)


def test_separate_windows_write_separately():
    calls = []
    writer = DebouncedWriter(lambda: calls.append(1), delay=0.01)

    writer.request().result(timeout=5)
    writer.request().result(timeout=5)

    assert len(calls) == 2


def test_flush_writes_immediately():
    calls = []
    writer = DebouncedWriter(lambda: calls.append(1), delay=60)

    future = writer.request()
    writer.flush()

    assert future.done()
    assert calls == [1]


def test_flush_without_pending_is_noop():
    calls = []
    writer = DebouncedWriter(lambda: calls.append(1), delay=0.01)
    writer.flush()
    assert calls == []


def test_write_runs_under_owner_lock():
    lock = threading.RLock()
    held = []

    def write():
        result = {}
        other = threading.Thread(target=lambda: result.update(free=lock.acquire(blocking=False)))
        other.start()
        other.join()
        held.append(not result["free"])

    writer = DebouncedWriter(write, delay=0.01, lock=lock)
    writer.request().result(timeout=5)

    assert held == [True]
