"""
Unit tests for the HitCounter.
"""

import threading

import pytest

from chirpy.core import HitCounter
from chirpy.http import ResponseBuilder, not_found

from conftest import make_request


class TestHitCounter:

    def test_starts_at_zero(self):
        assert HitCounter().read() == 0

    def test_increment(self):
        hits = HitCounter()
        for _ in range(3):
            hits.increment()

        assert hits.read() == 3

    def test_reset(self):
        hits = HitCounter()
        for _ in range(10):
            hits.increment()

        hits.reset()

        assert hits.read() == 0

    def test_reset_when_already_zero(self):
        hits = HitCounter()
        hits.reset()

        assert hits.read() == 0

    def test_counters_are_independent(self):
        a, b = HitCounter(), HitCounter()
        a.increment()

        assert a.read() == 1
        assert b.read() == 0

    def test_concurrent_increments_are_not_lost(self):
        hits = HitCounter()
        threads_count, per_thread = 16, 2500
        start = threading.Barrier(threads_count)

        def work():
            start.wait()
            for _ in range(per_thread):
                hits.increment()

        threads = [threading.Thread(target=work) for _ in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert hits.read() == threads_count * per_thread

    def test_reads_during_increments_never_go_backwards(self):
        hits = HitCounter()
        stop = threading.Event()
        observed = []

        def reader():
            while not stop.is_set():
                observed.append(hits.read())

        t = threading.Thread(target=reader)
        t.start()
        for _ in range(5000):
            hits.increment()
        stop.set()
        t.join()

        assert observed == sorted(observed)
        assert all(0 <= value <= 5000 for value in observed)


class TestWrap:

    def test_wrap_counts_and_delegates(self):
        hits = HitCounter()
        wrapped = hits.wrap(lambda request: ResponseBuilder().text("file").build())

        response = wrapped(make_request("GET", "/app/"))

        assert response.body == b"file"
        assert hits.read() == 1

    def test_wrap_counts_error_responses(self):
        hits = HitCounter()
        wrapped = hits.wrap(lambda request: not_found())

        assert wrapped(make_request("GET", "/app/missing")).status == 404
        assert hits.read() == 1

    def test_wrap_counts_when_handler_raises(self):
        hits = HitCounter()

        def broken(request):
            raise RuntimeError("disk on fire")

        with pytest.raises(RuntimeError):
            hits.wrap(broken)(make_request("GET", "/app/"))

        assert hits.read() == 1

    def test_only_wrapped_calls_count(self):
        hits = HitCounter()

        def handler(request):
            return ResponseBuilder().build()

        wrapped = hits.wrap(handler)
        handler(make_request())
        wrapped(make_request())

        assert hits.read() == 1

    def test_concurrent_wrapped_requests(self):
        hits = HitCounter()
        wrapped = hits.wrap(lambda request: ResponseBuilder().build())

        def work():
            for _ in range(500):
                wrapped(make_request("GET", "/app/"))

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert hits.read() == 4000
