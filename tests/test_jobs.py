"""
ThreadedJobRunner: delayed execution, cancellation and shutdown.
"""
import threading

import pytest

from phantom_pen.services.jobs import ThreadedJobRunner, new_handle


@pytest.fixture()
def threaded():
    r = ThreadedJobRunner()
    yield r
    r.shutdown()


def test_job_fires_with_args(threaded):
    done = threading.Event()
    seen = []

    def job(a, b):
        seen.append((a, b))
        done.set()

    handle = threaded.submit(0.01, job, 1, "x")
    assert done.wait(2.0)
    assert seen == [(1, "x")]
    assert len(handle) == 32


def test_caller_chosen_handle(threaded):
    done = threading.Event()
    handle = new_handle()
    assert threaded.submit(0.01, done.set, handle=handle) == handle
    assert done.wait(2.0)


def test_cancel_before_due(threaded):
    fired = threading.Event()
    handle = threaded.submit(5.0, fired.set)
    assert threaded.pending() == 1
    assert threaded.cancel(handle) is True
    assert threaded.cancel(handle) is False
    assert threaded.pending() == 0
    assert not fired.wait(0.05)


def test_failing_job_is_contained(threaded):
    done = threading.Event()

    def boom():
        raise RuntimeError("boom")

    threaded.submit(0.0, boom)
    threaded.submit(0.02, done.set)
    assert done.wait(2.0)


def test_shutdown_drops_pending_and_refuses_new():
    r = ThreadedJobRunner()
    fired = threading.Event()
    r.submit(5.0, fired.set)
    r.shutdown()
    assert r.pending() == 0
    with pytest.raises(RuntimeError):
        r.submit(0.0, fired.set)
