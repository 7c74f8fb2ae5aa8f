#!filepath: tests/observability/test_timer.py

import time

from pairpref.observability.timer import Timer


def test_timer_measures():
    t = Timer()
    t.start("a")
    time.sleep(0.005)
    assert t.end("a") > 0


def test_timer_unknown_or_disabled():
    assert Timer().end("never-started") == 0.0
    t = Timer(enabled=False)
    t.start("a")
    assert t.end("a") == 0.0


def test_timer_nested_same_name():
    t = Timer()
    t.start("phase")
    t.start("phase")
    inner = t.end("phase")
    assert t.running("phase")
    outer = t.end("phase")
    assert outer >= inner
    assert not t.running("phase")
