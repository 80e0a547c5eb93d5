"""Tests for understate.textual — Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from understate import Understate
from understate import textual as utx


class _MockApp:
    """Minimal mock matching the Textual App interface utx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class TestSubscribe:
    def test_delivers_when_safe(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        utx.subscribe(app, c, seen.append)
        c.set(lambda x: x + 1)
        assert seen == [1]

    def test_delivers_version_when_indexed(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        utx.subscribe(app, c, lambda state, version: seen.append((state, version)))
        c.set(lambda x: x + 1, index=True)
        assert seen == [(1, c.id())]

    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        c = Understate(initial=0)
        seen = []
        utx.subscribe(app, c, seen.append)
        c.set(lambda x: x + 1)
        assert seen == []

    def test_skips_during_pause(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        utx.subscribe(app, c, seen.append)
        with utx.pause(app):
            c.set(lambda x: x + 1)
        c.set(lambda x: x + 1)
        assert seen == [2]

    def test_swallows_nomatch(self, caplog):
        app = _MockApp()
        c = Understate(initial=0)

        def _raise_nomatch(_):
            raise NoMatches("StatusFooter")

        utx.subscribe(app, c, _raise_nomatch)
        c.set(lambda x: x + 1)
        assert "Subscriber" not in caplog.text

    def test_real_errors_reach_container_logging(self, caplog):
        app = _MockApp()
        c = Understate(initial=0)

        def _raise_value_error(_):
            raise ValueError("boom")

        utx.subscribe(app, c, _raise_value_error)
        c.set(lambda x: x + 1)
        assert "boom" in caplog.text

    def test_marshals_from_other_thread(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        utx.subscribe(app, c, seen.append)

        t = threading.Thread(target=lambda: c.set(lambda x: x + 1))
        t.start()
        t.join()

        assert seen == [1]
        assert len(app._call_from_thread_log) == 1

    def test_returns_unsubscribable_handle(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        handle = utx.subscribe(app, c, seen.append)
        assert handle.unsubscribe() is c
        c.set(lambda x: x + 1)
        assert seen == []

    def test_through_handle_chain(self):
        app = _MockApp()
        c = Understate(initial=0)
        seen = []
        parent = c.subscribe(lambda _: None)
        child = utx.subscribe(app, parent, seen.append)
        assert child.parent is parent
        child.unsubscribe(True)
        c.set(lambda x: x + 1)
        assert seen == []


class TestPause:
    def test_is_safe(self):
        app = _MockApp()
        assert utx.is_safe(app)
        with utx.pause(app):
            assert not utx.is_safe(app)
        assert utx.is_safe(app)

    def test_pause_resets_on_error(self):
        app = _MockApp()
        with pytest.raises(RuntimeError):
            with utx.pause(app):
                raise RuntimeError
        assert utx.is_safe(app)
