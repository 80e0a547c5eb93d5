"""Textual integration for understate. Opt-in, requires textual.

Subscribers registered through here only touch widgets while the app can
be queried, and always on the app's own thread.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Apps currently inside pause(), keyed by id(app).
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Hold back guarded subscribers while widgets are being replaced."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Can the app's widget tree be queried right now?"""
    return app.is_running and id(app) not in _paused_apps


def subscribe(app, target, callback):
    """target.subscribe() with a callback that is safe to bind to widgets.

    target is an Understate container or a Subscription handle. The
    callback is skipped while the app is paused or not running, NoMatches
    from widget queries is ignored, and notifications from other threads
    go through app.call_from_thread. Returns the Subscription.
    """
    main = threading.get_ident()

    def _guarded(*payload):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_deliver, *payload)
        else:
            _deliver(*payload)

    def _deliver(*payload):
        try:
            callback(*payload)
        except NoMatches:
            pass

    _guarded.__name__ = getattr(callback, "__name__", "guarded")
    return target.subscribe(_guarded)
