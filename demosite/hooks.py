"""
Observer registry used by modules to react to site events.

Each Flask application owns one Hooks instance (``app.extensions['hooks']``).
Observers are called in priority order, lower numbers first; observers with
the same priority run in registration order.

Events used by the site:

    tick_1h                notify(ctx)
    acl_is_allowed         voters, see demosite.acl
    rsc_update             foldl(update_props, RscUpdate)
    content_group_default  first(ctx)
"""

import itertools

from flask import current_app


DEFAULT_PRIO = 500


class Hooks:
    """Priority ordered observer lists keyed by event name."""

    def __init__(self):
        self._observers = {}
        self._counter = itertools.count()

    def observe(self, event, handler, prio=DEFAULT_PRIO):
        entries = self._observers.setdefault(event, [])
        entries.append((prio, next(self._counter), handler))
        entries.sort(key=lambda entry: (entry[0], entry[1]))

    def detach(self, event, handler):
        entries = self._observers.get(event, [])
        self._observers[event] = [e for e in entries if e[2] is not handler]

    def observers(self, event):
        return [handler for _, _, handler in self._observers.get(event, [])]

    def notify(self, event, *args):
        """Call every observer; results are ignored."""
        for handler in self.observers(event):
            handler(*args)

    def first(self, event, *args):
        """Return the first non-None answer, or None if nobody answers."""
        for handler in self.observers(event):
            result = handler(*args)
            if result is not None:
                return result
        return None

    def foldl(self, event, acc, *args):
        """Thread ``acc`` through all observers: ``acc = handler(*args, acc)``."""
        for handler in self.observers(event):
            acc = handler(*args, acc)
        return acc


def init_app(app):
    """Attach an empty registry to the application."""
    app.extensions['hooks'] = Hooks()
    return app.extensions['hooks']


def get_hooks(app=None):
    app = app or current_app
    return app.extensions['hooks']


def observe(event, handler, prio=DEFAULT_PRIO):
    get_hooks().observe(event, handler, prio)


def notify(event, *args):
    get_hooks().notify(event, *args)


def first(event, *args):
    return get_hooks().first(event, *args)


def foldl(event, acc, *args):
    return get_hooks().foldl(event, acc, *args)
