"""Ready-made mutators and mutator wrappers."""

from __future__ import annotations

import copy
import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger("understate.mutators")

T = TypeVar("T")
R = TypeVar("R")


def replace(value: T) -> Callable[[Any], T]:
    """Mutator that discards the current state and returns value."""

    def _replace(_state: Any) -> T:
        return value

    return _replace


def compose(*mutators: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Chain synchronous mutators left to right into a single mutator.

    Usage:
        counter.set(compose(lambda n: n + 1, lambda n: n * 10))
        # 0 -> 10, committed as one version
    """

    def _composed(state: Any) -> Any:
        for mutator in mutators:
            state = mutator(state)
        return state

    return _composed


def deferred(mutator: Callable[[T], R]) -> Callable[[T], Awaitable[R]]:
    """Adapt a synchronous mutator for asynchronous containers."""

    @functools.wraps(mutator)
    async def wrapper(state: T) -> R:
        return mutator(state)

    return wrapper


def guard_immutable(mutator: Callable[[T], R]) -> Callable[[T], R]:
    """Warn when mutator modifies the state it was given in place.

    The incoming state is deep-copied before the call and compared after
    it. The mutator's result is returned unchanged either way.
    """

    @functools.wraps(mutator)
    def wrapper(state: T) -> R:
        before = copy.deepcopy(state)
        result = mutator(state)
        if state != before:
            logger.warning(
                "%s modified its input state in place; return a new value instead",
                getattr(mutator, "__name__", repr(mutator)),
            )
        return result

    return wrapper
