"""Understate: a versioned, observable state container.

A container holds one value. It changes only through mutators, functions
from the current state to the next one. Every successful mutation gets a
fresh version id, can be indexed for later retrieval by that id, and is
pushed to every subscriber.

subscribe() returns a Subscription handle that behaves like the container
itself and remembers the handle it was created from. Unsubscribing can
cascade up that chain.

Mutators run when set() is called. Asynchronous mutators are driven by a
task on the running event loop. Overlapping asynchronous mutations are not
serialized: the last one to finish determines the committed state, and
each notifies subscribers with its own result.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from typing import Any, Awaitable, Callable, Generator

from understate import _ids
from understate._options import Options, Overrides
from understate.errors import (
    InvalidArgument,
    MutatorError,
    NotFoundError,
    ProtocolViolation,
    RangeError,
)

logger = logging.getLogger("understate")

Mutator = Callable[[Any], Any]
Subscriber = Callable[..., None]


class Mutation:
    """Awaitable outcome of a single set() or get() call.

    Resolves to the new state, or to ``(state, version_id)`` when the
    mutation was indexed. A synchronous mutation is already settled when
    set() returns; an asynchronous one settles when its task finishes.
    get() always returns a settled one. Can be awaited any number of times.
    """

    __slots__ = ("_task", "_result", "_error")

    def __init__(
        self,
        *,
        task: asyncio.Task | None = None,
        result: Any = None,
        error: BaseException | None = None,
    ) -> None:
        self._task = task
        self._result = result
        self._error = error

    def done(self) -> bool:
        return self._task is None or self._task.done()

    def __await__(self) -> Generator[Any, None, Any]:
        if self._task is not None:
            return (yield from self._task.__await__())
        if self._error is not None:
            raise self._error
        return self._result

    def _detach(self) -> None:
        """Nobody will await this mutation; log its failure instead."""
        if self._task is not None:
            self._task.add_done_callback(_log_detached_task)
        elif self._error is not None:
            _log_detached(self._error)

    def __repr__(self) -> str:
        if not self.done():
            return "Mutation(pending)"
        if self._task is not None:
            return f"Mutation(task={self._task!r})"
        if self._error is not None:
            return f"Mutation(failed={self._error!r})"
        return f"Mutation(result={self._result!r})"


def _log_detached(error: BaseException) -> None:
    logger.warning("Detached mutation failed: %s", error, exc_info=error)


def _log_detached_task(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        _log_detached(error)


def _mutator_error(message: str, cause: Exception) -> MutatorError:
    error = MutatorError(f"set(): {message}: {cause!r}")
    error.__cause__ = cause
    return error


def _check_levels(levels: Any) -> None:
    if levels is None or isinstance(levels, bool):
        return
    if not isinstance(levels, (int, float)):
        raise InvalidArgument(
            f"unsubscribe(): levels must be a bool or a number, received {type(levels).__name__}"
        )
    if isinstance(levels, float):
        if math.isnan(levels):
            raise InvalidArgument("unsubscribe(): levels cannot be NaN")
        if levels < 0:
            raise RangeError(f"unsubscribe(): levels must be non-negative, received {levels}")
        if not levels.is_integer():
            raise InvalidArgument(f"unsubscribe(): levels must be an integer, received {levels}")
    elif levels < 0:
        raise RangeError(f"unsubscribe(): levels must be non-negative, received {levels}")


class Understate:
    """A single cell of application state, changed only through mutators.

    Usage:
        counter = Understate(initial=0)
        counter.subscribe(lambda value: print("now", value))

        await counter.set(lambda n: n + 1)   # prints "now 1", returns 1
        await counter.get()                  # 1

    Options (a mapping and/or keyword arguments):
        initial:      starting state, defaults to NOTHING
        index:        index every mutation's result unless overridden per call
        asynchronous: expect mutators to return awaitables unless overridden
    """

    __slots__ = ("_options", "_state", "_id", "_indexed", "_subscribers")

    def __init__(self, options: Any = None, /, **kwargs: Any) -> None:
        self._options = Options.parse(options, **kwargs)
        self._state: Any = self._options.initial
        self._id = _ids.new_id()
        self._indexed: dict[str, Any] = {}
        # id(callback) -> callback, an insertion-ordered identity set
        self._subscribers: dict[int, Subscriber] = {}
        if self._options.index:
            self._indexed[self._id] = self._state

    # --- Mutation ---

    def set(self, mutator: Mutator, config: Any = None, /, **overrides: Any) -> Mutation:
        """Apply mutator to the current state and commit its result.

        ``index`` and ``asynchronous`` may be given per call, as a mapping
        or as keywords; an explicit False overrides a container-level True.

        Argument errors raise InvalidArgument immediately. Failures of the
        mutator itself (MutatorError, ProtocolViolation) surface when the
        returned Mutation is awaited, and leave state and id untouched.

        Asynchronous mutations need a running event loop.
        """
        if not callable(mutator):
            raise InvalidArgument(
                f"set(): mutator must be callable, received {type(mutator).__name__}"
            )
        index, asynchronous = Overrides.parse("set()", config, **overrides).resolve(self._options)
        loop = asyncio.get_running_loop() if asynchronous else None

        try:
            produced = mutator(self._state)
        except Exception as exc:
            return Mutation(error=_mutator_error("mutator raised", exc))

        if loop is None:
            return Mutation(result=self._commit(produced, index))

        if not inspect.isawaitable(produced):
            return Mutation(error=ProtocolViolation(
                "set(): an asynchronous mutator must return an awaitable, "
                f"received {type(produced).__name__}"
            ))
        return Mutation(task=loop.create_task(self._settle(produced, index)))

    def s(self, mutator: Mutator, config: Any = None, /, **overrides: Any) -> Understate:
        """set() for chaining. Returns the container, not the outcome.

        Mutation failures are logged rather than reported; use set() when
        the result matters.
        """
        self.set(mutator, config, **overrides)._detach()
        return self

    async def _settle(self, pending: Awaitable[Any], index: bool) -> Any:
        try:
            state = await pending
        except Exception as exc:
            raise MutatorError(f"set(): asynchronous mutator failed: {exc!r}") from exc
        return self._commit(state, index)

    def _commit(self, state: Any, index: bool) -> Any:
        version = _ids.new_id()
        self._state = state
        self._id = version
        if index:
            self._indexed[version] = state
            payload: tuple = (state, version)
        else:
            payload = (state,)
        logger.debug("Committed version %s", version)
        self._notify(payload)
        return payload if index else state

    def _notify(self, payload: tuple) -> None:
        # Snapshot: callbacks may subscribe or unsubscribe while we iterate.
        # Ones removed mid-notification are skipped.
        for key, callback in list(self._subscribers.items()):
            if key not in self._subscribers:
                continue
            try:
                callback(*payload)
            except Exception:
                logger.exception("Subscriber %r failed", callback)

    # --- Retrieval ---

    def get(self, version_id: str | bool | None = None) -> Mutation:
        """Return an awaitable of the current state, or of an indexed one.

        Raises InvalidArgument for anything but None, False or a non-empty
        string. Awaiting fails with NotFoundError when nothing is indexed
        under version_id.
        """
        if version_id is None or version_id is False:
            return Mutation(result=self._state)
        if not isinstance(version_id, str) or not version_id:
            raise InvalidArgument(
                f"get(): version_id must be a non-empty string or False, received {version_id!r}"
            )
        if version_id not in self._indexed:
            return Mutation(error=NotFoundError(f"get(): no state indexed under {version_id!r}"))
        return Mutation(result=self._indexed[version_id])

    def id(self, index: bool | None = False) -> str:
        """Current version id. With index=True, also index the current state."""
        if index is not None and not isinstance(index, bool):
            raise InvalidArgument(f"id(): index must be a bool, received {type(index).__name__}")
        if index:
            self._indexed.setdefault(self._id, self._state)
        return self._id

    # --- Subscription ---

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Call callback after every successful mutation.

        It receives ``(state)``, or ``(state, version_id)`` when the
        mutation was indexed. Subscribing the same callback twice is a no-op.
        """
        return self._subscribe(callback, self)

    def _subscribe(self, callback: Subscriber, parent: Understate | Subscription) -> Subscription:
        if not callable(callback):
            raise InvalidArgument(
                f"subscribe(): callback must be callable, received {type(callback).__name__}"
            )
        self._subscribers.setdefault(id(callback), callback)
        return Subscription(self, parent, callback)

    def _unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.pop(id(callback), None)

    def __repr__(self) -> str:
        return f"Understate({self._state!r}, id={self._id!r})"


class Subscription:
    """Handle returned by subscribe().

    Operates on the same container it came from, so set, s, get, id and
    subscribe all work on the shared state. Subscribing through a handle
    makes the new handle its child; unsubscribe() can then remove the
    callbacks of some or all ancestors along with its own.
    """

    __slots__ = ("_container", "_parent", "_callback")

    def __init__(
        self,
        container: Understate,
        parent: Understate | Subscription,
        callback: Subscriber,
    ) -> None:
        self._container = container
        self._parent = parent
        self._callback = callback

    @property
    def container(self) -> Understate:
        return self._container

    @property
    def parent(self) -> Understate | Subscription:
        return self._parent

    @property
    def callback(self) -> Subscriber:
        return self._callback

    def set(self, mutator: Mutator, config: Any = None, /, **overrides: Any) -> Mutation:
        return self._container.set(mutator, config, **overrides)

    def s(self, mutator: Mutator, config: Any = None, /, **overrides: Any) -> Subscription:
        self._container.set(mutator, config, **overrides)._detach()
        return self

    def get(self, version_id: str | bool | None = None) -> Mutation:
        return self._container.get(version_id)

    def id(self, index: bool | None = False) -> str:
        return self._container.id(index)

    def subscribe(self, callback: Subscriber) -> Subscription:
        return self._container._subscribe(callback, self)

    def unsubscribe(self, levels: bool | int | float | None = False) -> Understate | Subscription:
        """Remove this handle's callback and return the parent.

        levels=True also unsubscribes every ancestor handle; an integer n
        unsubscribes n ancestors. Stops quietly at the container. Removing
        an already removed callback is a no-op.
        """
        _check_levels(levels)
        self._container._unsubscribe(self._callback)
        if not levels or not isinstance(self._parent, Subscription):
            return self._parent
        if levels is True:
            return self._parent.unsubscribe(True)
        return self._parent.unsubscribe(int(levels) - 1)

    def __repr__(self) -> str:
        name = getattr(self._callback, "__name__", repr(self._callback))
        return f"Subscription({name})"
