"""Error taxonomy.

Every error derives from UnderstateError and from the closest built-in,
so callers can catch either ``UnderstateError`` or e.g. ``TypeError``.
"""


class UnderstateError(Exception):
    """Base class for all understate errors."""


class InvalidArgument(UnderstateError, TypeError):
    """A call was made with an argument of the wrong type or shape."""


class MutatorError(UnderstateError):
    """The mutator raised, or its awaitable failed.

    The original exception is available as ``__cause__``.
    """


class ProtocolViolation(UnderstateError, TypeError):
    """An asynchronous mutator returned something that is not awaitable."""


class NotFoundError(UnderstateError, LookupError):
    """No state is indexed under the requested version id."""


class RangeError(UnderstateError, ValueError):
    """A numeric argument is out of its allowed range."""
