"""Understate: a versioned, observable state container for Python."""

from importlib.metadata import version as _version

__version__ = _version("understate")

from understate._ids import generate_id, set_id_factory
from understate._options import NOTHING, Options, Overrides
from understate.container import Mutation, Subscription, Understate
from understate.errors import (
    InvalidArgument,
    MutatorError,
    NotFoundError,
    ProtocolViolation,
    RangeError,
    UnderstateError,
)
from understate.mutators import compose, deferred, guard_immutable, replace
# textual NOT auto-imported, opt-in only

__all__ = [
    "Understate",
    "Subscription",
    "Mutation",
    "NOTHING",
    "Options",
    "Overrides",
    "generate_id",
    "set_id_factory",
    "UnderstateError",
    "InvalidArgument",
    "MutatorError",
    "ProtocolViolation",
    "NotFoundError",
    "RangeError",
    "replace",
    "compose",
    "deferred",
    "guard_immutable",
]
