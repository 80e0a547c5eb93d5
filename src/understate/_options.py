"""Constructor options and per-call overrides.

Both accept a mapping and/or keyword arguments. Keywords win on conflict.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from understate.errors import InvalidArgument


class _Nothing:
    """Sentinel for "no value", distinct from None and every falsy value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NOTHING"


NOTHING = _Nothing()

_FLAGS = ("index", "asynchronous")


def _merge(where: str, options: Any, kwargs: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    if options is None:
        merged: dict[str, Any] = {}
    elif isinstance(options, Mapping):
        merged = dict(options)
    else:
        raise InvalidArgument(
            f"{where}: options must be a mapping, received {type(options).__name__}"
        )
    merged.update(kwargs)
    unknown = sorted(str(key) for key in merged if key not in allowed)
    if unknown:
        raise InvalidArgument(f"{where}: unknown option(s) {', '.join(unknown)}")
    return merged


def _check_flag(where: str, name: str, value: Any, *, nullable: bool) -> None:
    if value is None and nullable:
        return
    if not isinstance(value, bool):
        raise InvalidArgument(
            f"{where}: {name} must be a bool, received {type(value).__name__}"
        )


@dataclass(frozen=True)
class Options:
    """Container-level configuration."""

    initial: Any = NOTHING
    index: bool = False
    asynchronous: bool = False

    @classmethod
    def parse(cls, options: Any = None, **kwargs: Any) -> Options:
        merged = _merge("Understate()", options, kwargs, ("initial",) + _FLAGS)
        for name in _FLAGS:
            if name in merged:
                _check_flag("Understate()", name, merged[name], nullable=False)
        return cls(**merged)


@dataclass(frozen=True)
class Overrides:
    """Per-call flags. None means "use the container default".

    An explicit False suppresses a container-level True.
    """

    index: bool | None = None
    asynchronous: bool | None = None

    @classmethod
    def parse(cls, where: str, config: Any = None, **kwargs: Any) -> Overrides:
        merged = _merge(where, config, kwargs, _FLAGS)
        for name, value in merged.items():
            _check_flag(where, name, value, nullable=True)
        return cls(**merged)

    def resolve(self, defaults: Options) -> tuple[bool, bool]:
        """Return the effective (index, asynchronous) pair."""
        index = defaults.index if self.index is None else self.index
        asynchronous = defaults.asynchronous if self.asynchronous is None else self.asynchronous
        return index, asynchronous
