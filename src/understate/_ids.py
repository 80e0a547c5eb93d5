"""Version id generation.

Ids are digit strings cut from a random fraction. They are unique with
high probability only; there is no collision detection. Call
set_id_factory() to install a different generator.
"""

from __future__ import annotations

import random
from typing import Callable

ID_LENGTH = 15

_factory: Callable[[], str] | None = None


def generate_id() -> str:
    """Return ID_LENGTH decimal digits of a random fraction in [0, 1)."""
    # Fixed-point formatting keeps tiny fractions out of exponent notation.
    return f"{random.random():.17f}"[2:2 + ID_LENGTH]


def set_id_factory(factory: Callable[[], str] | None) -> None:
    """Install a process-wide version id generator.

    Usage:
        understate.set_id_factory(lambda: uuid.uuid4().hex)

    Pass None to restore the default generator.
    """
    global _factory
    _factory = factory


def new_id() -> str:
    if _factory is None:
        return generate_id()
    return _factory()
