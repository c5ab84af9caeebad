"""Ordered "first match wins" resolution.

Column aliasing, signed-amount extraction and category resolution are layered
heuristics: resolvers are tried in order and the first non-``None`` value decides.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
C = TypeVar("C")

Resolver = Callable[[C], T | None]


def first_resolved(resolvers: Iterable[Resolver[C, T]], context: C) -> T | None:
    for resolver in resolvers:
        value = resolver(context)
        if value is not None:
            return value
    return None
