"""Suppression of repeated examples.

Two completed invocations are duplicates when they share the function, the
argument values (in parameter declaration order) and the return value.
Values are compared structurally, never by object identity.
"""

from __future__ import annotations

import types
from typing import Any, Hashable, Optional, Set

from .model import InvocationRecord, TypedValue
from .values import instance_state

_CYCLE = ("<cycle>",)
# Compared by identity; deep copies of these return the same object.
_IDENTITY_TYPES = (
    type,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.ModuleType,
)


def canonical(value: Any, _active: Optional[Set[int]] = None) -> Hashable:
    """Return a hashable form of ``value`` with structural equality.

    The value's type takes part in the key so ``1``, ``1.0`` and ``True``
    stay distinct.
    """
    if _active is None:
        _active = set()
    kind = type(value)
    tag = f"{kind.__module__}.{kind.__qualname__}"

    if isinstance(value, (float, complex)) and value != value:
        return (tag, repr(value))
    if isinstance(value, (str, bytes, int, float, complex, type(None))):
        return (tag, value)
    if isinstance(value, _IDENTITY_TYPES):
        return (tag, value)

    marker = id(value)
    if marker in _active:
        return _CYCLE
    _active.add(marker)
    try:
        if isinstance(value, (list, tuple)):
            return (tag, tuple(canonical(item, _active) for item in value))
        if isinstance(value, dict):
            return (
                tag,
                frozenset(
                    (canonical(key, _active), canonical(item, _active))
                    for key, item in value.items()
                ),
            )
        if isinstance(value, (set, frozenset)):
            return (tag, frozenset(canonical(item, _active) for item in value))
        if kind.__eq__ is object.__eq__:
            state = instance_state(value)
            if state is not None:
                return (tag, canonical(state, _active))
        try:
            hash(value)
        except TypeError:
            return (tag, repr(value))
        return (tag, value)
    finally:
        _active.discard(marker)


def _typed(value: Optional[TypedValue]) -> Hashable:
    if value is None:
        return None
    return (value.type_name, canonical(value.value))


def dedup_key(record: InvocationRecord) -> Hashable:
    arguments = tuple(
        (param.name, _typed(record.arguments[param.name]))
        for param in record.parameters
        if param.name in record.arguments
    )
    return (record.function, arguments, _typed(record.return_value))


class Deduplicator:
    """Seen-set of dedup keys for one session."""

    def __init__(self) -> None:
        self._seen: Set[Hashable] = set()

    def admit(self, record: InvocationRecord) -> bool:
        """Return ``True`` the first time an equivalent record is offered."""
        key = dedup_key(record)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __len__(self) -> int:
        return len(self._seen)


__all__ = ["Deduplicator", "canonical", "dedup_key"]
