"""Type naming and snapshotting of captured values."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional

from .model import TypedValue

logger = logging.getLogger(__name__)

# Names shared with the trace value encoding; other types use their qualname.
_BUILTIN_TYPE_NAMES: Dict[type, str] = {
    bool: "Bool",
    int: "Integer",
    float: "Float",
    complex: "Complex",
    str: "String",
    bytes: "Bytes",
    bytearray: "Bytes",
    list: "Array",
    tuple: "Tuple",
    dict: "Dict",
    set: "Set",
    frozenset: "Set",
    type(None): "None",
}


def type_name(value: Any) -> str:
    """Return the display name of ``value``'s runtime type."""
    cls = type(value)
    name = _BUILTIN_TYPE_NAMES.get(cls)
    if name is not None:
        return name
    if cls.__module__ in ("builtins", "__main__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def snapshot(value: Any) -> Any:
    """Deep-copy ``value`` so later mutation does not leak into an example.

    Values that refuse to be copied (locks, generators, handles) are kept by
    reference.
    """
    try:
        return copy.deepcopy(value)
    except Exception as exc:  # noqa: BLE001 - arbitrary __deepcopy__/__reduce__
        logger.debug("keeping %s by reference: %s", type(value).__qualname__, exc)
        return value


def capture(value: Any, *, copy_value: bool = True) -> TypedValue:
    return TypedValue(type_name(value), snapshot(value) if copy_value else value)


def instance_state(value: Any) -> Optional[Dict[str, Any]]:
    """Collect an object's attributes from ``__dict__`` and ``__slots__``.

    Returns ``None`` when its type declares neither.
    """
    state: Optional[Dict[str, Any]] = None
    if hasattr(value, "__dict__"):
        state = dict(vars(value))
    for klass in type(value).__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if state is None:
                state = {}
            attr = name
            if name.startswith("__") and not name.endswith("__"):
                attr = f"_{klass.__name__.lstrip('_')}{name}"
            try:
                state[name] = getattr(value, attr)
            except AttributeError:
                continue
    return state


__all__ = ["capture", "instance_state", "snapshot", "type_name"]
