"""Projection of recorded invocations into the exchange document.

The document is a JSON-compatible list with one object per example::

    [
      {
        "class_name": "__main__",
        "method_name": "double",
        "method_location": {"path": "/src/app.py", "line": 3},
        "arguments": {"x": {"class_name": "Integer", "value": 2}},
        "return": {"class_name": "Integer", "value": 4}
      }
    ]

Serialization never touches the stored records: every object is built
fresh, so serializing twice yields identical documents.
"""

from __future__ import annotations

import enum
import json
import logging
import types
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .errors import FieldSerializationError
from .model import FunctionIdentity, InvocationRecord, TypedValue
from .values import instance_state

logger = logging.getLogger(__name__)

ExchangeDocument = List[Dict[str, Any]]

ON_FIELD_ERROR_STRINGIFY: str = "stringify"
ON_FIELD_ERROR_OMIT: str = "omit"
ON_FIELD_ERROR_RAISE: str = "raise"
FIELD_ERROR_POLICIES = frozenset(
    {ON_FIELD_ERROR_STRINGIFY, ON_FIELD_ERROR_OMIT, ON_FIELD_ERROR_RAISE}
)

_MAX_REPR: int = 200
_OPAQUE_TYPES = (
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.CodeType,
    types.FrameType,
    types.GeneratorType,
    types.CoroutineType,
)


class Unrepresentable(ValueError):
    """Raised by :func:`to_exchange_value` for values with no JSON form."""


def to_exchange_value(value: Any, _active: Optional[Set[int]] = None) -> Any:
    """Convert a captured value into plain JSON-compatible data."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, enum.Enum):
        return to_exchange_value(value.value, _active)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return str(value)
    if isinstance(value, complex):
        return [value.real, value.imag]
    if isinstance(value, type):
        return f"{value.__module__}.{value.__qualname__}"
    if isinstance(value, _OPAQUE_TYPES):
        raise Unrepresentable(f"opaque {type(value).__name__} handle")

    if _active is None:
        _active = set()
    marker = id(value)
    if marker in _active:
        raise Unrepresentable(f"cyclic {type(value).__name__}")
    _active.add(marker)
    try:
        if isinstance(value, (list, tuple)):
            return [to_exchange_value(item, _active) for item in value]
        if isinstance(value, (set, frozenset)):
            return [to_exchange_value(item, _active) for item in sorted(value, key=repr)]
        if isinstance(value, Mapping):
            converted: Dict[str, Any] = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise Unrepresentable(f"non-string key {key!r}")
                converted[key] = to_exchange_value(item, _active)
            return converted
        state = instance_state(value)
        if state is not None:
            return {
                name: to_exchange_value(item, _active)
                for name, item in sorted(state.items(), key=lambda kv: kv[0])
            }
        raise Unrepresentable(f"opaque {type(value).__name__} value")
    finally:
        _active.discard(marker)


def safe_repr(value: Any, max_len: int = _MAX_REPR) -> str:
    try:
        text = repr(value)
    except Exception:  # noqa: BLE001 - user-defined __repr__
        return f"<unrepresentable {type(value).__name__}>"
    if len(text) > max_len:
        return text[: max_len - 3] + "..."
    return text


def _project_value(
    function: FunctionIdentity,
    field: str,
    typed: TypedValue,
    on_field_error: str,
) -> Dict[str, Any]:
    projected: Dict[str, Any] = {"class_name": typed.type_name}
    try:
        projected["value"] = to_exchange_value(typed.value)
    except (Unrepresentable, RecursionError) as exc:
        error = FieldSerializationError(function, field, str(exc) or type(exc).__name__)
        if on_field_error == ON_FIELD_ERROR_RAISE:
            raise error from exc
        if on_field_error == ON_FIELD_ERROR_STRINGIFY:
            logger.warning("%s; stringifying value", error)
            projected["value"] = safe_repr(typed.value)
        else:
            logger.warning("%s; omitting value", error)
    return projected


def serialize_example(
    record: InvocationRecord,
    *,
    on_field_error: str = ON_FIELD_ERROR_STRINGIFY,
) -> Dict[str, Any]:
    """Project one completed record into an exchange object."""
    if on_field_error not in FIELD_ERROR_POLICIES:
        raise ValueError(f"unsupported on_field_error '{on_field_error}'")
    if record.return_value is None:
        raise ValueError(f"invocation of {record.function.qualname} is not completed")

    function = record.function
    location = record.source_location
    arguments: Dict[str, Any] = {}
    for param in record.parameters:
        typed = record.arguments.get(param.name)
        if typed is None:
            continue
        arguments[param.name] = _project_value(
            function, f"arguments.{param.name}", typed, on_field_error
        )

    return {
        "class_name": record.defining_type.name,
        "method_name": function.name,
        "method_location": {"path": location.path, "line": location.line},
        "arguments": arguments,
        "return": _project_value(function, "return", record.return_value, on_field_error),
    }


def serialize_examples(
    records: Iterable[InvocationRecord],
    *,
    on_field_error: str = ON_FIELD_ERROR_STRINGIFY,
) -> ExchangeDocument:
    return [serialize_example(record, on_field_error=on_field_error) for record in records]


def dumps(document: ExchangeDocument, *, indent: Optional[int] = None) -> str:
    return json.dumps(document, indent=indent)


__all__ = [
    "ExchangeDocument",
    "FIELD_ERROR_POLICIES",
    "ON_FIELD_ERROR_OMIT",
    "ON_FIELD_ERROR_RAISE",
    "ON_FIELD_ERROR_STRINGIFY",
    "Unrepresentable",
    "dumps",
    "safe_repr",
    "serialize_example",
    "serialize_examples",
    "to_exchange_value",
]
