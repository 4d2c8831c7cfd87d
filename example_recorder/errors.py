"""Example recorder exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .model import FunctionIdentity


class RecorderError(RuntimeError):
    """Base class for all recorder errors."""


class ResolutionError(RecorderError):
    """Raised when a call event cannot be introspected (e.g. an unbound parameter)."""

    def __init__(self, function_name: str, detail: str) -> None:
        self.function_name = function_name
        self.detail = detail
        super().__init__(f"cannot resolve '{function_name}': {detail}")


class FieldSerializationError(RecorderError):
    """Raised when a captured value has no exchange-format representation."""

    def __init__(self, function: "FunctionIdentity", field: str, reason: str) -> None:
        self.function = function
        self.field = field
        self.reason = reason
        super().__init__(
            f"cannot serialize {field} of {function.qualname} "
            f"({function.path}:{function.line}): {reason}"
        )


__all__ = [
    "FieldSerializationError",
    "RecorderError",
    "ResolutionError",
]
