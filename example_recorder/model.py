"""Data model for recorded invocations.

An :class:`InvocationRecord` is created on function entry in the
``PENDING`` state and becomes ``COMPLETED`` once the matching exit event
attaches a return value. Records that never see their exit are simply
dropped with the session and are never surfaced.
"""

from __future__ import annotations

import enum
import inspect
from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class DefiningType:
    """Namespace that declares a function: a class, or the module itself."""

    module: str
    qualname: Optional[str] = None

    @property
    def name(self) -> str:
        return self.qualname if self.qualname is not None else self.module

    @property
    def is_class(self) -> bool:
        return self.qualname is not None


@dataclass(frozen=True)
class FunctionIdentity:
    module: str
    qualname: str
    name: str
    path: str
    line: int


@dataclass(frozen=True)
class SourceLocation:
    path: str
    line: int


@dataclass(frozen=True)
class TypedValue:
    """A captured value together with the name of its runtime type."""

    type_name: str
    value: Any


@dataclass(frozen=True)
class InvocationKey:
    """Correlates an exit event with its entry within one session.

    ``activation`` is either the call depth at entry or a per-frame token,
    depending on the session's correlation policy.
    """

    defining_type: DefiningType
    function: FunctionIdentity
    activation: Hashable


class InvocationState(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class InvocationRecord:
    defining_type: DefiningType
    function: FunctionIdentity
    parameters: Tuple[inspect.Parameter, ...]
    arguments: Mapping[str, TypedValue]
    return_value: Optional[TypedValue] = None
    state: InvocationState = field(default=InvocationState.PENDING)

    @property
    def source_location(self) -> SourceLocation:
        return SourceLocation(self.function.path, self.function.line)

    @property
    def is_completed(self) -> bool:
        return self.state is InvocationState.COMPLETED

    def complete(self, return_value: TypedValue) -> "InvocationRecord":
        self.return_value = return_value
        self.state = InvocationState.COMPLETED
        return self


__all__ = [
    "DefiningType",
    "FunctionIdentity",
    "InvocationKey",
    "InvocationRecord",
    "InvocationState",
    "SourceLocation",
    "TypedValue",
]
