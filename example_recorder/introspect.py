"""Frame and code-object introspection for call events.

Everything here works from the code object and the live frame alone: no
function object lookup is needed, so dynamically defined functions resolve
the same way as ordinary ones, or fail with :class:`ResolutionError`.
"""

from __future__ import annotations

import inspect
import types
from typing import Any, Dict, Optional, Tuple

from .errors import ResolutionError
from .model import DefiningType, FunctionIdentity

_LOCALS_MARKER = "<locals>"

_SKIPPED_CODE_FLAGS = (
    inspect.CO_GENERATOR | inspect.CO_COROUTINE | inspect.CO_ASYNC_GENERATOR
    | inspect.CO_ITERABLE_COROUTINE
)
_COMPREHENSIONS = frozenset({"<listcomp>", "<dictcomp>", "<setcomp>"})


def is_plain_function(code: types.CodeType) -> bool:
    """Return ``True`` for code objects whose start and return bracket one call.

    Module and class bodies are not calls; generators and coroutines start and
    return once per resumption.
    """
    flags = code.co_flags
    if flags & _SKIPPED_CODE_FLAGS or not flags & inspect.CO_OPTIMIZED:
        return False
    return code.co_name not in _COMPREHENSIONS


def declared_parameters(code: types.CodeType) -> Tuple[inspect.Parameter, ...]:
    """Return the declared parameters of ``code`` in declaration order."""
    names = code.co_varnames
    positional = code.co_argcount
    posonly = code.co_posonlyargcount
    kwonly = code.co_kwonlyargcount

    params = [
        inspect.Parameter(
            names[index],
            inspect.Parameter.POSITIONAL_ONLY
            if index < posonly
            else inspect.Parameter.POSITIONAL_OR_KEYWORD,
        )
        for index in range(positional)
    ]
    # co_varnames lists keyword-only names before *args, but *args is declared first.
    index = positional + kwonly
    if code.co_flags & inspect.CO_VARARGS:
        params.append(inspect.Parameter(names[index], inspect.Parameter.VAR_POSITIONAL))
        index += 1
    params.extend(
        inspect.Parameter(names[i], inspect.Parameter.KEYWORD_ONLY)
        for i in range(positional, positional + kwonly)
    )
    if code.co_flags & inspect.CO_VARKEYWORDS:
        params.append(inspect.Parameter(names[index], inspect.Parameter.VAR_KEYWORD))
    return tuple(params)


def module_name(frame: types.FrameType) -> str:
    return str(frame.f_globals.get("__name__") or "<unknown>")


def defining_type(code: types.CodeType, module: str) -> DefiningType:
    """Derive the declaring class from ``co_qualname``.

    ``Outer.Inner.method`` is declared by ``Outer.Inner``; ``func`` and
    ``outer.<locals>.inner`` are declared by the module.
    """
    owner, _, _ = code.co_qualname.rpartition(".")
    if not owner or owner.endswith(_LOCALS_MARKER):
        return DefiningType(module)
    return DefiningType(module, owner)


def function_identity(code: types.CodeType, module: str) -> FunctionIdentity:
    return FunctionIdentity(
        module=module,
        qualname=code.co_qualname,
        name=code.co_name,
        path=code.co_filename,
        line=code.co_firstlineno,
    )


def bound_arguments(
    frame: types.FrameType, parameters: Tuple[inspect.Parameter, ...]
) -> Dict[str, Any]:
    """Resolve each declared parameter to the value currently bound to it."""
    local_values = frame.f_locals
    arguments: Dict[str, Any] = {}
    for param in parameters:
        try:
            arguments[param.name] = local_values[param.name]
        except KeyError:
            raise ResolutionError(
                frame.f_code.co_qualname, f"parameter '{param.name}' is not bound"
            ) from None
    return arguments


def _owner_class(cls: Any, owner: DefiningType) -> Optional[type]:
    for klass in getattr(cls, "__mro__", ()):
        if (
            getattr(klass, "__qualname__", None) == owner.qualname
            and getattr(klass, "__module__", None) == owner.module
        ):
            return klass
    return None


def _class_member(klass: type, code: types.CodeType) -> Any:
    name = code.co_name
    if name.startswith("__") and not name.endswith("__"):
        name = f"_{klass.__name__.lstrip('_')}{name}"
    return inspect.getattr_static(klass, name, None)


def is_receiver(value: Any, owner: DefiningType, code: types.CodeType) -> bool:
    """Return ``True`` when ``value`` is the implicit first argument of ``code``.

    The method kind is read from the owning class: a ``staticmethod`` has no
    receiver, a ``classmethod`` receives the class, anything else the instance.
    """
    if not owner.is_class:
        return False
    klass = _owner_class(type(value), owner)
    if klass is not None:
        member = _class_member(klass, code)
        return not isinstance(member, (staticmethod, classmethod))
    if isinstance(value, type):
        klass = _owner_class(value, owner)
        if klass is not None:
            return isinstance(_class_member(klass, code), classmethod)
    return False


def stack_depth(frame: types.FrameType) -> int:
    depth = 0
    current = frame
    while current is not None:
        depth += 1
        current = current.f_back
    return depth


__all__ = [
    "bound_arguments",
    "declared_parameters",
    "defining_type",
    "function_identity",
    "is_plain_function",
    "is_receiver",
    "module_name",
    "stack_depth",
]
