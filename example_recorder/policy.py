"""Recorder policy: process defaults, environment overrides and logging setup.

``configure_policy`` updates the process-wide default that new
:class:`~example_recorder.recorder.Recorder` instances copy at construction.
``configure_policy_from_env`` reads the ``EXAMPLE_RECORDER_*`` variables.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .serializer import FIELD_ERROR_POLICIES, ON_FIELD_ERROR_STRINGIFY

BACKEND_AUTO: str = "auto"
BACKEND_SETTRACE: str = "settrace"
BACKEND_MONITORING: str = "monitoring"
BACKENDS = frozenset({BACKEND_AUTO, BACKEND_SETTRACE, BACKEND_MONITORING})

CORRELATION_ACTIVATION: str = "activation"
CORRELATION_DEPTH: str = "depth"
CORRELATIONS = frozenset({CORRELATION_ACTIVATION, CORRELATION_DEPTH})

ENV_PREFIX: str = "EXAMPLE_RECORDER_"
ENV_BACKEND: str = ENV_PREFIX + "BACKEND"
ENV_CORRELATION: str = ENV_PREFIX + "CORRELATION"
ENV_ON_FIELD_ERROR: str = ENV_PREFIX + "ON_FIELD_ERROR"
ENV_SNAPSHOT_VALUES: str = ENV_PREFIX + "SNAPSHOT_VALUES"
ENV_INCLUDE_RECEIVER: str = ENV_PREFIX + "INCLUDE_RECEIVER"
ENV_MAX_EXAMPLES_PER_FUNCTION: str = ENV_PREFIX + "MAX_EXAMPLES_PER_FUNCTION"
ENV_LOG_LEVEL: str = ENV_PREFIX + "LOG_LEVEL"
ENV_LOG_FILE: str = ENV_PREFIX + "LOG_FILE"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_package_logger = logging.getLogger(__package__ or "example_recorder")
_file_handler: Optional[logging.FileHandler] = None


def _check_choice(name: str, value: str, choices: frozenset) -> None:
    if value not in choices:
        supported = ", ".join(sorted(choices))
        raise ValueError(f"unsupported {name} '{value}'. Expected one of: {supported}")


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got '{raw}'")


@dataclass(frozen=True)
class RecorderPolicy:
    """Tunable behaviour of a recording session.

    Attributes
    ----------
    backend:
        ``"settrace"``, ``"monitoring"`` or ``"auto"`` (``sys.monitoring`` when
        the interpreter provides it).
    correlation:
        ``"activation"`` keys in-flight calls on the live frame; ``"depth"``
        keys them on the stack depth at entry.
    on_field_error:
        What serialization does with a value that has no exchange form:
        ``"stringify"``, ``"omit"`` or ``"raise"``.
    snapshot_values:
        Deep-copy arguments and return values when they are captured.
    include_receiver:
        Keep the implicit ``self``/``cls`` argument of methods.
    max_examples_per_function:
        Optional cap on stored examples per function.
    log_level, log_file:
        Applied to the ``example_recorder`` logger by :func:`apply_logging`.
    """

    backend: str = BACKEND_AUTO
    correlation: str = CORRELATION_ACTIVATION
    on_field_error: str = ON_FIELD_ERROR_STRINGIFY
    snapshot_values: bool = True
    include_receiver: bool = False
    max_examples_per_function: Optional[int] = None
    log_level: Optional[str] = None
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("backend", self.backend, BACKENDS)
        _check_choice("correlation", self.correlation, CORRELATIONS)
        _check_choice("on_field_error", self.on_field_error, FIELD_ERROR_POLICIES)
        if self.max_examples_per_function is not None and self.max_examples_per_function < 1:
            raise ValueError("max_examples_per_function must be a positive integer")
        if self.log_level is not None and not isinstance(
            logging.getLevelName(self.log_level.upper()), int
        ):
            raise ValueError(f"unknown log level '{self.log_level}'")

    def replace(self, **overrides: object) -> "RecorderPolicy":
        return dataclasses.replace(self, **overrides)


_policy = RecorderPolicy()


def policy_snapshot() -> RecorderPolicy:
    """Return the current process-wide default policy."""
    return _policy


def configure_policy(**overrides: object) -> RecorderPolicy:
    """Update the default policy; ``None`` values leave a field unchanged."""
    global _policy
    unknown = set(overrides) - {f.name for f in dataclasses.fields(RecorderPolicy)}
    if unknown:
        raise TypeError(f"unknown policy field(s): {', '.join(sorted(unknown))}")
    changes = {key: value for key, value in overrides.items() if value is not None}
    _policy = _policy.replace(**changes)
    apply_logging(_policy)
    return _policy


def configure_policy_from_env(environ: Optional[Mapping[str, str]] = None) -> RecorderPolicy:
    """Refresh the default policy from ``EXAMPLE_RECORDER_*`` variables."""
    env = os.environ if environ is None else environ
    overrides: dict[str, object] = {}
    for key, field_name in (
        (ENV_BACKEND, "backend"),
        (ENV_CORRELATION, "correlation"),
        (ENV_ON_FIELD_ERROR, "on_field_error"),
        (ENV_LOG_LEVEL, "log_level"),
        (ENV_LOG_FILE, "log_file"),
    ):
        raw = env.get(key)
        if raw:
            overrides[field_name] = raw.strip().lower() if field_name != "log_file" else raw
    for key, field_name in (
        (ENV_SNAPSHOT_VALUES, "snapshot_values"),
        (ENV_INCLUDE_RECEIVER, "include_receiver"),
    ):
        raw = env.get(key)
        if raw:
            overrides[field_name] = _parse_bool(key, raw)
    raw_cap = env.get(ENV_MAX_EXAMPLES_PER_FUNCTION)
    if raw_cap:
        try:
            overrides["max_examples_per_function"] = int(raw_cap)
        except ValueError:
            raise ValueError(f"{ENV_MAX_EXAMPLES_PER_FUNCTION} must be an integer, got '{raw_cap}'") from None
    return configure_policy(**overrides)


def apply_logging(policy: RecorderPolicy) -> None:
    """Point the package logger at the policy's level and log file."""
    global _file_handler
    if policy.log_level is not None:
        _package_logger.setLevel(policy.log_level.upper())
    if policy.log_file is None:
        return
    target = os.path.abspath(os.fspath(policy.log_file))
    if _file_handler is not None:
        if _file_handler.baseFilename == target:
            return
        _package_logger.removeHandler(_file_handler)
        _file_handler.close()
    os.makedirs(os.path.dirname(target), exist_ok=True)
    _file_handler = logging.FileHandler(target, encoding="utf-8")
    _file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    _package_logger.addHandler(_file_handler)


def reset_policy() -> RecorderPolicy:
    """Restore the built-in defaults (useful in tests)."""
    global _policy, _file_handler
    _policy = RecorderPolicy()
    if _file_handler is not None:
        _package_logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    _package_logger.setLevel(logging.NOTSET)
    return _policy


__all__ = [
    "BACKEND_AUTO",
    "BACKEND_MONITORING",
    "BACKEND_SETTRACE",
    "CORRELATION_ACTIVATION",
    "CORRELATION_DEPTH",
    "RecorderPolicy",
    "apply_logging",
    "configure_policy",
    "configure_policy_from_env",
    "policy_snapshot",
    "reset_policy",
]
