"""Harvest concrete input/output examples from live function calls.

`example_recorder` subscribes to function entry and exit events (through
``sys.monitoring`` or ``sys.settrace``) for code under a target path, pairs
each return with its call, keeps one example per distinct
(function, arguments, return value) triple, and projects the examples into a
JSON-compatible exchange document for editors and visualizers.
"""

from . import api as _api
from .api import *  # re-export public API symbols
from .errors import FieldSerializationError, RecorderError, ResolutionError
from .model import InvocationRecord, TypedValue
from .policy import (
    RecorderPolicy,
    configure_policy,
    configure_policy_from_env,
    policy_snapshot,
    reset_policy,
)
from .recorder import Recorder
from .serializer import dumps, serialize_examples

__all__ = list(_api.__all__) + [
    "FieldSerializationError",
    "InvocationRecord",
    "Recorder",
    "RecorderError",
    "RecorderPolicy",
    "ResolutionError",
    "TypedValue",
    "configure_policy",
    "configure_policy_from_env",
    "dumps",
    "policy_snapshot",
    "reset_policy",
    "serialize_examples",
]
