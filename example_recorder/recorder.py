"""Recording session: turns entry/exit events into stored examples.

A :class:`Recorder` owns everything a session mutates: the in-flight call
map, the seen-set of dedup keys and the example store. Reusing the same
instance across several recording windows keeps accumulating examples.
"""
from __future__ import annotations

import contextlib
import inspect
import logging
import os
import threading
import types
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, TypeVar

from . import introspect
from .correlator import CallCorrelator
from .dedup import Deduplicator
from .errors import ResolutionError
from .events import EventHub, get_hub
from .model import DefiningType, FunctionIdentity, InvocationKey, InvocationRecord
from .policy import CORRELATION_DEPTH, RecorderPolicy, policy_snapshot
from .serializer import ExchangeDocument, dumps, serialize_examples
from .store import DEFAULT_LIMIT, ExampleStore
from .values import capture

logger = logging.getLogger(__name__)

T = TypeVar("T")

_Description = Tuple[DefiningType, FunctionIdentity, Tuple[inspect.Parameter, ...]]
_RECEIVER_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class Recorder:
    """Harvest input/output examples from functions defined under ``path``.

    ``path`` is a substring filter: a function is traced when the file that
    defines it contains ``path``. Enabling and disabling are idempotent.
    """

    def __init__(self, path: str | os.PathLike, *, policy: Optional[RecorderPolicy] = None) -> None:
        self.path = os.fspath(path)
        self.policy = policy if policy is not None else policy_snapshot()
        self.thread_id = threading.get_ident()
        self._hub: Optional[EventHub] = None
        self._correlator = CallCorrelator()
        self._dedup = Deduplicator()
        self._store = ExampleStore(self.policy.max_examples_per_function)
        self._descriptions: Dict[types.CodeType, _Description] = {}

    def __repr__(self) -> str:
        state = "enabled" if self.is_enabled else "disabled"
        return f"<Recorder path={self.path!r} {state} examples={len(self._store)}>"

    # -------------------------------------------------------------- session
    @property
    def is_enabled(self) -> bool:
        return self._hub is not None

    def enable(self) -> "Recorder":
        """Start delivering call events to this recorder."""
        if self._hub is not None:
            return self
        hub = get_hub(self.policy.backend)
        self.thread_id = threading.get_ident()
        hub.subscribe(self)
        self._hub = hub
        logger.info("recording examples under %r (%s backend)", self.path, hub.name)
        return self

    def disable(self) -> None:
        """Stop recording; calls still in flight are dropped."""
        hub, self._hub = self._hub, None
        if hub is None:
            return
        hub.unsubscribe(self)
        orphaned = self._correlator.clear()
        logger.info(
            "stopped recording under %r: %d example(s), %d pending call(s) dropped",
            self.path,
            len(self._store),
            orphaned,
        )

    start = enable
    stop = disable

    @contextlib.contextmanager
    def recording(self) -> Iterator["Recorder"]:
        """Record for the duration of a ``with`` block."""
        was_enabled = self.is_enabled
        self.enable()
        try:
            yield self
        finally:
            if not was_enabled:
                self.disable()

    def record(self, work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``work`` while recording and return its result."""
        with self.recording():
            return work(*args, **kwargs)

    # -------------------------------------------------------------- results
    @property
    def examples(self) -> Tuple[InvocationRecord, ...]:
        return self._store.first(len(self._store))

    def __len__(self) -> int:
        return len(self._store)

    def serialized_examples(self, limit: int = DEFAULT_LIMIT) -> ExchangeDocument:
        """Return the exchange document for the oldest ``limit`` examples."""
        return serialize_examples(
            self._store.first(limit), on_field_error=self.policy.on_field_error
        )

    def dump_examples(self, limit: int = DEFAULT_LIMIT, *, indent: Optional[int] = None) -> str:
        return dumps(self.serialized_examples(limit), indent=indent)

    # --------------------------------------------------------------- events
    def accepts(self, filename: str) -> bool:
        return self.path in filename

    def on_entry(self, frame: types.FrameType) -> None:
        try:
            record = self._begin(frame)
        except ResolutionError as exc:
            logger.debug("dropping call event: %s", exc)
            return
        self._correlator.enter(self._key(frame), record)

    def on_exit(self, frame: types.FrameType, return_value: Any) -> None:
        key = self._key(frame)
        if key not in self._correlator:
            logger.debug("dropping unmatched return from %s", key.function.qualname)
            return
        record = self._correlator.exit(
            key, capture(return_value, copy_value=self.policy.snapshot_values)
        )
        if record is not None:
            self._accept(record)

    def on_unwind(self, frame: types.FrameType) -> None:
        if self._correlator.discard(self._key(frame)):
            logger.debug("dropping call to %s that raised", frame.f_code.co_qualname)

    # ------------------------------------------------------------- internals
    def _describe(self, frame: types.FrameType) -> _Description:
        code = frame.f_code
        description = self._descriptions.get(code)
        if description is None:
            module = introspect.module_name(frame)
            description = (
                introspect.defining_type(code, module),
                introspect.function_identity(code, module),
                introspect.declared_parameters(code),
            )
            self._descriptions[code] = description
        return description

    def _key(self, frame: types.FrameType) -> InvocationKey:
        owner, function, _ = self._describe(frame)
        if self.policy.correlation == CORRELATION_DEPTH:
            activation: Any = introspect.stack_depth(frame)
        else:
            activation = id(frame)
        return InvocationKey(owner, function, activation)

    def _begin(self, frame: types.FrameType) -> InvocationRecord:
        owner, function, parameters = self._describe(frame)
        values = introspect.bound_arguments(frame, parameters)
        if (
            not self.policy.include_receiver
            and parameters
            and parameters[0].kind in _RECEIVER_KINDS
            and introspect.is_receiver(values[parameters[0].name], owner, frame.f_code)
        ):
            del values[parameters[0].name]
            parameters = parameters[1:]
        copy_value = self.policy.snapshot_values
        arguments = {
            name: capture(value, copy_value=copy_value) for name, value in values.items()
        }
        return InvocationRecord(owner, function, parameters, arguments)

    def _accept(self, record: InvocationRecord) -> None:
        if not self._dedup.admit(record):
            return
        if not self._store.append(record):
            logger.debug(
                "example cap reached for %s (%d stored); skipping",
                record.function.qualname,
                self._store.count_for(record.function),
            )


__all__ = ["Recorder"]
