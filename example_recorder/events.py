"""Function entry/exit event sources.

Two hook backends deliver the same three notifications to subscribed
listeners:

``settrace``
    ``sys.settrace`` global and local trace functions. Available on every
    CPython; only the subscribing thread is traced.
``monitoring``
    ``sys.monitoring`` ``PY_START``/``PY_RETURN``/``PY_UNWIND`` callbacks
    (CPython 3.12+). Locations no listener cares about are disabled with
    ``sys.monitoring.DISABLE`` until the next subscription.

Each backend is a process-wide hub that installs its hook once and fans
events out to every subscribed :class:`CallListener`, so several recording
sessions can be active without interfering. Events are rejected by source
path before anything else is inspected.
"""

from __future__ import annotations

import dis
import inspect
import logging
import os
import sys
import threading
import types
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .errors import RecorderError
from .introspect import is_plain_function

logger = logging.getLogger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__)) + os.sep
_RETURN_OPCODES = frozenset(
    dis.opmap[name] for name in ("RETURN_VALUE", "RETURN_CONST") if name in dis.opmap
)
MONITORING_TOOL_NAME: str = "example_recorder"


class CallListener(Protocol):
    """Receiver of entry/exit notifications for one recording session."""

    thread_id: int

    def accepts(self, filename: str) -> bool: ...

    def on_entry(self, frame: types.FrameType) -> None: ...

    def on_exit(self, frame: types.FrameType, return_value: Any) -> None: ...

    def on_unwind(self, frame: types.FrameType) -> None: ...


def is_own_code(filename: str) -> bool:
    return filename.startswith(_PACKAGE_DIR)


def monitoring_available() -> bool:
    return hasattr(sys, "monitoring")


class EventHub:
    """Shared fan-out from one installed hook to many listeners."""

    name: str = ""

    def __init__(self) -> None:
        self._listeners: List[CallListener] = []
        self._lock = threading.Lock()

    @property
    def listeners(self) -> Tuple[CallListener, ...]:
        return tuple(self._listeners)

    def subscribe(self, listener: CallListener) -> None:
        with self._lock:
            if listener in self._listeners:
                return
            self._listeners.append(listener)
            self._install()
        logger.debug("%s hub: subscribed %r", self.name, listener)

    def unsubscribe(self, listener: CallListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                return
            self._listeners.remove(listener)
            self._uninstall()
        logger.debug("%s hub: unsubscribed %r", self.name, listener)

    # ---------------------------------------------------------------- hooks
    def _install(self) -> None:
        raise NotImplementedError

    def _uninstall(self) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------- dispatch
    def _interested(self, code: types.CodeType) -> List[CallListener]:
        filename = code.co_filename
        listeners = [listener for listener in self._listeners if listener.accepts(filename)]
        if not listeners or is_own_code(filename) or not is_plain_function(code):
            return []
        return listeners

    def _deliver(
        self,
        listeners: List[CallListener],
        handler: Callable[[CallListener], None],
    ) -> None:
        thread_id = threading.get_ident()
        for listener in listeners:
            if listener.thread_id != thread_id:
                continue
            try:
                handler(listener)
            except Exception:  # noqa: BLE001 - never break the traced program
                logger.exception("%s hub: listener %r failed", self.name, listener)


class SettraceHub(EventHub):
    """Event source built on ``sys.settrace``."""

    name = "settrace"

    def __init__(self) -> None:
        super().__init__()
        self._previous: Dict[int, Any] = {}

    def _install(self) -> None:
        thread_id = threading.get_ident()
        if thread_id in self._previous:
            return
        self._previous[thread_id] = sys.gettrace()
        sys.settrace(self._global_trace)

    def _uninstall(self) -> None:
        thread_id = threading.get_ident()
        if thread_id not in self._previous:
            return
        if any(listener.thread_id == thread_id for listener in self._listeners):
            return
        sys.settrace(self._previous.pop(thread_id))

    def _global_trace(self, frame: types.FrameType, event: str, arg: Any):
        if event != "call":
            return None
        listeners = self._interested(frame.f_code)
        if not listeners:
            return None
        frame.f_trace_lines = False
        self._deliver(listeners, lambda listener: listener.on_entry(frame))
        return self._local_trace

    def _local_trace(self, frame: types.FrameType, event: str, arg: Any):
        if event != "return":
            return self._local_trace
        listeners = self._interested(frame.f_code)
        if _is_unwinding(frame):
            self._deliver(listeners, lambda listener: listener.on_unwind(frame))
        else:
            self._deliver(listeners, lambda listener: listener.on_exit(frame, arg))
        return self._local_trace


def _is_unwinding(frame: types.FrameType) -> bool:
    """Tell an exception exit from a normal return in a settrace ``return`` event.

    Both arrive as ``return``; only a normal return stops on a return opcode.
    """
    code = frame.f_code.co_code
    offset = frame.f_lasti
    return not (0 <= offset < len(code) and code[offset] in _RETURN_OPCODES)


class MonitoringHub(EventHub):
    """Event source built on ``sys.monitoring``."""

    name = "monitoring"

    def __init__(self) -> None:
        super().__init__()
        self._tool_id: Optional[int] = None

    def _install(self) -> None:
        if not monitoring_available():
            raise RecorderError("sys.monitoring requires Python 3.12 or newer")
        monitoring = sys.monitoring
        if self._tool_id is not None:
            # Re-arm locations disabled while only other filters were active.
            monitoring.restart_events()
            return
        tool_id = acquire_tool_id(MONITORING_TOOL_NAME)
        events = monitoring.events
        monitoring.register_callback(tool_id, events.PY_START, self._on_start)
        monitoring.register_callback(tool_id, events.PY_RETURN, self._on_return)
        monitoring.register_callback(tool_id, events.PY_UNWIND, self._on_unwind)
        monitoring.set_events(tool_id, events.PY_START | events.PY_RETURN | events.PY_UNWIND)
        monitoring.restart_events()
        self._tool_id = tool_id

    def _uninstall(self) -> None:
        if self._listeners or self._tool_id is None:
            return
        monitoring = sys.monitoring
        events = monitoring.events
        tool_id, self._tool_id = self._tool_id, None
        monitoring.set_events(tool_id, 0)
        for event_id in (events.PY_START, events.PY_RETURN, events.PY_UNWIND):
            monitoring.register_callback(tool_id, event_id, None)
        monitoring.free_tool_id(tool_id)

    def _on_start(self, code: types.CodeType, offset: int) -> Any:
        listeners = self._interested(code)
        if not listeners:
            return sys.monitoring.DISABLE
        frame = _find_frame(code)
        if frame is not None:
            self._deliver(listeners, lambda listener: listener.on_entry(frame))
        return None

    def _on_return(self, code: types.CodeType, offset: int, retval: Any) -> Any:
        listeners = self._interested(code)
        if not listeners:
            return sys.monitoring.DISABLE
        frame = _find_frame(code)
        if frame is not None:
            self._deliver(listeners, lambda listener: listener.on_exit(frame, retval))
        return None

    def _on_unwind(self, code: types.CodeType, offset: int, exc: BaseException) -> None:
        # PY_UNWIND cannot be disabled.
        listeners = self._interested(code)
        if not listeners:
            return None
        frame = _find_frame(code)
        if frame is not None:
            self._deliver(listeners, lambda listener: listener.on_unwind(frame))
        return None


def _find_frame(code: types.CodeType) -> Optional[types.FrameType]:
    frame = inspect.currentframe()
    while frame is not None and frame.f_code is not code:
        frame = frame.f_back
    return frame


def acquire_tool_id(name: str) -> int:
    """Reserve a monitoring tool id, trying the 6 CPython slots."""
    monitoring = sys.monitoring
    for candidate in range(6):
        try:
            monitoring.use_tool_id(candidate, name)
        except (RuntimeError, ValueError):
            continue
        return candidate
    raise RecorderError("all sys.monitoring tool ids are already in use")


_hubs: Dict[str, EventHub] = {
    SettraceHub.name: SettraceHub(),
    MonitoringHub.name: MonitoringHub(),
}


def get_hub(backend: str) -> EventHub:
    """Return the hub for ``backend`` (``auto`` prefers ``monitoring``)."""
    if backend == "auto":
        backend = MonitoringHub.name if monitoring_available() else SettraceHub.name
    try:
        return _hubs[backend]
    except KeyError:
        raise ValueError(f"unsupported backend '{backend}'") from None


def available_backends() -> Tuple[str, ...]:
    if monitoring_available():
        return (SettraceHub.name, MonitoringHub.name)
    return (SettraceHub.name,)


__all__ = [
    "CallListener",
    "EventHub",
    "MonitoringHub",
    "SettraceHub",
    "acquire_tool_id",
    "available_backends",
    "get_hub",
    "is_own_code",
    "monitoring_available",
]
