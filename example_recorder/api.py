"""Module-level helpers around a single default recording session.

Hosts that only ever need one session can use :func:`start`, :func:`stop`
and the :func:`record` context manager instead of holding a
:class:`Recorder` themselves. Independent sessions remain available by
constructing :class:`Recorder` instances directly.
"""
from __future__ import annotations

import contextlib
import logging
import os
from typing import Iterator, Mapping, Optional

from .policy import RecorderPolicy, policy_snapshot
from .recorder import Recorder

logger = logging.getLogger(__name__)

_active_recorder: Optional[Recorder] = None


def start(
    path: str | os.PathLike,
    *,
    policy: RecorderPolicy | None = None,
    overrides: Mapping[str, object] | None = None,
) -> Recorder:
    """Start the global recording session.

    Parameters
    ----------
    path:
        Substring of the source paths whose functions are recorded.
    policy:
        Policy for this session. Defaults to the process policy from
        :func:`~example_recorder.policy.policy_snapshot`.
    overrides:
        Optional policy fields applied on top of ``policy`` for this session
        only (``correlation``, ``on_field_error``, ...).

    Calling ``start`` while the global session is active is a no-op that
    returns the running recorder.
    """
    global _active_recorder
    if _active_recorder is not None:
        if _active_recorder.path != os.fspath(path):
            logger.warning(
                "recording already active for %r; ignoring start for %r",
                _active_recorder.path,
                os.fspath(path),
            )
        return _active_recorder

    session_policy = policy if policy is not None else policy_snapshot()
    if overrides:
        session_policy = session_policy.replace(**dict(overrides))
    recorder = Recorder(path, policy=session_policy)
    recorder.enable()
    _active_recorder = recorder
    return recorder


def stop() -> Optional[Recorder]:
    """Stop the global session if one is running and return it."""
    global _active_recorder
    recorder, _active_recorder = _active_recorder, None
    if recorder is not None:
        recorder.disable()
    return recorder


def is_recording() -> bool:
    """Return ``True`` when the global session is active."""
    return _active_recorder is not None


def active_recorder() -> Optional[Recorder]:
    return _active_recorder


@contextlib.contextmanager
def record(
    path: str | os.PathLike,
    *,
    policy: RecorderPolicy | None = None,
    overrides: Mapping[str, object] | None = None,
) -> Iterator[Recorder]:
    """Context manager helper for scoped recording."""
    owned = _active_recorder is None
    recorder = start(path, policy=policy, overrides=overrides)
    try:
        yield recorder
    finally:
        if owned and _active_recorder is recorder:
            stop()


__all__ = [
    "active_recorder",
    "is_recording",
    "record",
    "start",
    "stop",
]
