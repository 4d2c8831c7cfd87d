"""Pairs exit events with the entry event of the same invocation."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .model import InvocationKey, InvocationRecord, TypedValue

logger = logging.getLogger(__name__)


class CallCorrelator:
    """In-flight map of pending invocations keyed by :class:`InvocationKey`.

    A second entry under a colliding key overwrites the first one; under
    depth-keyed correlation this is the known same-depth recursion ambiguity.
    """

    def __init__(self) -> None:
        self._in_flight: Dict[InvocationKey, InvocationRecord] = {}

    def enter(self, key: InvocationKey, record: InvocationRecord) -> None:
        if key in self._in_flight:
            logger.debug("overwriting pending call for %s", key.function.qualname)
        self._in_flight[key] = record

    def exit(self, key: InvocationKey, return_value: TypedValue) -> Optional[InvocationRecord]:
        """Complete and return the pending record for ``key``, if any."""
        record = self._in_flight.pop(key, None)
        if record is None:
            return None
        return record.complete(return_value)

    def discard(self, key: InvocationKey) -> bool:
        return self._in_flight.pop(key, None) is not None

    def __contains__(self, key: InvocationKey) -> bool:
        return key in self._in_flight

    def pending(self) -> int:
        return len(self._in_flight)

    def clear(self) -> int:
        """Drop every pending record; return how many were orphaned."""
        orphaned = len(self._in_flight)
        self._in_flight.clear()
        return orphaned


__all__ = ["CallCorrelator"]
