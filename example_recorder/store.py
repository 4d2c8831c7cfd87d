"""Insertion-ordered store of accepted examples."""

from __future__ import annotations

from collections import Counter
from typing import List, Optional, Tuple

from .model import FunctionIdentity, InvocationRecord

DEFAULT_LIMIT: int = 100


class ExampleStore:
    """Append-only sequence of completed invocation records.

    ``max_per_function`` optionally caps how many examples one function may
    contribute; further records for that function are rejected.
    """

    def __init__(self, max_per_function: Optional[int] = None) -> None:
        if max_per_function is not None and max_per_function < 1:
            raise ValueError("max_per_function must be a positive integer")
        self.max_per_function = max_per_function
        self._records: List[InvocationRecord] = []
        self._per_function: Counter[FunctionIdentity] = Counter()

    def append(self, record: InvocationRecord) -> bool:
        if not record.is_completed:
            raise ValueError("only completed invocations can be stored")
        if (
            self.max_per_function is not None
            and self._per_function[record.function] >= self.max_per_function
        ):
            return False
        self._records.append(record)
        self._per_function[record.function] += 1
        return True

    def first(self, limit: int = DEFAULT_LIMIT) -> Tuple[InvocationRecord, ...]:
        """Return the oldest ``limit`` records."""
        if limit < 0:
            raise ValueError("limit must be non-negative")
        return tuple(self._records[:limit])

    def count_for(self, function: FunctionIdentity) -> int:
        return self._per_function[function]

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["DEFAULT_LIMIT", "ExampleStore"]
