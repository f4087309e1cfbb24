"""
Identifier generation.

Services never call ``uuid4()`` inline for the ids they hand back to callers
(movement ids, receipt ids, purchase-order ids); they ask an injected
IdGenerator so tests can predict ids.
"""

import threading
from abc import ABC, abstractmethod
from uuid import UUID, uuid4


class IdGenerator(ABC):
    """Source of new entity identifiers."""

    @abstractmethod
    def next_id(self) -> UUID:
        ...


class UUID4Generator(IdGenerator):
    """Random version-4 UUIDs.  The production default."""

    def next_id(self) -> UUID:
        return uuid4()


class SequentialIdGenerator(IdGenerator):
    """
    Deterministic ids for tests: UUID(int=start), UUID(int=start + 1), ...

    Thread-safe so concurrency tests can share one instance.
    """

    def __init__(self, start: int = 1):
        if start < 0:
            raise ValueError("start must be non-negative")
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> UUID:
        with self._lock:
            value = self._next
            self._next += 1
        return UUID(int=value)
