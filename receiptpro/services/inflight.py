from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Set

from receiptpro.services.exceptions import OperationInProgressError

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Refuses a second export or send for a document until the first settles.

    Handlers share a single event loop, so checking and claiming a key happen
    without an await in between.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._keys: Set[str] = set()

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        if key in self._keys:
            logger.info("Refusing %s for %s: already in progress", self.operation, key)
            raise OperationInProgressError(f"{self.operation.capitalize()} already in progress for {key}")
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)


exports_in_flight = InFlightGuard("export")
sends_in_flight = InFlightGuard("e-mail send")
