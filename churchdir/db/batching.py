"""Chunked batched writes that stay under Firestore's per-batch write cap."""

import logging
from typing import Any, Optional
from google.cloud.firestore_v1 import DocumentReference, WriteBatch

from .firestore_client import get_firestore_client


logger = logging.getLogger(__name__)

# Firestore allows 500 writes per batch; keep headroom for field transforms
MAX_BATCH_WRITES = 450


class BatchWriter:
    """
    Accumulate writes and commit them in batches of at most max_writes.

    Use as a context manager; pending writes are committed on a clean exit
    and discarded if the block raises.

    Example:
        >>> with BatchWriter() as writer:
        ...     for ref in refs:
        ...         writer.update(ref, {'speakerName': 'Ana Torres'})
        >>> writer.writes_committed
        1200
        >>> writer.batches_committed
        3
    """

    def __init__(self, max_writes: int = MAX_BATCH_WRITES):
        if max_writes < 1:
            raise ValueError("max_writes must be positive")
        self.max_writes = max_writes
        self.batches_committed = 0
        self.writes_committed = 0
        self._batch: Optional[WriteBatch] = None
        self._pending = 0

    def _current(self) -> WriteBatch:
        if self._batch is None:
            self._batch = get_firestore_client().batch()
        return self._batch

    def _after_write(self) -> None:
        self._pending += 1
        if self._pending >= self.max_writes:
            self.flush()

    def update(self, ref: DocumentReference, data: dict[str, Any]) -> None:
        self._current().update(ref, data)
        self._after_write()

    def set(self, ref: DocumentReference, data: dict[str, Any], merge: bool = False) -> None:
        self._current().set(ref, data, merge=merge)
        self._after_write()

    def delete(self, ref: DocumentReference) -> None:
        self._current().delete(ref)
        self._after_write()

    def flush(self) -> None:
        """Commit pending writes, if any."""
        if self._batch is None or self._pending == 0:
            return

        self._batch.commit()
        self.batches_committed += 1
        self.writes_committed += self._pending
        logger.debug(f"Committed batch of {self._pending} writes")

        self._batch = None
        self._pending = 0

    def __enter__(self) -> 'BatchWriter':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.flush()
        else:
            self._batch = None
            self._pending = 0
