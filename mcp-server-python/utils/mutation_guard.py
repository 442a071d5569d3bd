"""Per-record mutation lock.

At most one outstanding mutating request exists per ``(kind, entity_id)``.
A second request for the same record is refused with BUSY instead of being
queued or retried. The guard lives on a single event loop: ``acquire`` never
awaits, so check-and-set cannot interleave with another coroutine.
"""

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from models.errors import create_busy_error

logger = logging.getLogger(__name__)

GuardKey = Tuple[str, str]


@dataclass(frozen=True)
class MutationToken:
    """Proof of holding the lock for one record."""

    key: GuardKey
    serial: int


class MutationGuard:
    """Serializes mutations per record.

    Usage::

        guard = MutationGuard()
        with guard.hold(EntityKind.JOB, job_id):
            response = await gateway.update_job_status(job_id, "active")
    """

    def __init__(self) -> None:
        self._held: Dict[GuardKey, int] = {}
        self._serials = itertools.count(1)

    @staticmethod
    def make_key(kind, entity_id) -> GuardKey:
        return (getattr(kind, "value", kind), str(entity_id))

    def is_busy(self, kind, entity_id) -> bool:
        """Return True if a mutation for this record is outstanding."""
        return self.make_key(kind, entity_id) in self._held

    def acquire(self, kind, entity_id) -> MutationToken:
        """
        Take the lock for one record.

        Raises:
            MarketplaceError: BUSY if the record already has an outstanding mutation
        """
        key = self.make_key(kind, entity_id)
        if key in self._held:
            logger.debug("Guard busy for %s/%s", *key)
            raise create_busy_error(*key)
        token = MutationToken(key=key, serial=next(self._serials))
        self._held[key] = token.serial
        logger.debug("Guard acquired for %s/%s (serial %d)", key[0], key[1], token.serial)
        return token

    def release(self, token: MutationToken) -> None:
        """Release a lock. Releasing twice, or releasing a stale token, does nothing."""
        if self._held.get(token.key) == token.serial:
            del self._held[token.key]
            logger.debug("Guard released for %s/%s", *token.key)

    @contextmanager
    def hold(self, kind, entity_id) -> Iterator[MutationToken]:
        """Acquire for the duration of the block; released on success and on failure."""
        token = self.acquire(kind, entity_id)
        try:
            yield token
        finally:
            self.release(token)

    @contextmanager
    def hold_many(self, kind, entity_ids) -> Iterator[Tuple[MutationToken, ...]]:
        """
        Acquire several records at once, all or nothing.

        If any record is busy, the locks taken so far are released and BUSY
        is raised for the first busy record.
        """
        tokens = []
        try:
            for entity_id in entity_ids:
                tokens.append(self.acquire(kind, entity_id))
        except Exception:
            for token in tokens:
                self.release(token)
            raise
        try:
            yield tuple(tokens)
        finally:
            for token in tokens:
                self.release(token)

    def __len__(self) -> int:
        return len(self._held)
