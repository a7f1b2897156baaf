"""In-memory write-through cache in front of a progress store."""

import asyncio
import logging
from typing import Callable

from pydantic import ValidationError

from ..errors import PersistenceError
from .database import ProgressStore
from .progress import ProgressRecord

logger = logging.getLogger(__name__)


class ProgressCache:
    """Memoizes progress records and serialises writes per user key.

    Writers for the same key take that key's lock, so a read-modify-write
    through ``update`` never loses a concurrent change. Writers for different
    keys hold different locks and do not wait on each other.
    """

    def __init__(self, store: ProgressStore):
        """Initialize the cache.

        Args:
            store: Durable store the cache writes through to
        """
        self.store = store
        self._records: dict[str, ProgressRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        # Lookup and insert happen without awaiting, so no other task can interleave.
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def get(self, key: str) -> ProgressRecord:
        """Get the record for a key, loading it from the store on a miss.

        A failed or unreadable load yields an empty record, which is not cached.
        """
        record = self._records.get(key)
        if record is None:
            record = await self._load(key, strict=False)
        return record.model_copy(deep=True)

    async def set(self, key: str, record: ProgressRecord) -> None:
        """Write a record through to the store and cache it.

        Raises:
            PersistenceError: If the store write failed; the cache is left as it was
        """
        async with self._lock_for(key):
            await self._write(key, record)

    async def update(
        self,
        key: str,
        change: Callable[[ProgressRecord], ProgressRecord],
    ) -> ProgressRecord:
        """Apply a change to the current record while holding the key's lock.

        Args:
            key: User key
            change: Function returning the new record from the current one

        Returns:
            The record after the change

        Raises:
            PersistenceError: If the current record could not be read or the
                new one could not be written
        """
        async with self._lock_for(key):
            current = self._records.get(key)
            if current is None:
                current = await self._load(key, strict=True)
            updated = change(current.model_copy(deep=True))
            if updated != current:
                await self._write(key, updated)
            return updated.model_copy(deep=True)

    def invalidate(self, key: str) -> None:
        """Drop the cached copy of a key; the stored copy is untouched.

        The key's lock is dropped too unless a writer holds it, so neither
        table keeps entries for keys that are no longer in use.
        """
        self._records.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def is_cached(self, key: str) -> bool:
        """Check if a key currently has a cached record."""
        return key in self._records

    async def _load(self, key: str, strict: bool) -> ProgressRecord:
        try:
            data = await self.store.get(key)
        except Exception as e:
            if strict:
                raise PersistenceError(f"Could not load progress for '{key}'") from e
            logger.warning("Failed to load progress for %s, using defaults", key, exc_info=True)
            return ProgressRecord()

        if data is None:
            record = ProgressRecord()
        else:
            try:
                record = ProgressRecord.from_bytes(data)
            except ValidationError:
                logger.warning("Stored progress for %s is unreadable, using defaults", key)
                return ProgressRecord()

        # A writer may have cached a newer record while the store was being read.
        return self._records.setdefault(key, record)

    async def _write(self, key: str, record: ProgressRecord) -> None:
        await self.store.put(key, record.to_bytes())
        self._records[key] = record.model_copy(deep=True)
