"""In-memory record store with merge-on-write and time-based eviction.

The store holds at most one Record per key. Records stay visible to readers
while they are fresh and are physically removed by a periodic sweep once
they have been stale for longer than the expiry window.
"""

import asyncio
from typing import Optional

from serverwatch.storage.models import Record, RecordUpdate


class RecordStore:
    """Keyed index of Records with expiry.

    Uses a dictionary for storage with an asyncio lock around every mutation
    and read, so callers sharing the store from several tasks always see a
    consistent map.

    Attributes:
        expiry_seconds: Freshness window applied by list_fresh and sweep
        _records: Dictionary mapping key to Record
        _lock: Asyncio lock guarding _records

    Example:
        >>> store = RecordStore(expiry_seconds=600)
        >>> await store.upsert("job:abc", RecordUpdate(server_name="Farm A"), now=1000.0)
        >>> [r.server_name for r in await store.list_fresh(now=1200.0)]
        ['Farm A']
    """

    def __init__(self, expiry_seconds: float = 600) -> None:
        """Initialize an empty store.

        Args:
            expiry_seconds: Seconds since last observation after which a
                record is considered stale
        """
        self.expiry_seconds = expiry_seconds
        self._records: dict[str, Record] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def upsert(self, key: str, update: RecordUpdate, now: float) -> tuple[Record, bool]:
        """Create or merge the record stored under key.

        A new record takes the supplied fields, defaults for the rest and
        ``now`` for both timestamps. An existing record has the supplied
        fields overwritten and ``last_seen`` refreshed; ``first_seen`` is
        never changed.

        Args:
            key: Record identity
            update: Partial record with the observed fields
            now: Observation time in epoch seconds

        Returns:
            Tuple of (stored record, True if it was created)
        """
        fields = update.supplied_fields()
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                record = Record(key=key, first_seen=now, last_seen=now, **fields)
                created = True
            else:
                record = existing.model_copy(update={**fields, "last_seen": now})
                created = False
            self._records[key] = record
            return record, created

    async def get(self, key: str) -> Optional[Record]:
        """Retrieve a record by key, fresh or not.

        Args:
            key: Record identity

        Returns:
            Record if stored, None otherwise
        """
        async with self._lock:
            return self._records.get(key)

    async def list_fresh(self, now: float) -> list[Record]:
        """List records observed within the expiry window.

        Args:
            now: Current time in epoch seconds

        Returns:
            Fresh records, most recently observed first
        """
        async with self._lock:
            fresh = [
                record
                for record in self._records.values()
                if record.is_fresh(now, self.expiry_seconds)
            ]
        fresh.sort(key=lambda r: r.last_seen, reverse=True)
        return fresh

    async def sweep(self, now: float) -> int:
        """Remove every record that is no longer fresh.

        Args:
            now: Current time in epoch seconds

        Returns:
            Number of records removed
        """
        async with self._lock:
            stale = [
                key
                for key, record in self._records.items()
                if not record.is_fresh(now, self.expiry_seconds)
            ]
            for key in stale:
                del self._records[key]
            return len(stale)

    async def count(self) -> int:
        """Number of stored records, including stale ones not yet swept."""
        async with self._lock:
            return len(self._records)
