"""Write path into the record store.

Every record, whether forwarded by the gateway collector or posted by an
external publisher, enters the store through IngestService.
"""

import itertools
import time
from collections.abc import Callable, Sequence
from typing import Optional, Union

from serverwatch.observability.logging import get_logger
from serverwatch.observability.metrics import get_metrics_collector
from serverwatch.storage.memory import RecordStore
from serverwatch.storage.models import RecordUpdate

logger = get_logger(__name__)

# Batches share one timestamp, so keys without an id also need a sequence number.
_fallback_sequence = itertools.count()


def make_key(update: RecordUpdate, now: Optional[float] = None) -> str:
    """Derive the deduplication key for an incoming record.

    Records sharing a non-empty job ID merge into one. Anything else is keyed
    by its source message ID, or by the current time in milliseconds plus a
    process-wide sequence number when it has none, so it never merges.

    Args:
        update: Incoming partial record
        now: Epoch seconds used for the fallback token (default: time.time())

    Returns:
        "job:<jobId>" or "msg:<id or timestamp.sequence>"

    Examples:
        >>> make_key(RecordUpdate(job_id="abc-123", id="9"))
        'job:abc-123'
        >>> make_key(RecordUpdate(id="9"))
        'msg:9'
    """
    if update.job_id:
        return "job:" + update.job_id
    if update.id:
        return "msg:" + update.id
    timestamp = time.time() if now is None else now
    return f"msg:{int(timestamp * 1000)}.{next(_fallback_sequence)}"


class IngestService:
    """Upserts one or many partial records into a RecordStore.

    All items of one call are treated as simultaneous observations and share
    a single timestamp.

    Example:
        >>> service = IngestService(RecordStore())
        >>> await service.ingest([RecordUpdate(job_id="a"), RecordUpdate(job_id="b")])
        2
    """

    def __init__(self, store: RecordStore, clock: Callable[[], float] = time.time) -> None:
        """Initialize the service.

        Args:
            store: Store to write into
            clock: Source of epoch seconds, injectable for tests
        """
        self.store = store
        self._clock = clock

    async def ingest(self, items: Union[RecordUpdate, Sequence[RecordUpdate]]) -> int:
        """Upsert items in order.

        Args:
            items: A single partial record or an ordered batch

        Returns:
            Total number of stored keys after the call, stale ones included
        """
        batch = [items] if isinstance(items, RecordUpdate) else list(items)
        now = self._clock()
        metrics = get_metrics_collector()

        for item in batch:
            key = make_key(item, now)
            _, created = await self.store.upsert(key, item, now)
            metrics.record_ingest(created)
            logger.debug("record_upserted", key=key, created=created)

        count = await self.store.count()
        logger.info("records_ingested", items=len(batch), stored=count)
        return count
