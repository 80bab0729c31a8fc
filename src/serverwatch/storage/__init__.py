"""Storage layer for observed server records."""

from serverwatch.storage.memory import RecordStore
from serverwatch.storage.models import Record, RecordUpdate

__all__ = ["Record", "RecordStore", "RecordUpdate"]
