"""Ingest boundary: key derivation and batch upserts."""

from serverwatch.ingest.service import IngestService, make_key

__all__ = ["IngestService", "make_key"]
