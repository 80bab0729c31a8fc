"""Background jobs that run alongside the HTTP service."""

from serverwatch.execution.sweeper import StoreSweeper

__all__ = ["StoreSweeper"]
