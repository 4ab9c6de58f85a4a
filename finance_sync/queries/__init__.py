"""Fetch execution package."""

from finance_sync.queries.executor import FetchExecutor

__all__ = ["FetchExecutor"]
