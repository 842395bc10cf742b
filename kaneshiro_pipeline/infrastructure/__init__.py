"""Infrastructure layer package."""

from .sheets_repository import CacheEntry, SheetsRepository

__all__ = ["CacheEntry", "SheetsRepository"]
