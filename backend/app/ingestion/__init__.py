"""
Festival ingestion package.

Writes accepted festival records into the SQLite database in one
transaction, deduplicating musicians inline.
"""

from .entities import MusicianResolver, is_same_musician, normalize_musician_name
from .importer import FestivalImporter

__all__ = [
    "MusicianResolver",
    "is_same_musician",
    "normalize_musician_name",
    "FestivalImporter",
]
