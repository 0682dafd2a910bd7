"""
Entity resolution for musicians.

Musicians are deduplicated inline during import:
- Pass 1: Exact match on normalized name
- Pass 2: Containment match after stripping a trailing "band" or "& name"
  suffix ("Mayka Edjo Band" -> "Mayka Edjo")

The first existing musician (in insertion order) that matches wins.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..db import AsyncConnection
from ..models import MusicianData
from ..services.festival_repository import FestivalRepository, MusicianRow

logger = logging.getLogger(__name__)

_BAND_SUFFIX = re.compile(r"\s+(band|&\s*\w+)$")


def normalize_musician_name(name: str) -> str:
    """Normalize name for comparison."""
    # Lowercase, remove punctuation, collapse whitespace
    name = name.lower()
    name = re.sub(r"[^\w\s]", "", name)
    name = re.sub(r"\s+", " ", name).strip()
    return name


def _strip_band_suffix(name: str) -> str:
    return _BAND_SUFFIX.sub("", name)


def is_same_musician(existing: str, new: str) -> bool:
    """
    Check whether two musician names refer to the same performer.

    Examples:
        "Mayka Edjo" / "Mayka Edjo Band"      -> True
        "Laura Windley" / "Laura Windley & Co" -> True
        "Gordon Webster" / "Gordon Au"         -> False
    """
    a = normalize_musician_name(existing)
    b = normalize_musician_name(new)

    if not a or not b:
        return False

    if a == b:
        return True

    if a in b or b in a:
        base_a = _strip_band_suffix(a)
        base_b = _strip_band_suffix(b)
        return base_a == base_b or base_a in base_b or base_b in base_a

    return False


def merge_instruments(existing: list[str], incoming: MusicianData) -> list[str]:
    """Union of stored instruments and the incoming ones (or genre)."""
    additions = incoming.instruments or incoming.genre
    merged = list(existing)
    for item in additions:
        if item not in merged:
            merged.append(item)
    return merged


@dataclass
class ResolvedMusician:
    """Outcome of resolving one incoming musician."""
    musician_id: str
    created: bool = False
    updated: bool = False


class MusicianResolver:
    """
    Resolves incoming musicians against the musicians table.

    Runs on the importer's connection, inside its transaction, so rows
    created earlier in the same import are visible to later lookups.
    """

    def __init__(self, repository: FestivalRepository):
        self.repository = repository

    async def find_existing(
        self, conn: AsyncConnection, musician: MusicianData
    ) -> Optional[MusicianRow]:
        """First stored musician whose name matches, or None."""
        for row in await self.repository.list_musicians(conn):
            if is_same_musician(row.name, musician.name):
                return row
        return None

    async def resolve(
        self,
        conn: AsyncConnection,
        musician: MusicianData,
        new_id: str,
        slug: str,
    ) -> ResolvedMusician:
        """
        Return the id of an existing matching musician, or insert a new one.

        A matched musician without a bio picks up the incoming bio and
        instruments; otherwise it is left untouched.
        """
        existing = await self.find_existing(conn, musician)

        if existing is None:
            await self.repository.insert_musician(
                conn, new_id, slug, musician, list(musician.instruments)
            )
            logger.debug(f"Created musician '{musician.name}' ({new_id})")
            return ResolvedMusician(musician_id=new_id, created=True)

        if not existing.bio and musician.bio:
            instruments = merge_instruments(existing.instruments, musician)
            await self.repository.update_musician_bio(conn, existing.id, musician.bio, instruments)
            logger.info(f"Merged '{musician.name}' into existing musician '{existing.name}' (bio updated)")
            return ResolvedMusician(musician_id=existing.id, updated=True)

        logger.info(f"Merged '{musician.name}' into existing musician '{existing.name}'")
        return ResolvedMusician(musician_id=existing.id)
