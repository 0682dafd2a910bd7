"""
Transactional festival importer.

Persists one FestivalRecord and all of its nested entities in a single
transaction:

    venue -> event (DRAFT) -> teachers -> musicians (identity-merge)
          -> tags -> prices

Any failure rolls the whole unit of work back and is reported as one
ImportResult with success=False. The pooled connection is returned on every
exit path, including cancellation.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import Config
from ..db import AsyncConnection, ConnectionPool
from ..errors import classify_store_error
from ..models import EventStatus, FestivalRecord, ImportCounts, ImportResult
from ..services.festival_repository import FestivalRepository
from ..services.text_similarity import slugify
from .entities import MusicianResolver

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class FestivalImporter:
    """
    Writes accepted festival records to the store.

    Usage:
        importer = FestivalImporter(pool)
        result = await importer.import_festival(record)
        if result.success:
            print(result.event_id)
    """

    def __init__(
        self,
        pool: ConnectionPool,
        repository: Optional[FestivalRepository] = None,
        id_factory: Callable[[], str] = new_id,
    ):
        """
        Initialize importer.

        Args:
            pool: Connection pool; one connection is held per import
            repository: SQL layer (creates default if None)
            id_factory: Generates primary keys for new rows
        """
        self.pool = pool
        self.repository = repository or FestivalRepository()
        self.resolver = MusicianResolver(self.repository)
        self.id_factory = id_factory

    async def import_festival(self, record: FestivalRecord) -> ImportResult:
        """
        Import a festival atomically.

        Returns:
            ImportResult with event/venue ids and input counts on success,
            or a classified error (STORE_UNAVAILABLE / WRITE_FAILED).
        """
        logger.info(f"Importing festival '{record.name}'")
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    venue_id, event_id = await self._write(conn, record)
        except Exception as e:
            error = classify_store_error(e)
            logger.error(
                f"Import of '{record.name}' rolled back ({error.code}): {error.message}",
                exc_info=True,
            )
            return ImportResult(
                success=False,
                error=error.message,
                error_code=error.code,
                retryable=error.retryable,
            )

        counts = ImportCounts(
            teachers=len(record.teachers),
            musicians=len(record.musicians),
            tags=len(record.tags),
            prices=len(record.prices),
        )
        logger.info(
            f"Imported festival '{record.name}' as {event_id}: "
            f"{counts.teachers} teachers, {counts.musicians} musicians, "
            f"{counts.tags} tags, {counts.prices} prices"
        )
        return ImportResult(success=True, event_id=event_id, venue_id=venue_id, counts=counts)

    async def _write(self, conn: AsyncConnection, record: FestivalRecord) -> tuple[str, str]:
        """All inserts for one record, in dependency order."""
        repo = self.repository

        # Venue
        venue_id = self.id_factory()
        await repo.insert_venue(conn, venue_id, slugify(record.venue.name), record.venue)

        # Event
        event_id = self.id_factory()
        await repo.insert_event(
            conn,
            event_id,
            slugify(record.name),
            venue_id,
            record,
            status=EventStatus.DRAFT.value,
            scraped_at=datetime.now(timezone.utc),
        )

        # Teachers (no dedup)
        for teacher in record.teachers:
            teacher_id = self.id_factory()
            await repo.insert_teacher(conn, teacher_id, slugify(teacher.name), teacher)
            await repo.insert_event_teacher(conn, self.id_factory(), event_id, teacher_id, teacher)

        # Musicians (identity-merge)
        created = merged = enriched = 0
        for musician in record.musicians:
            resolved = await self.resolver.resolve(
                conn, musician, self.id_factory(), slugify(musician.name)
            )
            if resolved.created:
                created += 1
            else:
                merged += 1
                if resolved.updated:
                    enriched += 1
            if not await repo.event_musician_exists(conn, event_id, resolved.musician_id):
                await repo.insert_event_musician(
                    conn, self.id_factory(), event_id, resolved.musician_id, musician
                )
        if record.musicians:
            logger.info(
                f"Musicians for '{record.name}': {created} created, "
                f"{merged} merged into existing ({enriched} enriched)"
            )

        # Tags
        for tag in record.tags:
            await repo.insert_tag(conn, self.id_factory(), event_id, tag.lower())

        # Prices
        for price in record.prices:
            await repo.insert_price(
                conn,
                self.id_factory(),
                event_id,
                price,
                price.currency or Config.DEFAULT_CURRENCY,
            )

        return venue_id, event_id
