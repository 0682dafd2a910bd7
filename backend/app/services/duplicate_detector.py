"""
Duplicate detection for incoming festival records.

Uses tiered matching per entity type:
1. Exact case-insensitive name match (similarity 1.0, tier "high")
2. Fuzzy match: names containing the record's keywords, scored with
   Levenshtein similarity (kept at >= 0.70)
3. Festivals only: date-overlap pass, scored 0.6 * name + 0.4 * overlap
   (kept at >= 0.50)
4. Venues only: address pass (kept at >= 0.85, always "high")

The four entity types are checked concurrently, each on its own pooled
connection. Detection is advisory and read-only; it never raises.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Optional

from ..config import Config
from ..db import AsyncConnection, ConnectionPool
from ..errors import DetectionDegraded
from ..models import (
    DateSpan,
    DuplicateFestival,
    DuplicateMusician,
    DuplicateReport,
    DuplicateSuggestion,
    DuplicateTeacher,
    DuplicateVenue,
    EntityType,
    FestivalRecord,
    MatchTier,
    SuggestionType,
)
from .festival_repository import FestivalRepository
from .temporal_overlap import DateRange, overlap
from .text_similarity import keywords, similarity

logger = logging.getLogger(__name__)


def classify_tier(score: float, allow_low: bool = False) -> Optional[MatchTier]:
    """
    Map a similarity score onto a match tier.

    Scores at or above SIMILARITY_EXACT are reported as "high". The "low"
    tier only exists for the festival date-overlap pass.
    """
    if score >= Config.SIMILARITY_HIGH:
        return MatchTier.HIGH
    if score >= Config.SIMILARITY_MEDIUM:
        return MatchTier.MEDIUM
    if allow_low and score >= Config.SIMILARITY_LOW:
        return MatchTier.LOW
    return None


def _parse_stored_date(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value
    return datetime.fromisoformat(str(value))


def build_suggestions(
    festivals: list[DuplicateFestival],
    venues: list[DuplicateVenue],
) -> list[DuplicateSuggestion]:
    """Advisory actions for festival and venue matches."""
    suggestions: list[DuplicateSuggestion] = []

    for dup in festivals:
        if dup.match_type == MatchTier.HIGH:
            suggestions.append(DuplicateSuggestion(
                type=SuggestionType.SKIP,
                entity_type=EntityType.FESTIVAL,
                confidence=Config.SKIP_FESTIVAL_CONFIDENCE,
                reason=f'Exact match found: "{dup.existing_name}"',
            ))
        elif dup.match_type == MatchTier.MEDIUM:
            suggestions.append(DuplicateSuggestion(
                type=SuggestionType.MERGE,
                entity_type=EntityType.FESTIVAL,
                confidence=Config.MERGE_FESTIVAL_CONFIDENCE,
                reason=(
                    f'High similarity match found: "{dup.existing_name}" '
                    f"({round(dup.similarity * 100)}% similar)"
                ),
            ))

    for dup in venues:
        if dup.match_type == MatchTier.HIGH:
            suggestions.append(DuplicateSuggestion(
                type=SuggestionType.MERGE,
                entity_type=EntityType.VENUE,
                confidence=Config.MERGE_VENUE_HIGH_CONFIDENCE,
                reason=f'Exact venue match found: "{dup.existing_name}"',
            ))
        elif dup.match_type == MatchTier.MEDIUM:
            suggestions.append(DuplicateSuggestion(
                type=SuggestionType.MERGE,
                entity_type=EntityType.VENUE,
                confidence=Config.MERGE_VENUE_MEDIUM_CONFIDENCE,
                reason=(
                    f'High similarity venue match: "{dup.existing_name}" '
                    f"({round(dup.similarity * 100)}% similar)"
                ),
            ))

    return suggestions


class DuplicateDetector:
    """
    Finds existing festivals, venues, teachers and musicians that resemble
    an incoming record.

    Usage:
        detector = DuplicateDetector(pool)
        report = await detector.detect(record)
        if report.has_duplicates:
            ...
    """

    def __init__(self, pool: ConnectionPool, repository: Optional[FestivalRepository] = None):
        self.pool = pool
        self.repository = repository or FestivalRepository()

    async def detect(self, record: FestivalRecord) -> DuplicateReport:
        """
        Check every entity in the record against the store.

        A failing pass degrades to an empty list for that entity type; an
        unexpected failure outside the passes yields an empty report.
        """
        logger.info(
            f"Starting duplicate detection for '{record.name}' "
            f"({record.start_date} - {record.end_date})"
        )
        try:
            festivals, venues, teachers, musicians = await asyncio.gather(
                self._run_pass(EntityType.FESTIVAL, self._detect_festivals, record),
                self._run_pass(EntityType.VENUE, self._detect_venues, record),
                self._run_pass(EntityType.TEACHER, self._detect_teachers, record),
                self._run_pass(EntityType.MUSICIAN, self._detect_musicians, record),
            )
        except Exception as e:
            logger.error(f"Duplicate detection failed: {e}", exc_info=True)
            return DuplicateReport()

        has_duplicates = any([festivals, venues, teachers, musicians])
        logger.info(
            f"Duplicate detection completed: has_duplicates={has_duplicates} "
            f"festivals={len(festivals)} venues={len(venues)} "
            f"teachers={len(teachers)} musicians={len(musicians)}"
        )
        return DuplicateReport(
            has_duplicates=has_duplicates,
            festivals=festivals,
            venues=venues,
            teachers=teachers,
            musicians=musicians,
            suggestions=build_suggestions(festivals, venues),
        )

    async def _run_pass(self, entity_type: EntityType, detect_fn, record: FestivalRecord) -> list:
        """Run one entity-type pass on its own connection."""
        try:
            async with self.pool.acquire() as conn:
                return await detect_fn(conn, record)
        except Exception as e:
            degraded = DetectionDegraded(f"{entity_type.value} duplicate detection failed: {e}", cause=e)
            logger.warning(f"{degraded.code}: {degraded.message}")
            return []

    # === Festivals ===

    async def _detect_festivals(
        self, conn: AsyncConnection, record: FestivalRecord
    ) -> list[DuplicateFestival]:
        repo = self.repository
        duplicates: list[DuplicateFestival] = []

        # Pass 1: exact
        exact = await repo.find_by_exact_name(conn, "events", record.name)
        for row in exact:
            duplicates.append(self._festival(row, 1.0, MatchTier.HIGH))

        # Pass 2: keyword "contains" + similarity
        phrase = " ".join(keywords(record.name))
        candidates = await repo.find_name_containing(
            conn, "events", phrase, exclude_ids=[row["id"] for row in exact]
        )
        for row in candidates:
            score = similarity(record.name, row["name"])
            tier = classify_tier(score)
            if tier is not None:
                duplicates.append(self._festival(row, score, tier))

        # Pass 3: date overlap
        incoming = DateRange(record.start_date, record.end_date)
        overlapping = await repo.find_events_overlapping(
            conn,
            record.start_date,
            record.end_date,
            exclude_ids=[dup.existing_id for dup in duplicates],
        )
        for row in overlapping:
            existing = DateRange(
                _parse_stored_date(row["start_date"]),
                _parse_stored_date(row["end_date"]),
            )
            combined = min(1.0, (
                Config.NAME_WEIGHT * similarity(record.name, row["name"])
                + Config.DATE_WEIGHT * overlap(incoming, existing)
            ))
            tier = classify_tier(combined, allow_low=True)
            if tier is not None:
                duplicates.append(self._festival(row, combined, tier))

        return duplicates

    @staticmethod
    def _festival(row: dict, score: float, tier: MatchTier) -> DuplicateFestival:
        return DuplicateFestival(
            existing_id=row["id"],
            existing_name=row["name"],
            existing_dates=DateSpan(start=row["start_date"], end=row["end_date"]),
            similarity=score,
            match_type=tier,
        )

    # === Venues ===

    async def _detect_venues(
        self, conn: AsyncConnection, record: FestivalRecord
    ) -> list[DuplicateVenue]:
        venue = record.venue
        if venue is None or not venue.name:
            return []

        repo = self.repository
        duplicates: list[DuplicateVenue] = []

        exact = await repo.find_by_exact_name(conn, "venues", venue.name)
        for row in exact:
            duplicates.append(self._venue(row, 1.0, MatchTier.HIGH))

        phrase = " ".join(keywords(venue.name))
        candidates = await repo.find_name_containing(
            conn, "venues", phrase, exclude_ids=[row["id"] for row in exact]
        )
        for row in candidates:
            score = similarity(venue.name, row["name"])
            tier = classify_tier(score)
            if tier is not None:
                duplicates.append(self._venue(row, score, tier))

        if venue.address:
            address_phrase = " ".join(keywords(venue.address))
            by_address = await repo.find_venues_address_containing(
                conn, address_phrase, exclude_ids=[dup.existing_id for dup in duplicates]
            )
            for row in by_address:
                score = similarity(venue.address, row["address"])
                if score >= Config.SIMILARITY_HIGH:
                    duplicates.append(self._venue(row, score, MatchTier.HIGH))

        return duplicates

    @staticmethod
    def _venue(row: dict, score: float, tier: MatchTier) -> DuplicateVenue:
        return DuplicateVenue(
            existing_id=row["id"],
            existing_name=row["name"],
            existing_address=row.get("address") or "",
            similarity=score,
            match_type=tier,
        )

    # === Teachers and musicians ===

    async def _match_people(self, conn: AsyncConnection, table: str, names: list[str]) -> list[tuple[dict, float, MatchTier]]:
        """Exact then fuzzy name matches for each person, in input order."""
        repo = self.repository
        matches: list[tuple[dict, float, MatchTier]] = []
        for name in names:
            exact = await repo.find_by_exact_name(conn, table, name)
            matches.extend((row, 1.0, MatchTier.HIGH) for row in exact)

            phrase = " ".join(keywords(name))
            candidates = await repo.find_name_containing(
                conn, table, phrase, exclude_ids=[row["id"] for row in exact]
            )
            for row in candidates:
                score = similarity(name, row["name"])
                tier = classify_tier(score)
                if tier is not None:
                    matches.append((row, score, tier))
        return matches

    async def _detect_teachers(
        self, conn: AsyncConnection, record: FestivalRecord
    ) -> list[DuplicateTeacher]:
        matches = await self._match_people(conn, "teachers", [t.name for t in record.teachers])
        return [
            DuplicateTeacher(
                existing_id=row["id"],
                existing_name=row["name"],
                similarity=score,
                specialties=row.get("specializations") or [],
                match_type=tier,
            )
            for row, score, tier in matches
        ]

    async def _detect_musicians(
        self, conn: AsyncConnection, record: FestivalRecord
    ) -> list[DuplicateMusician]:
        matches = await self._match_people(conn, "musicians", [m.name for m in record.musicians])
        return [
            DuplicateMusician(
                existing_id=row["id"],
                existing_name=row["name"],
                similarity=score,
                genres=row.get("genres") or [],
                match_type=tier,
            )
            for row, score, tier in matches
        ]
