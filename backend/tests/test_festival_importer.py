"""Tests for the transactional FestivalImporter."""

import asyncio
import json
import logging
import sqlite3
from datetime import date

import pytest

from app.ingestion import FestivalImporter
from app.services.festival_repository import FestivalRepository

TABLES = (
    "venues",
    "events",
    "teachers",
    "musicians",
    "event_teachers",
    "event_musicians",
    "event_tags",
    "event_prices",
)


def _rows(db_path, sql, params=()):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        return [dict(row) for row in conn.execute(sql, params).fetchall()]
    finally:
        conn.close()


def _count(db_path, table):
    return _rows(db_path, f"SELECT COUNT(*) AS n FROM {table}")[0]["n"]


class FailingPriceRepository(FestivalRepository):
    """Fails on the last step of the import."""

    async def insert_price(self, conn, row_id, event_id, price, currency):
        raise sqlite3.IntegrityError("FOREIGN KEY constraint failed")


class LockedRepository(FestivalRepository):
    """Simulates a busy database on the first write."""

    async def insert_venue(self, conn, venue_id, slug, venue):
        raise sqlite3.OperationalError("database is locked")


class BlockingTagRepository(FestivalRepository):
    """Parks the import inside the transaction until cancelled."""

    def __init__(self):
        self.reached = asyncio.Event()

    async def insert_tag(self, conn, row_id, event_id, tag):
        self.reached.set()
        await asyncio.Event().wait()


# === Successful imports ===


class TestImportFestival:

    @pytest.mark.asyncio
    async def test_full_record(self, pool, db_path, record_factory):
        record = record_factory(
            description="Four days of lindy hop",
            teachers=[
                {"name": "Frida Segerdahl", "specializations": ["lindy hop"], "workshops": ["Advanced"]},
                {"name": "Skye Humphries"},
            ],
            musicians=[{"name": "Mayka Edjo", "genre": ["swing"], "set_times": ["Fri 21:00"]}],
            tags=["Lindy Hop", "BALBOA"],
            prices=[
                {"type": "full_pass", "amount": 250},
                {"type": "early_bird", "amount": 199, "currency": "EUR", "deadline": "2025-02-01"},
            ],
        )

        result = await FestivalImporter(pool).import_festival(record)

        assert result.success is True
        assert result.error is None
        assert result.counts.teachers == 2
        assert result.counts.musicians == 1
        assert result.counts.tags == 2
        assert result.counts.prices == 2

        event = _rows(db_path, "SELECT * FROM events WHERE id = ?", (result.event_id,))[0]
        assert event["status"] == "DRAFT"
        assert event["venue_id"] == result.venue_id
        assert event["start_date"] == "2025-04-10"
        assert event["slug"].startswith("spring-swing-camp-")

        tags = _rows(db_path, "SELECT tag FROM event_tags WHERE event_id = ?", (result.event_id,))
        assert sorted(t["tag"] for t in tags) == ["balboa", "lindy hop"]

        prices = _rows(db_path, "SELECT type, amount, currency FROM event_prices ORDER BY amount")
        assert prices == [
            {"type": "EARLY_BIRD", "amount": 199.0, "currency": "EUR"},
            {"type": "FULL_PASS", "amount": 250.0, "currency": "USD"},
        ]

        teacher = _rows(db_path, "SELECT specializations FROM teachers WHERE name = ?", ("Frida Segerdahl",))[0]
        assert json.loads(teacher["specializations"]) == ["lindy hop"]
        assert _count(db_path, "event_teachers") == 2
        assert _count(db_path, "event_musicians") == 1

    @pytest.mark.asyncio
    async def test_counts_are_input_lengths(self, pool, record_factory):
        record = record_factory(musicians=[{"name": "Mayka Edjo"}, {"name": "Mayka Edjo Band"}])

        result = await FestivalImporter(pool).import_festival(record)

        # Two inputs, one stored performer
        assert result.counts.musicians == 2

    @pytest.mark.asyncio
    async def test_injected_ids(self, pool, record_factory):
        ids = iter(f"id-{n}" for n in range(100))
        importer = FestivalImporter(pool, id_factory=lambda: next(ids))

        result = await importer.import_festival(record_factory())

        assert result.venue_id == "id-0"
        assert result.event_id == "id-1"

    @pytest.mark.asyncio
    async def test_teachers_are_not_deduplicated(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool)
        await importer.import_festival(record_factory(teachers=[{"name": "Frida Segerdahl"}]))
        await importer.import_festival(record_factory(
            name="Other Camp", teachers=[{"name": "Frida Segerdahl"}],
        ))

        assert _count(db_path, "teachers") == 2

    @pytest.mark.asyncio
    async def test_connection_released(self, pool, record_factory):
        await FestivalImporter(pool).import_festival(record_factory())
        assert pool.available == pool.size


# === Musician identity-merge ===


class TestMusicianMerge:

    @pytest.mark.asyncio
    async def test_band_suffix_resolves_to_existing(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool)
        first = await importer.import_festival(record_factory(musicians=[{"name": "Mayka Edjo"}]))
        existing_id = _rows(db_path, "SELECT id FROM musicians")[0]["id"]

        second = await importer.import_festival(record_factory(
            name="Autumn Stomp",
            start=date(2025, 10, 1),
            end=date(2025, 10, 3),
            musicians=[
                {"name": "Mayka Edjo Band", "bio": "Swing band from Oslo", "instruments": ["trumpet"]},
                {"name": "Mayka Edjo"},
            ],
        ))

        assert first.success and second.success
        musicians = _rows(db_path, "SELECT id, bio, instruments FROM musicians")
        assert len(musicians) == 1
        assert musicians[0]["id"] == existing_id
        assert musicians[0]["bio"] == "Swing band from Oslo"
        assert json.loads(musicians[0]["instruments"]) == ["trumpet"]

        joins = _rows(db_path, "SELECT musician_id FROM event_musicians WHERE event_id = ?", (second.event_id,))
        assert joins == [{"musician_id": existing_id}]

    @pytest.mark.asyncio
    async def test_duplicates_within_one_record(self, pool, db_path, record_factory):
        result = await FestivalImporter(pool).import_festival(record_factory(
            musicians=[{"name": "Mayka Edjo Band"}, {"name": "mayka edjo"}, {"name": "Mayka Edjo!"}],
        ))

        assert result.success
        assert _count(db_path, "musicians") == 1
        assert _count(db_path, "event_musicians") == 1

    @pytest.mark.asyncio
    async def test_existing_bio_left_untouched(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool)
        await importer.import_festival(record_factory(
            musicians=[{"name": "Mayka Edjo", "bio": "Original bio", "instruments": ["piano"]}],
        ))
        await importer.import_festival(record_factory(
            name="Autumn Stomp",
            musicians=[{"name": "Mayka Edjo", "bio": "New bio", "instruments": ["drums"]}],
        ))

        musician = _rows(db_path, "SELECT bio, instruments FROM musicians")[0]
        assert musician["bio"] == "Original bio"
        assert json.loads(musician["instruments"]) == ["piano"]

    @pytest.mark.asyncio
    async def test_instrument_union_on_bio_fill(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool)
        await importer.import_festival(record_factory(
            musicians=[{"name": "Mayka Edjo", "instruments": ["piano", "vocals"]}],
        ))
        await importer.import_festival(record_factory(
            name="Autumn Stomp",
            musicians=[{"name": "Mayka Edjo", "bio": "Bio", "genre": ["swing"]}],
        ))

        musician = _rows(db_path, "SELECT instruments FROM musicians")[0]
        assert json.loads(musician["instruments"]) == ["piano", "vocals", "swing"]

    @pytest.mark.asyncio
    async def test_different_musicians_both_created(self, pool, db_path, record_factory):
        await FestivalImporter(pool).import_festival(record_factory(
            musicians=[{"name": "Gordon Webster"}, {"name": "Gordon Au"}],
        ))

        assert _count(db_path, "musicians") == 2
        assert _count(db_path, "event_musicians") == 2

    @pytest.mark.asyncio
    async def test_punctuation_only_name_not_merged(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool)
        await importer.import_festival(record_factory(musicians=[{"name": "Mayka Edjo"}]))

        result = await importer.import_festival(record_factory(
            name="Autumn Stomp",
            musicians=[{"name": "???", "bio": "Unknown act"}],
        ))

        assert result.success
        musicians = _rows(db_path, "SELECT name, bio FROM musicians ORDER BY rowid")
        assert musicians == [
            {"name": "Mayka Edjo", "bio": None},
            {"name": "???", "bio": "Unknown act"},
        ]

    @pytest.mark.asyncio
    async def test_logs_created_and_merged_counts(self, pool, record_factory, caplog):
        importer = FestivalImporter(pool)
        await importer.import_festival(record_factory(musicians=[{"name": "Mayka Edjo"}]))

        with caplog.at_level(logging.INFO, logger="app.ingestion.importer"):
            await importer.import_festival(record_factory(
                name="Autumn Stomp",
                musicians=[
                    {"name": "Mayka Edjo Band", "bio": "Swing band from Oslo"},
                    {"name": "Gordon Webster"},
                ],
            ))

        assert "1 created, 1 merged into existing (1 enriched)" in caplog.text


# === Atomicity and error mapping ===


class TestAtomicity:

    @pytest.mark.asyncio
    async def test_failing_price_rolls_back_everything(self, pool, db_path, record_factory):
        importer = FestivalImporter(pool, repository=FailingPriceRepository())
        record = record_factory(
            teachers=[{"name": "Frida Segerdahl"}],
            musicians=[{"name": "Mayka Edjo"}],
            tags=["lindy"],
            prices=[{"type": "full_pass", "amount": 250}],
        )

        result = await importer.import_festival(record)

        assert result.success is False
        assert result.error_code == "WRITE_FAILED"
        assert result.retryable is False
        assert "FOREIGN KEY constraint failed" in result.error
        assert result.event_id is None
        for table in TABLES:
            assert _count(db_path, table) == 0, table
        assert pool.available == pool.size

    @pytest.mark.asyncio
    async def test_pool_usable_after_failure(self, pool, db_path, record_factory):
        await FestivalImporter(pool, repository=FailingPriceRepository()).import_festival(
            record_factory(prices=[{"type": "full_pass", "amount": 250}])
        )

        result = await FestivalImporter(pool).import_festival(record_factory())

        assert result.success is True
        assert _count(db_path, "events") == 1

    @pytest.mark.asyncio
    async def test_locked_database_is_unavailable(self, pool, record_factory):
        result = await FestivalImporter(pool, repository=LockedRepository()).import_festival(record_factory())

        assert result.success is False
        assert result.error_code == "STORE_UNAVAILABLE"
        assert result.retryable is True
        assert pool.available == pool.size

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back_and_releases(self, pool, db_path, record_factory):
        repo = BlockingTagRepository()
        importer = FestivalImporter(pool, repository=repo)

        task = asyncio.create_task(importer.import_festival(record_factory(tags=["lindy"])))
        await asyncio.wait_for(repo.reached.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        for table in TABLES:
            assert _count(db_path, table) == 0, table
        assert pool.available == pool.size


# === Read-back ===


class TestGetFestival:

    @pytest.mark.asyncio
    async def test_round_trip(self, pool, record_factory):
        record = record_factory(
            teachers=[{"name": "Frida Segerdahl", "role": "headliner"}],
            musicians=[{"name": "Mayka Edjo", "genre": ["swing"]}],
            tags=["Lindy"],
            prices=[{"type": "full_pass", "amount": 250}],
        )
        result = await FestivalImporter(pool).import_festival(record)

        async with pool.acquire() as conn:
            festival = await FestivalRepository().get_festival(conn, result.event_id)

        assert festival["name"] == "Spring Swing Camp"
        assert festival["venue"]["name"] == "Grand Ballroom"
        assert festival["teachers"][0]["role"] == "headliner"
        assert festival["musicians"][0]["genres"] == ["swing"]
        assert festival["tags"] == ["lindy"]
        assert festival["prices"][0]["type"] == "FULL_PASS"

    @pytest.mark.asyncio
    async def test_missing(self, pool):
        async with pool.acquire() as conn:
            assert await FestivalRepository().get_festival(conn, "nope") is None
