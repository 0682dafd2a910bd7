"""
Festival database repository with SQLite backend.

Stateless SQL layer shared by the duplicate detector and the importer.
Every method takes an AsyncConnection borrowed from the ConnectionPool, so
callers decide transaction boundaries.

List-valued columns are stored as JSON text and decoded on read.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from ..db import AsyncConnection

# Searchable tables and the columns returned for them
_NAME_TABLES = {
    "events": "id, name, start_date, end_date",
    "venues": "id, name, address, city, country",
    "teachers": "id, name, specializations",
    "musicians": "id, name, genres",
}


@dataclass
class MusicianRow:
    """A musician row as used by identity-merge."""
    id: str
    name: str
    bio: Optional[str] = None
    instruments: list[str] = field(default_factory=list)


def to_db_date(value: Optional[Any]) -> Optional[str]:
    """Serialize a date/datetime for storage; strings pass through."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _dumps(values: Optional[Iterable[str]]) -> str:
    return json.dumps(list(values or []))


def _loads(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def _not_in_clause(column: str, exclude_ids: Iterable[str]) -> tuple[str, list[str]]:
    ids = list(exclude_ids)
    if not ids:
        return "", []
    placeholders = ", ".join("?" for _ in ids)
    return f" AND {column} NOT IN ({placeholders})", ids


class FestivalRepository:
    """
    SQL for festivals, venues, teachers, musicians and their join rows.

    Read queries:
    - exact case-insensitive name lookup
    - "contains" lookup for fuzzy candidates
    - date-range overlap scan for festivals

    Write statements are plain INSERT/UPDATE and expect to run inside
    AsyncConnection.transaction().
    """

    # === Candidate lookups ===

    async def find_by_exact_name(
        self, conn: AsyncConnection, table: str, name: str
    ) -> list[dict]:
        """Rows whose name equals `name`, ignoring case."""
        columns = _NAME_TABLES[table]
        rows = await conn.fetchall(
            f"SELECT {columns} FROM {table} WHERE casefold(name) = casefold(?) ORDER BY rowid",
            (name,),
        )
        return [self._decode(table, row) for row in rows]

    async def find_name_containing(
        self,
        conn: AsyncConnection,
        table: str,
        phrase: str,
        exclude_ids: Iterable[str] = (),
    ) -> list[dict]:
        """
        Rows whose name contains `phrase`, ignoring case.

        An empty phrase matches every row; callers score the candidates.
        """
        columns = _NAME_TABLES[table]
        not_in, ids = _not_in_clause("id", exclude_ids)
        rows = await conn.fetchall(
            f"SELECT {columns} FROM {table} "
            f"WHERE instr(casefold(name), casefold(?)) > 0{not_in} ORDER BY rowid",
            (phrase, *ids),
        )
        return [self._decode(table, row) for row in rows]

    async def find_venues_address_containing(
        self,
        conn: AsyncConnection,
        phrase: str,
        exclude_ids: Iterable[str] = (),
    ) -> list[dict]:
        """Venues with an address containing `phrase`, ignoring case."""
        not_in, ids = _not_in_clause("id", exclude_ids)
        rows = await conn.fetchall(
            f"SELECT {_NAME_TABLES['venues']} FROM venues "
            f"WHERE address IS NOT NULL AND instr(casefold(address), casefold(?)) > 0{not_in} "
            f"ORDER BY rowid",
            (phrase, *ids),
        )
        return rows

    async def find_events_overlapping(
        self,
        conn: AsyncConnection,
        start: Any,
        end: Any,
        exclude_ids: Iterable[str] = (),
    ) -> list[dict]:
        """Festivals whose [start_date, end_date] intersects the given range."""
        not_in, ids = _not_in_clause("id", exclude_ids)
        rows = await conn.fetchall(
            f"SELECT {_NAME_TABLES['events']} FROM events "
            f"WHERE date(start_date) <= date(?) AND date(end_date) >= date(?){not_in} "
            f"ORDER BY rowid",
            (to_db_date(end), to_db_date(start), *ids),
        )
        return rows

    def _decode(self, table: str, row: dict) -> dict:
        if table == "teachers":
            row["specializations"] = _loads(row.get("specializations"))
        elif table == "musicians":
            row["genres"] = _loads(row.get("genres"))
        return row

    # === Musician identity-merge ===

    async def list_musicians(self, conn: AsyncConnection) -> list[MusicianRow]:
        """All musicians in insertion order (full table scan)."""
        rows = await conn.fetchall(
            "SELECT id, name, bio, instruments FROM musicians ORDER BY rowid"
        )
        return [
            MusicianRow(
                id=row["id"],
                name=row["name"],
                bio=row["bio"],
                instruments=_loads(row["instruments"]),
            )
            for row in rows
        ]

    async def event_musician_exists(
        self, conn: AsyncConnection, event_id: str, musician_id: str
    ) -> bool:
        row = await conn.fetchone(
            "SELECT 1 FROM event_musicians WHERE event_id = ? AND musician_id = ? LIMIT 1",
            (event_id, musician_id),
        )
        return row is not None

    # === Inserts ===

    async def insert_venue(self, conn: AsyncConnection, venue_id: str, slug: str, venue) -> None:
        await conn.execute("""
            INSERT INTO venues (id, name, slug, address, city, state, country,
                                postal_code, latitude, longitude)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            venue_id,
            venue.name,
            slug,
            venue.address,
            venue.city,
            venue.state,
            venue.country,
            venue.postal_code,
            venue.latitude,
            venue.longitude,
        ))

    async def insert_event(
        self,
        conn: AsyncConnection,
        event_id: str,
        slug: str,
        venue_id: str,
        record,
        status: str,
        scraped_at: datetime,
    ) -> None:
        await conn.execute("""
            INSERT INTO events (id, name, slug, description, start_date, end_date,
                                timezone, registration_deadline, status, venue_id,
                                website, registration_url, source_url, scraped_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            event_id,
            record.name,
            slug,
            record.description,
            to_db_date(record.start_date),
            to_db_date(record.end_date),
            record.timezone,
            to_db_date(record.registration_deadline),
            status,
            venue_id,
            record.website,
            record.registration_url,
            record.source_url,
            scraped_at.isoformat(),
        ))

    async def insert_teacher(self, conn: AsyncConnection, teacher_id: str, slug: str, teacher) -> None:
        await conn.execute("""
            INSERT INTO teachers (id, name, slug, bio, specializations, website, image_url)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            teacher_id,
            teacher.name,
            slug,
            teacher.bio,
            _dumps(teacher.specializations),
            teacher.website,
            teacher.image_url,
        ))

    async def insert_event_teacher(
        self, conn: AsyncConnection, row_id: str, event_id: str, teacher_id: str, teacher
    ) -> None:
        await conn.execute("""
            INSERT INTO event_teachers (id, event_id, teacher_id, role, workshops)
            VALUES (?, ?, ?, ?, ?)
        """, (row_id, event_id, teacher_id, teacher.role, _dumps(teacher.workshops)))

    async def insert_musician(
        self,
        conn: AsyncConnection,
        musician_id: str,
        slug: str,
        musician,
        instruments: list[str],
    ) -> None:
        await conn.execute("""
            INSERT INTO musicians (id, name, slug, bio, genres, instruments, website, image_url)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            musician_id,
            musician.name,
            slug,
            musician.bio,
            _dumps(musician.genre),
            _dumps(instruments),
            musician.website,
            musician.image_url,
        ))

    async def update_musician_bio(
        self, conn: AsyncConnection, musician_id: str, bio: str, instruments: list[str]
    ) -> bool:
        """Fill in a missing bio and replace the instrument list."""
        rowcount = await conn.execute("""
            UPDATE musicians
            SET bio = ?, instruments = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        """, (bio, _dumps(instruments), musician_id))
        return rowcount > 0

    async def insert_event_musician(
        self, conn: AsyncConnection, row_id: str, event_id: str, musician_id: str, musician
    ) -> None:
        await conn.execute("""
            INSERT INTO event_musicians (id, event_id, musician_id, role, set_times)
            VALUES (?, ?, ?, ?, ?)
        """, (row_id, event_id, musician_id, musician.role, _dumps(musician.set_times)))

    async def insert_tag(self, conn: AsyncConnection, row_id: str, event_id: str, tag: str) -> None:
        await conn.execute(
            "INSERT INTO event_tags (id, event_id, tag) VALUES (?, ?, ?)",
            (row_id, event_id, tag),
        )

    async def insert_price(
        self, conn: AsyncConnection, row_id: str, event_id: str, price, currency: str
    ) -> None:
        await conn.execute("""
            INSERT INTO event_prices (id, event_id, type, amount, currency, deadline,
                                      description, available)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1)
        """, (
            row_id,
            event_id,
            price.type.upper(),
            price.amount,
            currency,
            to_db_date(price.deadline),
            price.description,
        ))

    # === Read-back ===

    async def get_festival(self, conn: AsyncConnection, event_id: str) -> Optional[dict]:
        """
        Load a stored festival with its venue, performers, tags and prices.

        Returns None if no event has this id.
        """
        event = await conn.fetchone("SELECT * FROM events WHERE id = ?", (event_id,))
        if event is None:
            return None

        venue = await conn.fetchone(
            "SELECT id, name, address, city, state, country, postal_code, latitude, longitude "
            "FROM venues WHERE id = ?",
            (event["venue_id"],),
        )
        teachers = await conn.fetchall("""
            SELECT t.id, t.name, t.bio, t.specializations, et.role, et.workshops
            FROM event_teachers et
            JOIN teachers t ON t.id = et.teacher_id
            WHERE et.event_id = ?
            ORDER BY t.name
        """, (event_id,))
        musicians = await conn.fetchall("""
            SELECT m.id, m.name, m.bio, m.genres, m.instruments, em.role, em.set_times
            FROM event_musicians em
            JOIN musicians m ON m.id = em.musician_id
            WHERE em.event_id = ?
            ORDER BY m.name
        """, (event_id,))
        tags = await conn.fetchall(
            "SELECT tag FROM event_tags WHERE event_id = ? ORDER BY rowid", (event_id,)
        )
        prices = await conn.fetchall("""
            SELECT type, amount, currency, deadline, description
            FROM event_prices
            WHERE event_id = ?
            ORDER BY deadline IS NULL, deadline, rowid
        """, (event_id,))

        for teacher in teachers:
            teacher["specializations"] = _loads(teacher["specializations"])
            teacher["workshops"] = _loads(teacher["workshops"])
        for musician in musicians:
            musician["genres"] = _loads(musician["genres"])
            musician["instruments"] = _loads(musician["instruments"])
            musician["set_times"] = _loads(musician["set_times"])

        event["venue"] = venue
        event["teachers"] = teachers
        event["musicians"] = musicians
        event["tags"] = [row["tag"] for row in tags]
        event["prices"] = prices
        return event
