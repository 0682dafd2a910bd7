"""Initial schema - festivals, venues, performers and join tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

Creates core tables: venues, events, teachers, musicians,
event_teachers, event_musicians, event_tags, event_prices.

List-valued columns (specializations, genres, instruments, workshops,
set_times) are stored as JSON text.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Complete schema SQL inlined for immutability.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS venues (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    address TEXT,
    city TEXT NOT NULL,
    state TEXT,
    country TEXT NOT NULL,
    postal_code TEXT,
    latitude REAL,
    longitude REAL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Persisted festivals
CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    description TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    timezone TEXT,
    registration_deadline TEXT,
    status TEXT NOT NULL DEFAULT 'DRAFT',
    venue_id TEXT NOT NULL,
    website TEXT,
    registration_url TEXT,
    source_url TEXT,
    scraped_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (venue_id) REFERENCES venues(id)
);

CREATE TABLE IF NOT EXISTS teachers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    bio TEXT,
    specializations TEXT NOT NULL DEFAULT '[]',
    website TEXT,
    image_url TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS musicians (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    bio TEXT,
    genres TEXT NOT NULL DEFAULT '[]',
    instruments TEXT NOT NULL DEFAULT '[]',
    website TEXT,
    image_url TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS event_teachers (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL,
    teacher_id TEXT NOT NULL,
    role TEXT,
    workshops TEXT NOT NULL DEFAULT '[]',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (event_id) REFERENCES events(id),
    FOREIGN KEY (teacher_id) REFERENCES teachers(id)
);

-- At most one row per (event, musician)
CREATE TABLE IF NOT EXISTS event_musicians (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL,
    musician_id TEXT NOT NULL,
    role TEXT,
    set_times TEXT NOT NULL DEFAULT '[]',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (event_id) REFERENCES events(id),
    FOREIGN KEY (musician_id) REFERENCES musicians(id),
    UNIQUE(event_id, musician_id)
);

CREATE TABLE IF NOT EXISTS event_tags (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL,
    tag TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (event_id) REFERENCES events(id)
);

CREATE TABLE IF NOT EXISTS event_prices (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL,
    type TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL DEFAULT 'USD',
    deadline TEXT,
    description TEXT,
    available BOOLEAN NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (event_id) REFERENCES events(id)
);

-- Indexes for date-overlap scans and join lookups
CREATE INDEX IF NOT EXISTS idx_events_dates ON events(start_date, end_date);
CREATE INDEX IF NOT EXISTS idx_events_venue_id ON events(venue_id);
CREATE INDEX IF NOT EXISTS idx_event_teachers_event_id ON event_teachers(event_id);
CREATE INDEX IF NOT EXISTS idx_event_musicians_event_id ON event_musicians(event_id);
CREATE INDEX IF NOT EXISTS idx_event_tags_event_id ON event_tags(event_id);
CREATE INDEX IF NOT EXISTS idx_event_prices_event_id ON event_prices(event_id);
"""


def upgrade() -> None:
    # Use raw DBAPI connection for multi-statement SQL
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection
    raw_conn.executescript(SCHEMA_SQL)


def downgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection

    # Drop tables in reverse dependency order
    tables = [
        "event_prices",
        "event_tags",
        "event_musicians",
        "event_teachers",
        "musicians",
        "teachers",
        "events",
        "venues",
    ]
    for table in tables:
        raw_conn.execute(f"DROP TABLE IF EXISTS {table}")
