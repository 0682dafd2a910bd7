"""
Centralized configuration for the Festival Importer backend.

All constants are defined here to avoid scattered magic numbers
and enable easy configuration management.
"""

import os
from pathlib import Path


class Config:
    """Application configuration constants."""

    # === Similarity Thresholds ===
    # Tier boundaries for duplicate reporting (similarity -> tier)
    SIMILARITY_EXACT = 0.95   # Exact-equivalent, still reported as "high"
    SIMILARITY_HIGH = 0.85
    SIMILARITY_MEDIUM = 0.70  # Minimum for name-only fuzzy matches
    SIMILARITY_LOW = 0.50     # Festival date-overlap pass only

    # === Festival Date-Overlap Scoring ===
    NAME_WEIGHT = 0.6
    DATE_WEIGHT = 0.4

    # === Suggestion Confidences ===
    SKIP_FESTIVAL_CONFIDENCE = 0.95
    MERGE_FESTIVAL_CONFIDENCE = 0.80
    MERGE_VENUE_HIGH_CONFIDENCE = 0.90
    MERGE_VENUE_MEDIUM_CONFIDENCE = 0.70

    # === Keyword Extraction ===
    # Tokens this short or shorter never become keywords
    MIN_KEYWORD_LENGTH = 3
    STOP_WORDS = frozenset({
        "the", "and", "for", "with",
        # Domain words present in most festival names
        "festival", "swing", "blues",
    })

    # === Import Defaults ===
    DEFAULT_CURRENCY = "USD"

    # === Environment ===
    @staticmethod
    def database_path() -> str:
        """Path to SQLite database file.
        Default: backend/app/data/festivals.db (relative to app package).
        Override with DATABASE_PATH env var for container deployments.
        """
        default = str(Path(__file__).parent / "data" / "festivals.db")
        return os.getenv("DATABASE_PATH", default)

    @staticmethod
    def db_pool_size() -> int:
        """Number of pooled SQLite connections. Default: 4."""
        try:
            return max(1, int(os.getenv("DB_POOL_SIZE", "4")))
        except ValueError:
            return 4

    @staticmethod
    def db_timeout_seconds() -> float:
        """Seconds a connection waits on a locked database. Default: 5.0."""
        try:
            return float(os.getenv("DB_TIMEOUT_SECONDS", "5.0"))
        except ValueError:
            return 5.0

    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR)."""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def is_dev() -> bool:
        """Development mode (SQL statements traced at DEBUG). Default: False."""
        return os.getenv("DEV_MODE", "false").lower() == "true"
