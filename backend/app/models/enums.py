"""
Enums for type-safe string constants in the Festival Importer.
"""

from enum import Enum


class MatchTier(str, Enum):
    """Coarse bucket summarizing a similarity score."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestionType(str, Enum):
    """Action suggested to the caller for a detected duplicate."""
    SKIP = "skip"
    MERGE = "merge"
    UPDATE = "update"


class EntityType(str, Enum):
    """Entity kinds checked by duplicate detection."""
    FESTIVAL = "festival"
    VENUE = "venue"
    TEACHER = "teacher"
    MUSICIAN = "musician"


class EventStatus(str, Enum):
    """Publication status of a persisted festival."""
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
