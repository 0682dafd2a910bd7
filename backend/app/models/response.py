"""
Pydantic models returned by duplicate detection and import.

DuplicateReport contract:
{
  "has_duplicates": true,
  "festivals": [{"existing_id", "existing_name", "existing_dates", "similarity", "match_type"}],
  "venues": [{"existing_id", "existing_name", "existing_address", "similarity", "match_type"}],
  "teachers": [{"existing_id", "existing_name", "similarity", "specialties", "match_type"}],
  "musicians": [{"existing_id", "existing_name", "similarity", "genres", "match_type"}],
  "suggestions": [{"type", "entity_type", "confidence", "reason"}]
}
"""

from typing import Optional

from pydantic import BaseModel, Field

from .enums import EntityType, MatchTier, SuggestionType
from .festival import DateValue


class DateSpan(BaseModel):
    """Stored date range of an existing festival."""
    start: DateValue
    end: DateValue


class DuplicateFestival(BaseModel):
    """An existing festival that resembles the incoming record."""
    existing_id: str
    existing_name: str
    existing_dates: DateSpan
    similarity: float = Field(..., ge=0, le=1)
    match_type: MatchTier


class DuplicateVenue(BaseModel):
    """An existing venue matched by name or address."""
    existing_id: str
    existing_name: str
    existing_address: str = ""
    similarity: float = Field(..., ge=0, le=1)
    match_type: MatchTier


class DuplicateTeacher(BaseModel):
    """An existing teacher with a similar name."""
    existing_id: str
    existing_name: str
    similarity: float = Field(..., ge=0, le=1)
    specialties: list[str] = Field(default_factory=list)
    match_type: MatchTier


class DuplicateMusician(BaseModel):
    """An existing musician with a similar name."""
    existing_id: str
    existing_name: str
    similarity: float = Field(..., ge=0, le=1)
    genres: list[str] = Field(default_factory=list)
    match_type: MatchTier


class DuplicateSuggestion(BaseModel):
    """Advisory action for the caller. Never applied automatically."""
    type: SuggestionType
    entity_type: EntityType
    confidence: float = Field(..., ge=0, le=1)
    reason: str


class DuplicateReport(BaseModel):
    """Result of duplicate detection for one festival record."""
    has_duplicates: bool = False
    festivals: list[DuplicateFestival] = Field(default_factory=list)
    venues: list[DuplicateVenue] = Field(default_factory=list)
    teachers: list[DuplicateTeacher] = Field(default_factory=list)
    musicians: list[DuplicateMusician] = Field(default_factory=list)
    suggestions: list[DuplicateSuggestion] = Field(default_factory=list)


class ImportCounts(BaseModel):
    """Number of input entries processed per nested list."""
    teachers: int = 0
    musicians: int = 0
    tags: int = 0
    prices: int = 0


class ImportResult(BaseModel):
    """Outcome of one import call: success with counts, or a single failure."""
    success: bool
    event_id: Optional[str] = None
    venue_id: Optional[str] = None
    counts: ImportCounts = Field(default_factory=ImportCounts)
    error: Optional[str] = None
    error_code: Optional[str] = Field(
        None,
        description="STORE_UNAVAILABLE or WRITE_FAILED when success is False"
    )
    retryable: bool = False
