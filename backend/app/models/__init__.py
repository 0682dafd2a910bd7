from .enums import (
    MatchTier,
    SuggestionType,
    EntityType,
    EventStatus,
)
from .festival import (
    VenueData,
    TeacherData,
    MusicianData,
    PriceData,
    FestivalRecord,
)
from .response import (
    DateSpan,
    DuplicateFestival,
    DuplicateVenue,
    DuplicateTeacher,
    DuplicateMusician,
    DuplicateSuggestion,
    DuplicateReport,
    ImportCounts,
    ImportResult,
)

__all__ = [
    "MatchTier",
    "SuggestionType",
    "EntityType",
    "EventStatus",
    "VenueData",
    "TeacherData",
    "MusicianData",
    "PriceData",
    "FestivalRecord",
    "DateSpan",
    "DuplicateFestival",
    "DuplicateVenue",
    "DuplicateTeacher",
    "DuplicateMusician",
    "DuplicateSuggestion",
    "DuplicateReport",
    "ImportCounts",
    "ImportResult",
]
