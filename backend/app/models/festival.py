"""
Pydantic models for incoming festival records.

A FestivalRecord is the already-extracted, validated input handed to the
duplicate detector and the importer. Only the primary venue is persisted.
"""

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config import Config

DateValue = Union[datetime, date]


class VenueData(BaseModel):
    """Venue where a festival takes place."""
    name: str = Field(..., min_length=1, description="Venue name")
    city: str = Field(..., description="City")
    country: str = Field(..., description="Country")
    address: Optional[str] = Field(None, description="Street address")
    state: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class TeacherData(BaseModel):
    """A dance teacher appearing at the festival."""
    name: str = Field(..., min_length=1)
    bio: Optional[str] = None
    specializations: list[str] = Field(default_factory=list)
    role: Optional[str] = None
    workshops: list[str] = Field(default_factory=list)
    website: Optional[str] = None
    image_url: Optional[str] = None


class MusicianData(BaseModel):
    """A musician or band playing at the festival."""
    name: str = Field(..., min_length=1)
    bio: Optional[str] = None
    genre: list[str] = Field(default_factory=list)
    instruments: list[str] = Field(default_factory=list)
    role: Optional[str] = None
    set_times: list[str] = Field(default_factory=list)
    website: Optional[str] = None
    image_url: Optional[str] = None


class PriceData(BaseModel):
    """A ticket or pass price."""
    type: str = Field(..., min_length=1, description="e.g. 'full_pass', 'early_bird'")
    amount: float
    currency: str = Field(Config.DEFAULT_CURRENCY)
    deadline: Optional[DateValue] = None
    description: Optional[str] = None


class FestivalRecord(BaseModel):
    """A festival as extracted from a scraped page or an uploaded file."""
    name: str = Field(..., min_length=1, description="Festival name")
    description: Optional[str] = None
    start_date: DateValue
    end_date: DateValue
    timezone: Optional[str] = None
    registration_deadline: Optional[DateValue] = None
    venue: VenueData
    venues: list[VenueData] = Field(
        default_factory=list,
        description="Alternate venues (not persisted)"
    )
    teachers: list[TeacherData] = Field(default_factory=list)
    musicians: list[MusicianData] = Field(default_factory=list)
    prices: list[PriceData] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    website: Optional[str] = None
    registration_url: Optional[str] = None
    source_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @model_validator(mode="after")
    def check_date_order(self) -> "FestivalRecord":
        """End date must be on or after the start date."""
        start, end = self.start_date, self.end_date
        if isinstance(start, datetime) and isinstance(end, datetime):
            if (start.tzinfo is None) != (end.tzinfo is None):
                start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)
        else:
            start = start.date() if isinstance(start, datetime) else start
            end = end.date() if isinstance(end, datetime) else end
        if end < start:
            raise ValueError("end_date must be after or equal to start_date")
        return self
