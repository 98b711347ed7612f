"""Pydantic models for the boat booking board."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BoatType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    QUAD = "quad"  # quad or larger
    UNKNOWN = "unknown"


class Classification(str, Enum):
    RACE = "race"
    HYBRID = "hybrid"  # racing/training
    TRAINING = "training"


class BoatCategory(str, Enum):
    ROWING = "rowing"
    TINNIE = "tinnie"


class CacheState(str, Enum):
    EMPTY = "empty"
    REFRESHING = "refreshing"
    FRESH = "fresh"
    STALE = "stale"


# ── Boats ──────────────────────────────────────────────────────────────────


class AssetAttributes(BaseModel):
    """Everything the name classifier can read out of a raw boat name."""

    model_config = ConfigDict(frozen=True)

    boat_type: BoatType = Field(BoatType.UNKNOWN, description="Hull type")
    type_code: str | None = Field(None, description="Leading code, e.g. 2X")
    classification: Classification = Field(Classification.TRAINING)
    category: BoatCategory = Field(BoatCategory.ROWING)
    weight_kg: int | None = Field(None, description="Crew weight class in kg")
    sweep_capable: bool = Field(False, description="Can also be rigged for sweep")
    nickname: str | None = Field(None, description="Text in parentheses")
    display_name: str = Field(..., description="Name with metadata stripped")


class Asset(AssetAttributes):
    """A bookable boat as discovered on the listing page."""

    id: int = Field(..., description="RevSport asset id")
    full_name: str = Field(..., description="Raw name as scraped")
    calendar_url: str | None = None
    booking_url: str


class Booking(BaseModel):
    """One booking of one boat, in club wall-clock time."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    asset_id: int
    day: date = Field(..., alias="date")
    start_time: time
    end_time: time
    member_name: str
    session: str = Field("custom", description="Matching session window, or 'custom'")

    @model_validator(mode="after")
    def _start_before_end(self) -> Booking:
        if self.start_time >= self.end_time:
            raise ValueError("booking start must be before its end")
        return self


class Availability(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_slots: int
    booked_slots: int
    available_slots: int
    utilization_percent: int


class BoatWithBookings(Asset):
    """An asset plus the outcome of fetching its calendar."""

    bookings: list[Booking] = Field(default_factory=list)
    fetch_error: str | None = Field(None, description="Set when the fetch failed")
    skipped_bookings: int = 0
    availability: Availability | None = None

    @property
    def fetch_failed(self) -> bool:
        return self.fetch_error is not None


# ── Grouping ───────────────────────────────────────────────────────────────


class BoatColumn(BaseModel):
    """One display column, bucketed by hull type."""

    model_config = ConfigDict(frozen=True)

    quads: list[BoatWithBookings] = Field(default_factory=list)
    doubles: list[BoatWithBookings] = Field(default_factory=list)
    singles: list[BoatWithBookings] = Field(default_factory=list)
    other: list[BoatWithBookings] = Field(default_factory=list)

    def flatten(self) -> list[BoatWithBookings]:
        return [*self.quads, *self.doubles, *self.singles, *self.other]


class GroupedBoats(BaseModel):
    model_config = ConfigDict(frozen=True)

    training: BoatColumn = Field(default_factory=BoatColumn)
    race: BoatColumn = Field(default_factory=BoatColumn)

    def flatten(self) -> list[BoatWithBookings]:
        return [*self.training.flatten(), *self.race.flatten()]


# ── Cache ──────────────────────────────────────────────────────────────────


class CacheMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    window_start: date
    window_end: date
    total_boats: int
    total_bookings: int
    failed_assets: list[int] = Field(default_factory=list)
    skipped_bookings: int = 0
    expires_at: datetime


class BookingSnapshot(BaseModel):
    """Result of one refresh cycle, before the cache gives it an expiry."""

    model_config = ConfigDict(frozen=True)

    grouped: GroupedBoats
    generated_at: datetime
    window_start: date
    window_end: date
    failed_assets: list[int] = Field(default_factory=list)
    skipped_bookings: int = 0


class CacheEntry(BaseModel):
    """What the display reads. Never edited once published."""

    model_config = ConfigDict(frozen=True)

    boats: list[BoatWithBookings]
    grouped: GroupedBoats
    metadata: CacheMetadata
    stale: bool = False


class CacheHealth(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_cached: bool
    state: CacheState
    expires_at: datetime | None = None
    age_ms: int | None = None
    stale: bool = False
    last_error: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    cache: CacheHealth
