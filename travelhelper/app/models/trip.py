"""Trip models - trips, day plans, activities, and travel preferences."""

import datetime as dt
import math
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from travelhelper.app.models.common import Location


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    planning = "planning"
    completed = "completed"
    cancelled = "cancelled"


class TravelStyle(str, Enum):
    """Overall spending style for a trip."""

    budget = "budget"
    comfort = "comfort"
    luxury = "luxury"


class AccommodationType(str, Enum):
    """Preferred lodging type."""

    hotel = "hotel"
    hostel = "hostel"
    apartment = "apartment"
    any = "any"


class TransportPreference(str, Enum):
    """Preferred mode of long-distance transport."""

    flight = "flight"
    train = "train"
    bus = "bus"
    car = "car"
    any = "any"


class ActivityType(str, Enum):
    """Kind of itinerary activity."""

    attraction = "attraction"
    experience = "experience"
    tour = "tour"
    rest = "rest"
    meal = "meal"
    transport = "transport"


class TravelPreferences(BaseModel):
    """Structured trip preferences; every field is optional."""

    budget_tier: str | None = None
    travel_style: TravelStyle | None = None
    interests: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    accommodation_type: AccommodationType | None = None
    transport_preference: TransportPreference | None = None


class Activity(BaseModel):
    """Single activity within a day plan."""

    name: str = Field(..., min_length=1)
    type: ActivityType = ActivityType.attraction
    description: str = ""
    time_slot: str = ""
    duration_minutes: int = Field(60, gt=0)
    cost: float = Field(0, ge=0)
    rating: float | None = Field(None, ge=0, le=5)
    location: Location = Field(default_factory=Location)
    booking_url: str | None = None
    images: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


class DayPlan(BaseModel):
    """One day of an itinerary; activities keep their given order."""

    day_number: int = Field(..., ge=1)
    date: dt.date | None = None
    notes: str = ""
    budget: float = Field(0, ge=0)
    activities: list[Activity] = Field(default_factory=list)


class TripCreate(BaseModel):
    """Fields accepted when creating a trip."""

    title: str = Field("Untitled trip", min_length=1)
    destination: str = ""
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    budget: float = Field(0, ge=0)
    travelers: int = Field(1, ge=1)
    preferences: TravelPreferences = Field(default_factory=TravelPreferences)

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: dt.date | None, info: ValidationInfo) -> dt.date | None:
        """Ensure end >= start when both are set."""
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v


class TripUpdate(BaseModel):
    """Partial trip update; only fields explicitly set are applied."""

    title: str | None = Field(None, min_length=1)
    destination: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    budget: float | None = Field(None, ge=0)
    travelers: int | None = Field(None, ge=1)
    status: TripStatus | None = None
    preferences: TravelPreferences | None = None

    # Only the dates may be cleared; validators skip omitted fields
    @field_validator("title", "destination", "budget", "travelers", "status", "preferences")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def changes(self) -> dict[str, object]:
        """Return the explicitly provided fields."""
        return self.model_dump(exclude_unset=True)


class Trip(BaseModel):
    """A user's trip, including its itinerary (ordered day plans)."""

    id: UUID
    user_id: UUID
    title: str
    destination: str = ""
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    budget: float = 0
    travelers: int = 1
    status: TripStatus = TripStatus.planning
    preferences: TravelPreferences = Field(default_factory=TravelPreferences)
    itinerary: list[DayPlan] = Field(default_factory=list)
    share_id: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    def duration_days(self, default: int = 7) -> int:
        """Trip length in days.

        Uses ceil((end - start) / 1 day) when both dates are set, with a floor of
        one day; otherwise the configured default.
        """
        if self.start_date is None or self.end_date is None:
            return default
        delta = self.end_date - self.start_date
        return max(1, math.ceil(delta.total_seconds() / 86400))

    @property
    def has_destination(self) -> bool:
        return bool(self.destination.strip())
