"""Common value types shared across all models."""

from datetime import datetime

from pydantic import BaseModel, Field


class Location(BaseModel):
    """A named place with optional coordinates (WGS84)."""

    name: str = ""
    address: str = ""
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    place_id: str | None = None


class Provenance(BaseModel):
    """Provenance metadata for provider results."""

    source: str  # Provider-specific identifier (e.g., "provider.weather.openweather")
    ref_id: str | None = None
    source_url: str | None = None
    fetched_at: datetime
    response_digest: str | None = None
