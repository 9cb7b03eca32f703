"""Provider payload and parameter models.

Every provider kind has a params model (what callers pass to the gateway) and
a payload model (what the gateway hands back, live or fallback).
"""

from pydantic import BaseModel, Field

from travelhelper.app.models.common import Location

# --- Parameters -------------------------------------------------------------


class FlightSearchParams(BaseModel):
    """Flight search parameters (IATA city/airport codes, ISO dates)."""

    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    departure_date: str
    return_date: str | None = None
    adults: int = Field(1, ge=1)


class HotelSearchParams(BaseModel):
    """Hotel search parameters."""

    city_code: str = Field(..., min_length=1)
    check_in: str
    check_out: str
    adults: int = Field(1, ge=1)


class PlaceSearchParams(BaseModel):
    """Free-text place search (restaurants, attractions)."""

    location: str = Field(..., min_length=1)
    limit: int = Field(20, ge=1, le=50)


class WeatherParams(BaseModel):
    location: str = Field(..., min_length=1)


class SafetyParams(BaseModel):
    """Safety lookup; coordinates are resolved from the location when omitted."""

    location: str = Field(..., min_length=1)
    latitude: float | None = None
    longitude: float | None = None


class GeocodeParams(BaseModel):
    address: str = Field(..., min_length=1)


class RouteParams(BaseModel):
    """Route between free-text places or "lat,lng" pairs."""

    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    waypoints: list[str] = Field(default_factory=list)
    mode: str = "driving"


class TextGenerationParams(BaseModel):
    """Generative text request.

    ``message`` and ``destination`` only shape the deterministic fallback reply;
    the provider sees ``prompt``.
    """

    prompt: str = Field(..., min_length=1)
    message: str = ""
    destination: str = ""


class CheckoutParams(BaseModel):
    price_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    customer_email: str | None = None
    customer_id: str | None = None


class PortalParams(BaseModel):
    customer_id: str = Field(..., min_length=1)


# --- Payloads ---------------------------------------------------------------


class FlightEndpoint(BaseModel):
    iata_code: str
    at: str


class FlightOffer(BaseModel):
    """Single flight offer."""

    id: str
    price: str
    currency: str
    airline: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: str
    booking_url: str | None = None


class HotelOffer(BaseModel):
    """Single hotel offer (price per stay)."""

    id: str
    name: str
    rating: float
    price: str
    currency: str
    address: str = ""
    amenities: list[str] = Field(default_factory=list)
    booking_url: str | None = None


class Restaurant(BaseModel):
    id: str
    name: str
    category: str = "Restaurant"
    rating: float | None = None
    price_level: int | None = None
    address: str = ""
    photos: list[str] = Field(default_factory=list)


class Attraction(BaseModel):
    id: str
    name: str
    rating: float | None = None
    description: str = ""
    address: str = ""
    photos: list[str] = Field(default_factory=list)


class WeatherSnapshot(BaseModel):
    temperature_c: float
    condition: str
    humidity: float
    wind_speed: float


class ForecastEntry(BaseModel):
    date: str
    temperature_c: float
    condition: str
    precipitation: float = 0


class WeatherReport(BaseModel):
    """Current conditions plus a short forecast."""

    current: WeatherSnapshot
    forecast: list[ForecastEntry] = Field(default_factory=list)


class SafetyAlert(BaseModel):
    type: str
    severity: str
    location: str = ""
    description: str = ""
    timestamp: str | None = None


class SafetyReport(BaseModel):
    """Safety level on a 1-10 scale with alerts and advice."""

    safety_level: int = Field(..., ge=1, le=10)
    alerts: list[SafetyAlert] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class RouteLeg(BaseModel):
    start: str
    end: str
    distance_meters: int
    duration_seconds: int


class RoutePlan(BaseModel):
    mode: str
    distance_meters: int
    duration_seconds: int
    legs: list[RouteLeg] = Field(default_factory=list)
    polyline: str | None = None


class GeneratedText(BaseModel):
    """Raw generative-text output; callers parse and validate it."""

    text: str
    model: str


class RedirectSession(BaseModel):
    """Hosted payment page to redirect the user to."""

    id: str
    url: str


# Geocode results are plain Location values.
GeocodeResults = list[Location]
