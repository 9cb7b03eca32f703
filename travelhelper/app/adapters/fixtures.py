"""Deterministic fallback payloads for every data provider kind.

Fallbacks are built only from the call parameters and the JSON fixtures, so
two calls with identical parameters return identical payloads.
"""

import json
import math
import zlib
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any

from travelhelper.app.models.common import Location
from travelhelper.app.models.providers import (
    Attraction,
    FlightEndpoint,
    FlightOffer,
    FlightSearchParams,
    ForecastEntry,
    GeneratedText,
    GeocodeParams,
    HotelOffer,
    HotelSearchParams,
    PlaceSearchParams,
    Restaurant,
    RouteLeg,
    RouteParams,
    RoutePlan,
    SafetyAlert,
    SafetyParams,
    SafetyReport,
    TextGenerationParams,
    WeatherParams,
    WeatherReport,
    WeatherSnapshot,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

FALLBACK_MODEL = "fallback"

_CHAT_REPLIES = (
    "I'd be happy to help you get ready for {destination}! Based on your message about "
    '"{message}", what matters most to you on this journey: sights, dining out, or relaxing?',
    "That sounds like an exciting destination! To tailor my suggestions for {destination}, "
    "could you share your budget, travel dates, and the activities you enjoy most?",
    "Great question! I can help with getting to {destination}, where to stay, local "
    "attractions, and safety tips. What's your approximate budget and how many days are "
    "you staying?",
)

# Average door-to-door speeds (km/h) for route estimates
_MODE_SPEEDS_KMH = {
    "walking": 5.0,
    "bicycling": 15.0,
    "transit": 25.0,
    "driving": 40.0,
}


@lru_cache
def load_fixture(name: str) -> dict[str, Any]:
    """Load and cache a fixture file by stem (e.g. "flights")."""
    with open(FIXTURES_DIR / f"{name}.json") as f:
        data: dict[str, Any] = json.load(f)
    return data


def lookup_city(name: str) -> dict[str, Any] | None:
    """Look up a known city by free-text name ("Rome, Italy" -> rome)."""
    key = name.split(",")[0].strip().lower()
    return load_fixture("cities").get(key)


def parse_coordinates(value: str) -> tuple[float, float] | None:
    """Parse a "lat,lng" string, or resolve a known city name to coordinates."""
    parts = [p.strip() for p in value.split(",")]
    if len(parts) == 2:
        try:
            return float(parts[0]), float(parts[1])
        except ValueError:
            pass
    city = lookup_city(value)
    if city is None:
        return None
    return city["latitude"], city["longitude"]


def haversine_km(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance between two (lat, lng) pairs in kilometres."""
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 6371 * 2 * math.asin(math.sqrt(h))


def fallback_flights(params: FlightSearchParams) -> list[FlightOffer]:
    """Fallback flight offers for the requested route and date."""
    offers = []
    for raw in load_fixture("flights")["offers"]:
        offers.append(
            FlightOffer(
                id=raw["id"],
                price=raw["price"],
                currency=raw["currency"],
                airline=raw["airline"],
                departure=FlightEndpoint(
                    iata_code=params.origin,
                    at=f"{params.departure_date}T{raw['departure_time']}",
                ),
                arrival=FlightEndpoint(
                    iata_code=params.destination,
                    at=f"{params.departure_date}T{raw['arrival_time']}",
                ),
                duration=raw["duration"],
                booking_url=raw["booking_url"],
            )
        )
    return offers


def fallback_hotels(params: HotelSearchParams) -> list[HotelOffer]:
    return [
        HotelOffer(
            id=raw["id"],
            name=raw["name"],
            rating=raw["rating"],
            price=raw["price"],
            currency=raw["currency"],
            address=raw["address_template"].format(city=params.city_code),
            amenities=list(raw["amenities"]),
            booking_url=raw["booking_url"],
        )
        for raw in load_fixture("hotels")["offers"]
    ]


def fallback_restaurants(params: PlaceSearchParams) -> list[Restaurant]:
    return [
        Restaurant(
            id=raw["id"],
            name=raw["name"],
            category=raw["category"],
            rating=raw["rating"],
            price_level=raw["price_level"],
            address=raw["address_template"].format(location=params.location),
            photos=list(raw["photos"]),
        )
        for raw in load_fixture("restaurants")["places"]
    ]


def fallback_attractions(params: PlaceSearchParams) -> list[Attraction]:
    return [
        Attraction(
            id=raw["id"],
            name=raw["name"],
            rating=raw["rating"],
            description=raw["description"],
            address=raw["address_template"].format(location=params.location),
            photos=list(raw["photos"]),
        )
        for raw in load_fixture("attractions")["places"]
    ]


def fallback_weather(params: WeatherParams) -> WeatherReport:
    """Fallback forecast; dates are fixed so the payload never depends on the clock."""
    data = load_fixture("weather")
    start = date.fromisoformat(data["forecast_start"])
    return WeatherReport(
        current=WeatherSnapshot(**data["current"]),
        forecast=[
            ForecastEntry(
                date=(start + timedelta(days=entry["day_offset"])).isoformat(),
                temperature_c=entry["temperature_c"],
                condition=entry["condition"],
                precipitation=entry["precipitation"],
            )
            for entry in data["forecast"]
        ],
    )


def fallback_safety(params: SafetyParams) -> SafetyReport:
    data = load_fixture("safety")
    return SafetyReport(
        safety_level=data["safety_level"],
        alerts=[SafetyAlert(**alert) for alert in data["alerts"]],
        recommendations=list(data["recommendations"]),
    )


def fallback_geocode(params: GeocodeParams) -> list[Location]:
    """Resolve well-known cities from fixtures; unknown addresses yield no results."""
    city = lookup_city(params.address)
    if city is None:
        return []
    return [
        Location(
            name=city["name"],
            address=f"{city['name']}, {city['country']}",
            latitude=city["latitude"],
            longitude=city["longitude"],
        )
    ]


def fallback_route(params: RouteParams) -> RoutePlan:
    """Straight-line route estimate using mode-specific average speeds.

    Legs whose endpoints cannot be resolved to coordinates count as zero
    distance.
    """
    stops = [params.origin, *params.waypoints, params.destination]
    speed_kmh = _MODE_SPEEDS_KMH.get(params.mode, _MODE_SPEEDS_KMH["driving"])

    legs = []
    for start, end in zip(stops, stops[1:]):
        a = parse_coordinates(start)
        b = parse_coordinates(end)
        distance_km = haversine_km(a, b) if a is not None and b is not None else 0.0
        legs.append(
            RouteLeg(
                start=start,
                end=end,
                distance_meters=int(distance_km * 1000),
                duration_seconds=int(distance_km / speed_kmh * 3600),
            )
        )

    return RoutePlan(
        mode=params.mode,
        distance_meters=sum(leg.distance_meters for leg in legs),
        duration_seconds=sum(leg.duration_seconds for leg in legs),
        legs=legs,
    )


def fallback_chat_reply(params: TextGenerationParams) -> GeneratedText:
    """Canned assistant reply, chosen by a stable hash of the user's message."""
    message = params.message or params.prompt
    index = zlib.crc32(message.encode("utf-8")) % len(_CHAT_REPLIES)
    snippet = message if len(message) <= 80 else message[:77] + "..."
    text = _CHAT_REPLIES[index].format(
        destination=params.destination.strip() or "your destination",
        message=snippet,
    )
    return GeneratedText(text=text, model=FALLBACK_MODEL)


def fallback_itinerary_text(params: TextGenerationParams) -> GeneratedText:
    """Empty itinerary text; the itinerary generator substitutes its template."""
    return GeneratedText(text="", model=FALLBACK_MODEL)
