"""Short human-readable digests of provider results for chat messages."""

from dataclasses import dataclass
from typing import Any

from travelhelper.app.models.providers import (
    FlightOffer,
    HotelOffer,
    Restaurant,
    WeatherReport,
)
from travelhelper.app.providers.gateway import ProviderKind, ProviderResult


@dataclass(frozen=True)
class Digest:
    """Content and metadata for one summary message."""

    content: str
    metadata: dict[str, Any]


def _flight_line(offer: FlightOffer) -> str:
    return (
        f"- {offer.airline}: {offer.departure.iata_code} -> {offer.arrival.iata_code}, "
        f"departs {offer.departure.at}, {offer.price} {offer.currency}"
    )


def _hotel_line(offer: HotelOffer) -> str:
    return f"- {offer.name} ({offer.rating:g}★): {offer.price} {offer.currency} per night"


def _restaurant_line(place: Restaurant) -> str:
    rating = f" ({place.rating:g}★)" if place.rating is not None else ""
    price = f", {'$' * place.price_level}" if place.price_level else ""
    return f"- {place.name}{rating}: {place.category}{price}"


def _weather_lines(report: WeatherReport) -> list[str]:
    current = report.current
    lines = [f"- Now: {current.temperature_c:g}°C, {current.condition}"]
    lines.extend(
        f"- {entry.date}: {entry.temperature_c:g}°C, {entry.condition}"
        for entry in report.forecast
    )
    return lines


_HEADERS = {
    ProviderKind.flights: "✈️ Flight options",
    ProviderKind.hotels: "🏨 Places to stay",
    ProviderKind.restaurants: "🍽️ Restaurant picks",
    ProviderKind.weather: "🌤️ Weather",
}


def build_digest(result: ProviderResult[Any], destination: str, top_n: int = 3) -> Digest | None:
    """Digest the top ``top_n`` results, one line each.

    Returns:
        Digest, or None when the result carries nothing to show
    """
    if result.kind is ProviderKind.weather:
        lines = _weather_lines(result.data)
    elif result.kind is ProviderKind.flights:
        lines = [_flight_line(o) for o in result.data]
    elif result.kind is ProviderKind.hotels:
        lines = [_hotel_line(o) for o in result.data]
    elif result.kind is ProviderKind.restaurants:
        lines = [_restaurant_line(p) for p in result.data]
    else:
        raise ValueError(f"No digest format for {result.kind.value}")

    lines = lines[:top_n]
    if not lines:
        return None

    header = f"{_HEADERS[result.kind]} for {destination}:"
    return Digest(
        content="\n".join([header, *lines]),
        metadata={
            "kind": result.kind.value,
            "source": result.source,
            "fallback_reason": result.fallback_reason,
            "results": len(lines),
        },
    )
