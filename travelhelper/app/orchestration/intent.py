"""Intent detection for chat turns.

Keyword substring matching is a heuristic; it sits behind the IntentDetector
protocol so the orchestrator does not depend on how intents are found.
"""

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Protocol

from travelhelper.app.config import Settings


class Intent(str, Enum):
    """Data lookups a chat turn can ask for, in dispatch order."""

    flights = "flights"
    hotels = "hotels"
    restaurants = "restaurants"
    weather = "weather"


class IntentDetector(Protocol):
    """Decides which data lookups a turn needs."""

    def detect(self, text: str, prior_reply: str | None = None) -> list[Intent]:
        """Return matched intents in dispatch order (flights, hotels, restaurants, weather)."""
        ...


class KeywordIntentDetector:
    """Case-insensitive substring match against per-intent keyword sets."""

    def __init__(self, keywords: dict[Intent, Sequence[str]]) -> None:
        self._keywords = {intent: [k.lower() for k in words] for intent, words in keywords.items()}

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeywordIntentDetector":
        return cls(
            {
                Intent.flights: settings.flight_keywords,
                Intent.hotels: settings.hotel_keywords,
                Intent.restaurants: settings.restaurant_keywords,
                Intent.weather: settings.weather_keywords,
            }
        )

    def detect(self, text: str, prior_reply: str | None = None) -> list[Intent]:
        haystack = f"{text}\n{prior_reply or ''}".lower()
        return [
            intent
            for intent in Intent
            if any(keyword in haystack for keyword in self._keywords.get(intent, ()))
        ]


def matches_itinerary_trigger(text: str, triggers: Iterable[str]) -> bool:
    """Check combined turn text against itinerary trigger phrases.

    A trigger is either a phrase matched as a substring ("day by day") or a
    ``+``-joined word set matched when every word appears ("plan+trip").
    """
    lowered = text.lower()
    for trigger in triggers:
        words = [w.strip() for w in trigger.lower().split("+") if w.strip()]
        if words and all(word in lowered for word in words):
            return True
    return False
