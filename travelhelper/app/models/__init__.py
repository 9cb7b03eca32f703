"""Models package - re-exports for convenience."""

from travelhelper.app.models.chat import (
    ChatMessage,
    ChatSession,
    MessageRole,
    MessageType,
    TurnResult,
)
from travelhelper.app.models.common import Location, Provenance
from travelhelper.app.models.itinerary import (
    FallbackItinerary,
    GeneratedItinerary,
    ParsedItinerary,
)
from travelhelper.app.models.providers import (
    Attraction,
    FlightOffer,
    GeneratedText,
    HotelOffer,
    RedirectSession,
    Restaurant,
    RoutePlan,
    SafetyReport,
    WeatherReport,
)
from travelhelper.app.models.trip import (
    Activity,
    ActivityType,
    DayPlan,
    TravelPreferences,
    Trip,
    TripCreate,
    TripStatus,
    TripUpdate,
)
from travelhelper.app.models.user import PlanTier, Profile, ProfileUpdate

__all__ = [
    # Common
    "Location",
    "Provenance",
    # Trips
    "Trip",
    "TripCreate",
    "TripUpdate",
    "TripStatus",
    "TravelPreferences",
    "DayPlan",
    "Activity",
    "ActivityType",
    # Chat
    "ChatSession",
    "ChatMessage",
    "MessageRole",
    "MessageType",
    "TurnResult",
    # Users
    "Profile",
    "ProfileUpdate",
    "PlanTier",
    # Providers
    "FlightOffer",
    "HotelOffer",
    "Restaurant",
    "Attraction",
    "WeatherReport",
    "SafetyReport",
    "RoutePlan",
    "GeneratedText",
    "RedirectSession",
    # Itineraries
    "ParsedItinerary",
    "FallbackItinerary",
    "GeneratedItinerary",
]
