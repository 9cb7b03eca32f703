"""Prompt builders for the assistant reply and itinerary generation."""

from collections.abc import Sequence

from travelhelper.app.models.chat import ChatMessage
from travelhelper.app.models.trip import Trip

ASSISTANT_NAME = "TravelHelperAI"


def build_trip_context(trip: Trip) -> str:
    """Render the trip fields the assistant should take into account."""
    prefs = trip.preferences.model_dump(mode="json", exclude_defaults=True)
    lines = [
        "Current Trip Context:",
        f"- Destination: {trip.destination or 'not decided yet'}",
        f"- Dates: {trip.start_date or 'unset'} to {trip.end_date or 'unset'}",
        f"- Budget: ${trip.budget:g}",
        f"- Travelers: {trip.travelers}",
        f"- Status: {trip.status.value}",
    ]
    if prefs:
        lines.append(f"- Preferences: {prefs}")
    return "\n".join(lines)


def build_chat_prompt(
    message: str, history: Sequence[ChatMessage], trip: Trip | None = None
) -> str:
    """Build the prompt for the main conversational reply.

    Args:
        message: Current user turn
        history: Recent session messages, oldest first (current turn excluded)
        trip: Trip the session is tied to, if any

    Returns:
        Rendered prompt
    """
    sections = [
        f"You are {ASSISTANT_NAME}, an expert travel planning assistant. You help users plan "
        "trips with personalized recommendations, real-time data, and practical advice."
    ]

    if trip is not None:
        sections.append(build_trip_context(trip))

    if history:
        conversation = "\n".join(f"{m.role.value}: {m.content}" for m in history)
        sections.append(f"Recent conversation:\n{conversation}")

    sections.append(f"Current user message: {message}")
    sections.append(
        "Please provide a helpful, engaging response that:\n"
        "1. Addresses the user's specific question or request\n"
        "2. Offers practical travel advice and recommendations\n"
        "3. Considers their budget, preferences, and trip context\n"
        "4. Suggests next steps or follow-up questions when appropriate\n"
        "5. Maintains a friendly, professional tone"
    )
    return "\n\n".join(sections)


def build_itinerary_prompt(trip: Trip, duration: int) -> str:
    """Build the structured-output prompt for a day-by-day itinerary."""
    interests = ", ".join(trip.preferences.interests) or "general sightseeing"
    style = trip.preferences.travel_style.value if trip.preferences.travel_style else "comfort"
    start = trip.start_date.isoformat() if trip.start_date else "flexible"

    return f"""Create a detailed {duration}-day travel itinerary for {trip.destination}.

Trip Details:
- Destination: {trip.destination}
- Duration: {duration} days
- Budget: ${trip.budget:g} total
- Number of travelers: {trip.travelers}
- Travel style: {style}
- Interests: {interests}
- Start date: {start}

Please provide a day-by-day itinerary with daily activities and time slots,
restaurant recommendations for meals, transportation between locations,
estimated costs for each activity, and practical and safety tips.

Respond with a single JSON object and nothing else, using this exact structure:
{{
  "days": [
    {{
      "day": 1,
      "date": "YYYY-MM-DD",
      "activities": [
        {{
          "name": "Activity Name",
          "type": "attraction | experience | tour | rest | meal | transport",
          "description": "Detailed description",
          "timeSlot": "09:00-11:00",
          "duration": 120,
          "cost": 25,
          "rating": 4.5,
          "location": {{"name": "Location Name", "address": "Full address", "lat": 0.0, "lng": 0.0}},
          "tips": ["Tip 1", "Tip 2"]
        }}
      ],
      "budget": 150,
      "notes": "Daily notes and tips"
    }}
  ],
  "totalCost": 1000,
  "tips": ["General trip tips"],
  "safetyNotes": ["Safety recommendations"]
}}

Return exactly {duration} days. Keep all costs realistic and within the total budget."""
