"""Turn generated itinerary text into validated day plans.

Generative providers give no structured-output guarantee. Fenced or chatty
answers are reduced to their outermost JSON object and individual fields are
repaired where a safe default exists. Text that cannot yield at least one day
raises GenerationFailedError and the caller falls back to the template.
"""

import json
import logging
import math
import re
from datetime import date, timedelta
from typing import Any

from travelhelper.app.adapters.fixtures import lookup_city
from travelhelper.app.errors import GenerationFailedError
from travelhelper.app.models.common import Location
from travelhelper.app.models.itinerary import FallbackItinerary, ParsedItinerary
from travelhelper.app.models.trip import Activity, ActivityType, DayPlan, Trip

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

DEFAULT_ACTIVITY_MINUTES = 60

TEMPLATE_TIPS = [
    "Book popular attractions in advance to skip the queues.",
    "Keep a copy of your travel documents separate from the originals.",
]
TEMPLATE_SAFETY_NOTES = [
    "Keep valuables secure in crowded areas.",
    "Use licensed taxis or official ride-share apps.",
]


def day_budget(total_budget: float, duration: int) -> float:
    """Default per-day budget: floor(total / duration)."""
    return float(math.floor(total_budget / max(1, duration)))


def extract_json_object(text: str) -> dict[str, Any]:
    """Extract the outermost JSON object from free-form model output.

    Raises:
        GenerationFailedError: No JSON object could be decoded
    """
    fenced = _FENCE_RE.search(text)
    candidate = fenced.group(1) if fenced else text

    match = _OBJECT_RE.search(candidate)
    if match is None:
        raise GenerationFailedError("No JSON object found in generated text")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationFailedError(f"Generated JSON is invalid: {e.msg}") from e

    if not isinstance(data, dict):
        raise GenerationFailedError("Generated JSON is not an object")
    return data


class _Repairs:
    """Counter of fields replaced by a default during parsing."""

    def __init__(self) -> None:
        self.count = 0

    def hit(self) -> None:
        self.count += 1


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, str | int | float) and str(v).strip()]


def _parse_location(raw: Any, repairs: _Repairs) -> Location:
    if not isinstance(raw, dict):
        return Location()

    lat = _number(raw.get("lat", raw.get("latitude")))
    lng = _number(raw.get("lng", raw.get("longitude")))
    if lat is not None and not -90 <= lat <= 90:
        repairs.hit()
        lat = None
    if lng is not None and not -180 <= lng <= 180:
        repairs.hit()
        lng = None

    return Location(
        name=str(raw.get("name") or ""),
        address=str(raw.get("address") or ""),
        latitude=lat,
        longitude=lng,
    )


def _parse_activity(raw: Any, repairs: _Repairs) -> Activity | None:
    if not isinstance(raw, dict):
        repairs.hit()
        return None

    name = str(raw.get("name") or "").strip()
    if not name:
        repairs.hit()
        return None

    try:
        activity_type = ActivityType(str(raw.get("type", "")).lower())
    except ValueError:
        repairs.hit()
        activity_type = ActivityType.attraction

    duration = _number(raw.get("duration"))
    if duration is None or duration <= 0:
        repairs.hit()
        duration = DEFAULT_ACTIVITY_MINUTES

    cost = _number(raw.get("cost"))
    if cost is None or cost < 0:
        repairs.hit()
        cost = 0.0

    rating = _number(raw.get("rating"))
    if rating is not None and not 0 <= rating <= 5:
        repairs.hit()
        rating = min(5.0, max(0.0, rating))

    return Activity(
        name=name,
        type=activity_type,
        description=str(raw.get("description") or ""),
        time_slot=str(raw.get("timeSlot") or raw.get("time_slot") or ""),
        duration_minutes=max(1, int(duration)),
        cost=cost,
        rating=rating,
        location=_parse_location(raw.get("location"), repairs),
        booking_url=raw.get("bookingUrl") if isinstance(raw.get("bookingUrl"), str) else None,
        tips=_strings(raw.get("tips")),
    )


def _parse_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _day_date(trip: Trip, index: int) -> date | None:
    if trip.start_date is None:
        return None
    return trip.start_date + timedelta(days=index)


def parse_itinerary(text: str, trip: Trip, duration: int) -> ParsedItinerary:
    """Parse generated text into exactly ``duration`` day plans.

    Days are ordered by their ``day`` field, then truncated to the trip
    duration. When the provider returns fewer days than the duration, the
    remaining days are filled from the template.

    Raises:
        GenerationFailedError: Unusable text or no valid day at all
    """
    data = extract_json_object(text)
    raw_days = data.get("days")
    if not isinstance(raw_days, list):
        raise GenerationFailedError("Generated itinerary has no days array")

    repairs = _Repairs()
    numbered: list[tuple[int, int, dict[str, Any]]] = []
    for index, raw in enumerate(raw_days):
        if not isinstance(raw, dict):
            repairs.hit()
            continue
        day_no = _number(raw.get("day"))
        numbered.append((int(day_no) if day_no is not None else index + 1, index, raw))
    numbered.sort(key=lambda item: (item[0], item[1]))

    per_day = day_budget(trip.budget, duration)
    days: list[DayPlan] = []
    for raw_index, (_, _, raw) in enumerate(numbered[:duration]):
        budget = _number(raw.get("budget"))
        if budget is None or budget < 0:
            budget = per_day

        raw_activities = raw.get("activities")
        if not isinstance(raw_activities, list):
            repairs.hit()
            raw_activities = []
        activities = [
            a for a in (_parse_activity(r, repairs) for r in raw_activities) if a is not None
        ]

        days.append(
            DayPlan(
                day_number=raw_index + 1,
                date=_parse_date(raw.get("date")) or _day_date(trip, raw_index),
                notes=str(raw.get("notes") or ""),
                budget=budget,
                activities=activities,
            )
        )

    if not days:
        raise GenerationFailedError("Generated itinerary contains no usable days")

    if len(numbered) > duration:
        logger.info(
            "Dropped generated days beyond trip duration",
            extra={"structured": {"trip_id": str(trip.id), "dropped": len(numbered) - duration}},
        )

    for index in range(len(days), duration):
        repairs.hit()
        days.append(_template_day(trip, index, per_day))

    total_cost = _number(data.get("totalCost"))
    return ParsedItinerary(
        days=days,
        total_cost=total_cost if total_cost is not None and total_cost >= 0 else None,
        tips=_strings(data.get("tips")),
        safety_notes=_strings(data.get("safetyNotes")),
        repaired_fields=repairs.count,
    )


def _template_location(destination: str, label: str) -> Location:
    city = lookup_city(destination) if destination else None
    if city is None:
        return Location(name=label, address=destination)
    return Location(
        name=label,
        address=f"{city['name']}, {city['country']}",
        latitude=city["latitude"],
        longitude=city["longitude"],
    )


def _template_day(trip: Trip, index: int, per_day: float) -> DayPlan:
    destination = trip.destination.strip() or "your destination"
    half = round(per_day / 2, 2)
    return DayPlan(
        day_number=index + 1,
        date=_day_date(trip, index),
        notes=f"Day {index + 1} in {destination}",
        budget=per_day,
        activities=[
            Activity(
                name=f"Explore {destination}",
                type=ActivityType.attraction,
                description=f"Discover the main sights of {destination}.",
                time_slot="09:00-12:00",
                duration_minutes=180,
                cost=half,
                location=_template_location(trip.destination, f"{destination} city centre"),
            ),
            Activity(
                name=f"Local cuisine in {destination}",
                type=ActivityType.meal,
                description="Lunch at a well-reviewed local restaurant.",
                time_slot="12:30-14:00",
                duration_minutes=90,
                cost=half,
                location=_template_location(trip.destination, f"Restaurant in {destination}"),
            ),
        ],
    )


def build_template_itinerary(trip: Trip, duration: int, reason: str) -> FallbackItinerary:
    """Deterministic itinerary: one attraction and one meal per day.

    Each day's budget is floor(trip budget / duration), split evenly between
    its two activities.
    """
    per_day = day_budget(trip.budget, duration)
    return FallbackItinerary(
        days=[_template_day(trip, index, per_day) for index in range(max(1, duration))],
        reason=reason,
        tips=list(TEMPLATE_TIPS),
        safety_notes=list(TEMPLATE_SAFETY_NOTES),
    )
