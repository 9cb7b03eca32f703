"""Generated itinerary models.

Generative output is untyped text, so the generator returns a tagged result:
either the provider's itinerary after validation and repair, or the
deterministic template used when the provider's answer could not be used.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from travelhelper.app.models.trip import DayPlan


class ParsedItinerary(BaseModel):
    """Itinerary built from the provider's structured answer."""

    source: Literal["provider"] = "provider"
    days: list[DayPlan]
    total_cost: float | None = None
    tips: list[str] = Field(default_factory=list)
    safety_notes: list[str] = Field(default_factory=list)
    repaired_fields: int = 0


class FallbackItinerary(BaseModel):
    """Deterministic template itinerary (one attraction and one meal per day)."""

    source: Literal["template"] = "template"
    days: list[DayPlan]
    reason: str
    tips: list[str] = Field(default_factory=list)
    safety_notes: list[str] = Field(default_factory=list)


GeneratedItinerary = Annotated[
    ParsedItinerary | FallbackItinerary, Field(discriminator="source")
]
