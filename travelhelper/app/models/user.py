"""User profile models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PlanTier(str, Enum):
    """Subscription plan."""

    free = "free"
    pro = "pro"


class Profile(BaseModel):
    """Public view of a user profile."""

    id: UUID
    email: str
    name: str = ""
    avatar_url: str | None = None
    plan: PlanTier = PlanTier.free
    stripe_customer_id: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Editable profile fields."""

    name: str | None = Field(None, min_length=1)
    avatar_url: str | None = None

    @field_validator("name")
    @classmethod
    def reject_null_name(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("name cannot be null")
        return v

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)
