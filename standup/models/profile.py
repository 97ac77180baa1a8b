"""Profile and scoring model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from standup.models.goal import Goal


class Profile(BaseModel):
    """Per-user profile holding the point total."""

    id: str = Field(alias="_id", serialization_alias="id")
    display_name: Optional[str] = None
    points: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}


class ProfileUpdate(BaseModel):
    """Profile update model."""

    display_name: Optional[str] = None


class AwardResult(BaseModel):
    """Outcome of an award attempt; awarded=False means nothing was paid."""

    awarded: bool
    new_points: int


class ReviewResult(BaseModel):
    """Toggled goal, plus the closure outcome when the toggle closed the day."""

    goal: Goal
    closure: Optional[AwardResult] = None
