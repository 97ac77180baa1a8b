"""Goal model definitions."""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class GoalStatus(str, Enum):
    """Where a goal stands during its day."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ATTEMPTED = "attempted"
    POSTPONED = "postponed"
    BLOCKED = "blocked"


class GoalInput(BaseModel):
    """
    One slot of a planning save.

    Slots with an id update that goal; slots without one are inserted.
    Fields left as None keep their stored value (or the default on insert).
    """

    id: Optional[str] = None
    title: str = ""
    details: Optional[str] = None
    status: Optional[GoalStatus] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    sort_order: Optional[int] = None


class GoalStatusUpdate(BaseModel):
    """Status change request."""

    status: GoalStatus


class GoalPriorityUpdate(BaseModel):
    """Priority change request."""

    priority: int = Field(ge=1, le=5)


class Goal(BaseModel):
    """Full goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    plan_id: str
    user_id: str
    title: str
    details: Optional[str] = None
    status: GoalStatus = GoalStatus.NOT_STARTED
    priority: int = 3
    sort_order: int = 0
    reviewed_at: Optional[datetime] = None
    reschedule_id: Optional[str] = None
    rescheduled_from_date: Optional[date] = None
    reschedule_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def reviewed(self) -> bool:
        return self.reviewed_at is not None


class GoalNoteCreate(BaseModel):
    """Note creation model."""

    note: str


class GoalNote(BaseModel):
    """A free-text note left on a goal while reviewing it."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    user_id: str
    note: str
    created_at: datetime

    model_config = {"populate_by_name": True}
