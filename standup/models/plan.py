"""Daily plan model definitions."""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from standup.models.goal import Goal, GoalInput


class PlanStatus(str, Enum):
    """Plan lifecycle states. Transitions only move forward."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    LOCKED = "locked"


class ReopenEntry(BaseModel):
    """Audit entry written each time a closed day is reopened."""

    reopened_at: datetime
    previous_reviewed_at: Optional[datetime] = None
    reason: Optional[str] = None


class DailyPlan(BaseModel):
    """Full plan model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    plan_date: date
    status: PlanStatus = PlanStatus.DRAFT
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    awareness_awarded: bool = False
    closure_awarded: bool = False
    reopen_history: list[ReopenEntry] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def closed(self) -> bool:
        """A day is closed once its review has been stamped."""
        return self.reviewed_at is not None


class PlanWithGoals(BaseModel):
    """An opened plan with its goals, ordered by slot."""

    plan: DailyPlan
    goals: list[Goal]
    materialized: int = 0


class SubmitRequest(BaseModel):
    """Submit request; goals are optional when they were already saved."""

    goals: Optional[list[GoalInput]] = None


class ReopenRequest(BaseModel):
    """Reopen request."""

    reason: Optional[str] = None


class GateStatus(BaseModel):
    """Answer to 'may this date be planned yet?'."""

    plan_date: date
    prior_date: date
    prior_day_reviewed: bool
    blocking_date: Optional[date] = None


class DaySummary(BaseModel):
    """Calendar cell for one planned day."""

    date: date
    plan_id: str
    status: PlanStatus
    goal_count: int
    completed_count: int
    reviewed: bool
