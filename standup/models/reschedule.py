"""Reschedule record model definitions."""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class RescheduleCreate(BaseModel):
    """Reschedule request."""

    to_date: date
    reason: Optional[str] = None


class RescheduleRecord(BaseModel):
    """Intent to move a goal to another day, with a snapshot of its content."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    from_goal_id: str
    from_date: date
    to_date: date
    reason: Optional[str] = None
    materialized: bool = False
    materialized_goal_id: Optional[str] = None
    materialized_at: Optional[datetime] = None
    snapshot_title: str
    snapshot_details: Optional[str] = None
    snapshot_priority: int = 3
    created_at: datetime

    model_config = {"populate_by_name": True}
