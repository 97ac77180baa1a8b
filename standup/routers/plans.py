"""Plan router - opening, saving, submitting and closing days."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from standup.database import get_database
from standup.exceptions import StandupError
from standup.models.goal import Goal, GoalInput
from standup.models.plan import (
    DailyPlan,
    DaySummary,
    GateStatus,
    PlanWithGoals,
    ReopenRequest,
    SubmitRequest,
)
from standup.models.profile import AwardResult
from standup.routers.deps import get_current_user_id
from standup.routers.errors import to_http_exception
from standup.services.lifecycle_service import LifecycleService


router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("", response_model=list[DaySummary])
async def calendar(
    start: date = Query(..., description="First day (inclusive)"),
    end: date = Query(..., description="Last day (inclusive)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Summaries of the planned days in a date range.

    - Requires authentication
    - Days without a plan are omitted
    """
    service = LifecycleService(db)
    try:
        return await service.calendar(user_id=user_id, start=start, end=end)
    except StandupError as e:
        raise to_http_exception(e)


@router.get("/gate/{plan_date}", response_model=GateStatus)
async def gate_status(
    plan_date: date,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Whether the day before plan_date has been reviewed.

    - Open when the previous day has no plan
    """
    service = LifecycleService(db)
    return await service.gate_status(user_id=user_id, plan_date=plan_date)


@router.get("/{plan_date}", response_model=PlanWithGoals)
async def open_plan(
    plan_date: date,
    today: Optional[date] = Query(None, description="Reference date for the gate (defaults to the server date)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Open the plan for a date, creating it on first access.

    - Requires authentication
    - Future dates return 409 while the previous day is unreviewed
    - Goals rescheduled onto this date are added to it
    """
    service = LifecycleService(db)
    try:
        return await service.open_plan(user_id=user_id, plan_date=plan_date, today=today)
    except StandupError as e:
        raise to_http_exception(e)


@router.get("/{plan_id}/goals", response_model=list[Goal])
async def list_goals(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List a plan's goals in slot order."""
    service = LifecycleService(db)
    try:
        return await service.list_goals(user_id=user_id, plan_id=plan_id)
    except StandupError as e:
        raise to_http_exception(e)


@router.put("/{plan_id}/goals", response_model=list[Goal])
async def save_goals(
    plan_id: str,
    goals: list[GoalInput],
    today: Optional[date] = Query(None, description="Reference date for the gate (defaults to the server date)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Save goal slots.

    - Slots with an id are updated, slots without one are inserted
    - Empty titles are ignored
    - Returns the plan's goals as stored
    """
    service = LifecycleService(db)
    try:
        return await service.save_goals(user_id=user_id, plan_id=plan_id, goals=goals, today=today)
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{plan_id}/submit", response_model=DailyPlan)
async def submit_plan(
    plan_id: str,
    request: Optional[SubmitRequest] = None,
    today: Optional[date] = Query(None, description="Reference date for the gate (defaults to the server date)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Submit a plan.

    - The first three slots must have titles
    - Returns 422 naming the first empty slot
    """
    service = LifecycleService(db)
    try:
        return await service.submit_plan(
            user_id=user_id,
            plan_id=plan_id,
            goals=request.goals if request else None,
            today=today,
        )
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{plan_id}/lock", response_model=DailyPlan)
async def lock_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Make a submitted plan read-only."""
    service = LifecycleService(db)
    try:
        return await service.lock_plan(user_id=user_id, plan_id=plan_id)
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{plan_id}/reopen", response_model=DailyPlan)
async def reopen_plan(
    plan_id: str,
    request: Optional[ReopenRequest] = None,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Reopen a closed day.

    - Re-gates the following day
    - Points already earned are kept
    - Recorded in the plan's reopen history
    """
    service = LifecycleService(db)
    try:
        return await service.reopen_plan(
            user_id=user_id,
            plan_id=plan_id,
            reason=request.reason if request else None,
        )
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{plan_id}/awareness", response_model=AwardResult)
async def award_awareness(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Award awareness points for the plan.

    - Safe to call on every open; pays at most once per plan
    """
    service = LifecycleService(db)
    try:
        return await service.award_awareness(user_id=user_id, plan_id=plan_id)
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{plan_id}/closure", response_model=AwardResult)
async def award_closure(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Close the day.

    - Every goal that was acted on must be reviewed
    - Pays closure points at most once per plan
    - Unlocks planning the next day
    """
    service = LifecycleService(db)
    try:
        return await service.award_closure(user_id=user_id, plan_id=plan_id)
    except StandupError as e:
        raise to_http_exception(e)
