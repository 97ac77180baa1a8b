"""Goal router - per-goal actions during planning and review."""
from fastapi import APIRouter, Depends

from standup.database import get_database
from standup.exceptions import StandupError
from standup.models.goal import Goal, GoalNote, GoalNoteCreate, GoalPriorityUpdate, GoalStatusUpdate
from standup.models.profile import ReviewResult
from standup.models.reschedule import RescheduleCreate, RescheduleRecord
from standup.routers.deps import get_current_user_id
from standup.routers.errors import to_http_exception
from standup.services.lifecycle_service import LifecycleService


router = APIRouter(prefix="/goals", tags=["goals"])


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Delete a goal.

    - Deleting a goal that does not exist succeeds with deleted_count 0
    """
    service = LifecycleService(db)
    try:
        deleted = await service.delete_goal(user_id=user_id, goal_id=goal_id)
    except StandupError as e:
        raise to_http_exception(e)
    return {"deleted_count": 1 if deleted else 0}


@router.patch("/{goal_id}/status", response_model=Goal)
async def change_status(
    goal_id: str,
    status_update: GoalStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Change a goal's status while its day is open."""
    service = LifecycleService(db)
    try:
        return await service.change_status(user_id=user_id, goal_id=goal_id, status=status_update.status)
    except StandupError as e:
        raise to_http_exception(e)


@router.patch("/{goal_id}/priority", response_model=Goal)
async def change_priority(
    goal_id: str,
    priority_update: GoalPriorityUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Change a goal's priority.

    - Priority 1 on one of the first three goals demotes the previous one to 2
    """
    service = LifecycleService(db)
    try:
        return await service.change_priority(
            user_id=user_id, goal_id=goal_id, priority=priority_update.priority
        )
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{goal_id}/review", response_model=ReviewResult)
async def toggle_review(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Mark a goal reviewed, or pending again.

    - The goal must have left not_started before it can be reviewed
    - Closes the day when nothing acted on is left unreviewed
    """
    service = LifecycleService(db)
    try:
        return await service.toggle_review(user_id=user_id, goal_id=goal_id)
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{goal_id}/reschedule", response_model=RescheduleRecord, status_code=201)
async def reschedule_goal(
    goal_id: str,
    reschedule: RescheduleCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Move a reviewed goal to a later day.

    - The goal is marked postponed
    - It appears on the target day when that day is opened
    """
    service = LifecycleService(db)
    try:
        return await service.reschedule_goal(
            user_id=user_id,
            goal_id=goal_id,
            to_date=reschedule.to_date,
            reason=reschedule.reason,
        )
    except StandupError as e:
        raise to_http_exception(e)


@router.get("/{goal_id}/notes", response_model=list[GoalNote])
async def list_notes(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List a goal's notes, oldest first."""
    service = LifecycleService(db)
    try:
        return await service.list_goal_notes(user_id=user_id, goal_id=goal_id)
    except StandupError as e:
        raise to_http_exception(e)


@router.post("/{goal_id}/notes", response_model=GoalNote, status_code=201)
async def add_note(
    goal_id: str,
    note: GoalNoteCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Attach a note to a goal."""
    service = LifecycleService(db)
    try:
        return await service.add_goal_note(user_id=user_id, goal_id=goal_id, note=note.note)
    except StandupError as e:
        raise to_http_exception(e)
