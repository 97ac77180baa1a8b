"""Profile router - point total and display name."""
from fastapi import APIRouter, Depends

from standup.database import get_database
from standup.models.profile import Profile, ProfileUpdate
from standup.routers.deps import get_current_user_id
from standup.services.lifecycle_service import LifecycleService


router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=Profile)
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get the caller's profile, creating it on first access."""
    service = LifecycleService(db)
    return await service.get_profile(user_id=user_id)


@router.patch("", response_model=Profile)
async def update_profile(
    profile_update: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Update the caller's display name."""
    service = LifecycleService(db)
    return await service.update_profile(user_id=user_id, profile_update=profile_update)
