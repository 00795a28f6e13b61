from typing import Any
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.models.user import User
from karaoke.schemas.user import UserCreate, UserRead
from karaoke.services.users import UserService

router = APIRouter()

@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    *,
    user_in: UserCreate,
    users: UserService = Depends(deps.get_users),
) -> Any:
    """
    Create the profile used on this device.
    """
    return await users.create(user_in.display_name, user_in.avatar_emoji)

@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(deps.get_current_user)) -> Any:
    return current_user

@router.post("/me/heartbeat", response_model=UserRead)
async def heartbeat(
    current_user: User = Depends(deps.get_current_user),
    users: UserService = Depends(deps.get_users),
) -> Any:
    """Refresh last_seen."""
    return await users.touch(current_user.id)
