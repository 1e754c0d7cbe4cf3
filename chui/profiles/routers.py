import logging

from fastapi import APIRouter, Depends, HTTPException

from chui.chat.facade import Messenger
from chui.core.dependencies import get_messenger, optional_session, verify_token
from chui.core.errors import ChatError
from chui.core.session import Session

from .schemas import (
    UpsertUsernameModel,
    UpsertUsernameResponseModel,
    ListProfilesResponseModel,
    MyProfileResponseModel,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upsert", response_model=UpsertUsernameResponseModel, status_code=200)
async def upsert_by_username(
    data: UpsertUsernameModel, messenger: Messenger = Depends(get_messenger)
):
    """
    Sign in with a username only, creating the profile on first use.

    **Input**
    - `username`: 3-20 letters/numbers, case insensitive

    **Errors**
    - 422: Invalid username
    - 503: Storage unavailable
    """
    try:
        return await messenger.upsert_by_username(data.username)

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=ListProfilesResponseModel, status_code=200)
async def list_profiles(
    session: Session = Depends(verify_token),
    messenger: Messenger = Depends(get_messenger),
):
    """Directory of every registered user, by username."""
    try:
        return {"profiles": await messenger.list_profiles(session)}

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=MyProfileResponseModel, status_code=200)
async def get_my_profile(
    session: Session | None = Depends(optional_session),
    messenger: Messenger = Depends(get_messenger),
):
    """The caller's own profile, or `null` when not signed in."""
    try:
        return {"profile": await messenger.get_my_profile(session)}

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
