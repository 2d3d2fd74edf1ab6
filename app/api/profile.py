from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.models import User
from app.db.session import get_db
from app.models.schemas import UserProfile, UserProfileResponse
from app.services.auth_dependencies import get_current_user
from app.services.profile_service import get_profile, save_profile

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/user-profile", response_model=UserProfileResponse)
async def read_profile(user: User = Depends(get_current_user)) -> UserProfileResponse:
    return UserProfileResponse(profile=get_profile(user))


@router.post("/user-profile", response_model=UserProfileResponse)
async def write_profile(
    payload: UserProfile,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserProfileResponse:
    try:
        profile = save_profile(db=db, user=user, profile=payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return UserProfileResponse(profile=profile)
