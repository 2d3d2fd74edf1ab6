from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.db.models import User
from app.models.schemas import UserProfile

logger = logging.getLogger(__name__)


def get_profile(user: User) -> UserProfile | None:
    if not (user.zip_code and user.city and user.state):
        return None
    return UserProfile(
        zip_code=user.zip_code,
        city=user.city,
        state=user.state,
        interests=list(user.interests or []),
    )


def save_profile(db: Session, user: User, profile: UserProfile) -> UserProfile:
    """Create or replace the resident's location and interests."""
    interests = [i.strip() for i in profile.interests if i.strip()]
    fields = (profile.zip_code.strip(), profile.city.strip(), profile.state.strip())
    if not all(fields) or not interests:
        raise ValueError("Missing required fields")

    user.zip_code, user.city, user.state = fields
    user.interests = interests
    user.profile_updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()

    logger.info("profile.saved", extra={"user_id": str(user.id), "zip_code": user.zip_code})
    return UserProfile(zip_code=user.zip_code, city=user.city, state=user.state, interests=list(user.interests))
