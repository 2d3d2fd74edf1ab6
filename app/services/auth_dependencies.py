from __future__ import annotations

import uuid

import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.models import User
from app.db.session import get_db
from app.services.auth_service import decode_session_token


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    session_cookie = request.cookies.get(get_settings().jwt_cookie_name)
    if not session_cookie:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = decode_session_token(session_cookie)
        user_uuid = uuid.UUID(str(payload.get("sub")))
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(status_code=401, detail="Invalid session") from exc

    user = db.execute(select(User).where(User.id == user_uuid)).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user
