from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.db.models import User
from app.models.schemas import SummarizeRequest, SummarizeResponse
from app.services.analysis_service import summarize_text
from app.services.auth_dependencies import get_current_user

router = APIRouter(prefix="/api", tags=["summarize"])


@router.post("/summarize", response_model=SummarizeResponse)
async def summarize(payload: SummarizeRequest, user: User = Depends(get_current_user)) -> SummarizeResponse:
    _ = user
    try:
        summary = summarize_text(payload.text)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SummarizeResponse(summary=summary)
