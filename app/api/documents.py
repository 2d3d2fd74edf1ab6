from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.models import User
from app.db.session import get_db
from app.models.schemas import (
    DocumentDetail,
    DocumentMetadata,
    DocumentsResponse,
    DocumentStatus,
    ForecastsResponse,
    InsightsResponse,
    SentimentResponse,
)
from app.services import document_service
from app.services.auth_dependencies import get_current_user
from app.services.document_service import DocumentNotFoundError

router = APIRouter(prefix="/api", tags=["documents"])


@router.get("/documents", response_model=DocumentsResponse)
async def get_documents(
    zip_code: str | None = Query(default=None, alias="zipCode"),
    interests: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DocumentsResponse:
    interest_list = [i.strip() for i in interests.split(",") if i.strip()] if interests else None
    docs = document_service.list_documents(db=db, user=user, zip_code=zip_code, interests=interest_list)
    return DocumentsResponse(documents=docs)


@router.get("/documents/{doc_id}", response_model=DocumentDetail)
async def get_document_by_id(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DocumentDetail:
    doc = document_service.get_document(db=db, user=user, doc_id=doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.get("/documents/{doc_id}/status", response_model=DocumentStatus)
async def get_document_status(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DocumentStatus:
    try:
        return document_service.get_status(db=db, user=user, doc_id=doc_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/documents/{doc_id}/insights", response_model=InsightsResponse)
async def get_document_insights(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> InsightsResponse:
    try:
        return InsightsResponse(insights=document_service.get_insights(db=db, user=user, doc_id=doc_id))
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/documents/{doc_id}/forecasts", response_model=ForecastsResponse)
async def get_document_forecasts(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ForecastsResponse:
    try:
        return ForecastsResponse(forecasts=document_service.get_forecasts(db=db, user=user, doc_id=doc_id))
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/documents/{doc_id}/sentiment", response_model=SentimentResponse)
async def get_document_sentiment(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> SentimentResponse:
    try:
        return document_service.get_sentiment(db=db, user=user, doc_id=doc_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/documents/{doc_id}")
async def delete_document(
    doc_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, str]:
    try:
        document_service.delete_document_everywhere(db=db, user=user, doc_id=doc_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "deleted"}


@router.post("/documents/{doc_id}/reprocess", response_model=DocumentMetadata)
async def reprocess_document(
    doc_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DocumentMetadata:
    try:
        doc = document_service.mark_queued(db=db, user=user, doc_id=doc_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    background_tasks.add_task(document_service.process_document_task, str(user.id), doc_id)
    return doc
