from __future__ import annotations

import json

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.db.models import User
from app.db.session import get_db
from app.models.schemas import ExtractionResult, UploadResponse
from app.observability.extraction import instrument_pdf_extraction
from app.services import pdf_service
from app.services.auth_dependencies import get_current_user
from app.services.document_service import (
    DocumentRejectedError,
    check_upload,
    create_document_record,
    extract_upload_text,
    process_document_task,
)

router = APIRouter(prefix="/api", tags=["upload"])


def _parse_interests(raw: str | None) -> list[str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Invalid form data") from exc
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise HTTPException(status_code=400, detail="Invalid form data")
    return value


@router.post("/documents/upload", response_model=UploadResponse)
async def upload_document(
    file: UploadFile,
    background_tasks: BackgroundTasks,
    zip_code: str | None = Form(default=None, alias="zipCode"),
    interests: str | None = Form(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UploadResponse:
    interest_list = _parse_interests(interests)
    content = await file.read()
    filename = file.filename or ""

    try:
        safe_name = check_upload(filename, content)
        # Extraction is CPU-bound regex work over the whole buffer.
        text, page_count = await run_in_threadpool(extract_upload_text, safe_name, file.content_type, content)
    except DocumentRejectedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    metadata = create_document_record(
        db=db,
        user=user,
        filename=safe_name,
        content=content,
        text=text,
        page_count=page_count,
        zip_code=zip_code,
        interests=interest_list,
    )

    background_tasks.add_task(process_document_task, str(user.id), metadata.id)
    return UploadResponse(document=metadata)


@router.post("/pdf/extract", response_model=ExtractionResult, response_model_exclude_none=True)
async def extract_pdf(file: UploadFile, user: User = Depends(get_current_user)) -> ExtractionResult:
    """Run the text extractor on an uploaded PDF without storing anything."""
    _ = user
    content = await file.read()
    if pdf_service.detect_suspicious_buffer(content):
        raise HTTPException(status_code=400, detail="Invalid file upload: received file path instead of file content")

    return await run_in_threadpool(
        instrument_pdf_extraction,
        filename=file.filename or "upload.pdf",
        fn=lambda: pdf_service.extract_text_from_pdf(content),
    )
