from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings
from app.db.models import Document, DocumentInsight, Forecast, PublicComment, User
from app.db.session import get_engine
from app.models import schemas
from app.observability.extraction import instrument_pdf_extraction
from app.services import analysis_service, pdf_service

_ALLOWED_EXTENSIONS = {".txt", ".md", ".pdf"}
_PDF_CONTENT_TYPE = "application/pdf"

logger = logging.getLogger(__name__)


class DocumentRejectedError(ValueError):
    """Upload refused before anything was stored."""


class DocumentNotFoundError(ValueError):
    """Document does not exist or belongs to another resident."""


def _sanitize_filename(filename: str) -> str:
    base = Path(filename).name
    sanitized = re.sub(r"[^A-Za-z0-9._-]", "_", base)
    return sanitized or "document.txt"


def _title_from_filename(filename: str) -> str:
    base = Path(filename).name
    return re.sub(r"\.[^/.]+$", "", base) or base


def _user_upload_dir(user_id: str) -> Path:
    settings = get_settings()
    path = settings.upload_path / user_id
    path.mkdir(parents=True, exist_ok=True)
    return path


def _to_metadata(doc: Document) -> schemas.DocumentMetadata:
    return schemas.DocumentMetadata(
        id=str(doc.id),
        title=doc.title,
        filename=doc.filename,
        document_type=doc.document_type,
        zip_code=doc.zip_code,
        interests=list(doc.interests or []),
        page_count=doc.page_count,
        uploaded_at=doc.uploaded_at,
        status=doc.status,  # type: ignore[arg-type]
        processed=doc.processed,
        processed_at=doc.processed_at,
        error_message=doc.error_message,
    )


def _to_insight(row: DocumentInsight) -> schemas.Insight:
    return schemas.Insight(
        category=row.category,
        summary=row.summary,
        impact_level=row.impact_level,
        key_points=list(row.key_points or []),
        action_items=list(row.action_items or []),
    )


def is_pdf_upload(filename: str, content_type: str | None) -> bool:
    return content_type == _PDF_CONTENT_TYPE or Path(filename).suffix.lower() == ".pdf"


def extract_upload_text(filename: str, content_type: str | None, content: bytes) -> tuple[str, int | None]:
    """
    Turn uploaded bytes into document text (plus page count for PDFs).

    Raises ``DocumentRejectedError`` with a user-facing message when the bytes
    look like a path, the PDF cannot be read, or a text file is not UTF-8.
    """
    if pdf_service.detect_suspicious_buffer(content):
        logger.warning("upload.suspicious_buffer", extra={"document_name": filename, "buffer_bytes": len(content)})
        raise DocumentRejectedError("Invalid file upload: received file path instead of file content")

    if is_pdf_upload(filename, content_type):
        result = instrument_pdf_extraction(
            filename=filename,
            fn=lambda: pdf_service.extract_text_from_pdf(content),
        )
        if not result.success:
            raise DocumentRejectedError(f"PDF processing failed: {result.error}")

        text = result.text or ""
        if not text.strip():
            raise DocumentRejectedError("PDF file appears to be empty or contains no extractable text")
        return text, result.page_count

    try:
        return content.decode("utf-8"), None
    except UnicodeDecodeError as exc:
        raise DocumentRejectedError("File must be UTF-8 encoded text") from exc


def check_upload(filename: str, content: bytes) -> str:
    """Validate name, extension and size; returns the sanitized filename."""
    if not filename:
        raise DocumentRejectedError("No file uploaded")

    safe_name = _sanitize_filename(filename)
    extension = Path(safe_name).suffix.lower()
    if extension not in _ALLOWED_EXTENSIONS:
        raise DocumentRejectedError("Only .pdf, .txt, and .md files are supported")

    settings = get_settings()
    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise DocumentRejectedError(f"File exceeds {settings.max_upload_size_mb} MB limit")
    return safe_name


def create_document_record(
    db: Session,
    user: User,
    filename: str,
    content: bytes,
    text: str,
    page_count: int | None = None,
    zip_code: str | None = None,
    interests: list[str] | None = None,
) -> schemas.DocumentMetadata:
    """Store the raw upload on disk and persist a queued document row."""
    safe_name = _sanitize_filename(filename)
    doc_id = uuid.uuid4()
    destination = _user_upload_dir(str(user.id)) / f"{doc_id}_{safe_name}"
    destination.write_bytes(content)

    doc = Document(
        id=doc_id,
        user_id=user.id,
        title=_title_from_filename(safe_name),
        filename=safe_name,
        stored_filename=destination.name,
        document_type="uploaded",
        content=text,
        page_count=page_count,
        zip_code=zip_code or user.zip_code,
        interests=list(interests if interests is not None else (user.interests or [])),
        status="queued",
        processed=False,
        uploaded_at=datetime.now(timezone.utc),
    )
    db.add(doc)
    db.commit()

    logger.info(
        "upload.accepted",
        extra={"doc_id": str(doc_id), "document_name": safe_name, "user_id": str(user.id), "text_chars": len(text)},
    )
    return _to_metadata(doc)


def _load_owned(db: Session, user: User, doc_id: str) -> Document:
    try:
        doc_uuid = uuid.UUID(doc_id)
    except ValueError as exc:
        raise DocumentNotFoundError("Document not found") from exc

    doc = db.execute(select(Document).where(Document.id == doc_uuid, Document.user_id == user.id)).scalar_one_or_none()
    if not doc:
        raise DocumentNotFoundError("Document not found")
    return doc


def _clear_analysis(db: Session, doc: Document) -> None:
    db.execute(delete(DocumentInsight).where(DocumentInsight.document_id == doc.id))
    db.execute(delete(Forecast).where(Forecast.document_id == doc.id))
    db.execute(delete(PublicComment).where(PublicComment.document_id == doc.id))


def process_document(db: Session, user: User, doc_id: str) -> schemas.DocumentMetadata:
    """
    Generate insights, forecasts and sample comments for a stored document.

    Re-running replaces earlier analysis. Failures are persisted on the row
    (status ``failed``) instead of being raised.
    """
    doc = _load_owned(db, user, doc_id)

    doc.status = "processing"
    doc.error_message = None
    db.add(doc)
    db.commit()

    logger.info("process.start", extra={"doc_id": doc_id, "document_name": doc.filename, "user_id": str(user.id)})

    try:
        insights = analysis_service.generate_insights(doc.content, list(doc.interests or []))
        forecasts = analysis_service.generate_forecasts(insights)
        comments = analysis_service.sample_public_comments()

        _clear_analysis(db, doc)
        for insight in insights:
            db.add(DocumentInsight(document_id=doc.id, **insight.model_dump()))
        for forecast in forecasts:
            db.add(Forecast(document_id=doc.id, **forecast.model_dump()))
        for position, comment in enumerate(comments):
            db.add(PublicComment(document_id=doc.id, position=position, **comment.model_dump()))

        doc.status = "processed"
        doc.processed = True
        doc.processed_at = datetime.now(timezone.utc)
        db.add(doc)
        db.commit()
        logger.info(
            "process.complete",
            extra={
                "doc_id": doc_id,
                "document_name": doc.filename,
                "insight_count": len(insights),
                "forecast_count": len(forecasts),
                "user_id": str(user.id),
            },
        )
    except Exception as exc:  # noqa: BLE001 - persist failure for the status endpoint
        db.rollback()
        doc.status = "failed"
        doc.processed = False
        doc.error_message = str(exc) or exc.__class__.__name__
        db.add(doc)
        db.commit()
        logger.exception("process.failed", extra={"doc_id": doc_id, "document_name": doc.filename, "user_id": str(user.id)})

    return _to_metadata(doc)


def process_document_task(user_id: str, doc_id: str) -> None:
    """
    BackgroundTasks entrypoint: create a new DB session, load user, process.
    """
    if not get_settings().enable_analysis:
        logger.info("process.skipped", extra={"doc_id": doc_id, "user_id": user_id})
        return

    engine = get_engine()
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with SessionLocal() as db:
        user = db.execute(select(User).where(User.id == uuid.UUID(user_id))).scalar_one()
        process_document(db=db, user=user, doc_id=doc_id)


def list_documents(
    db: Session,
    user: User,
    zip_code: str | None = None,
    interests: list[str] | None = None,
) -> list[schemas.DocumentMetadata]:
    stmt = select(Document).where(Document.user_id == user.id)
    if zip_code:
        stmt = stmt.where(Document.zip_code == zip_code)
    if interests:
        matching = select(DocumentInsight.document_id).where(DocumentInsight.category.in_(interests))
        stmt = stmt.where(Document.id.in_(matching))
    docs = db.execute(stmt.order_by(Document.uploaded_at.desc())).scalars().all()
    return [_to_metadata(d) for d in docs]


def get_document(db: Session, user: User, doc_id: str) -> schemas.DocumentDetail | None:
    try:
        doc = _load_owned(db, user, doc_id)
    except DocumentNotFoundError:
        return None
    return schemas.DocumentDetail(
        **_to_metadata(doc).model_dump(),
        content=doc.content,
        insights=[_to_insight(row) for row in doc.insights],
    )


def get_status(db: Session, user: User, doc_id: str) -> schemas.DocumentStatus:
    doc = _load_owned(db, user, doc_id)
    return schemas.DocumentStatus(document_id=str(doc.id), status=doc.status, processed=doc.processed)  # type: ignore[arg-type]


def get_insights(db: Session, user: User, doc_id: str) -> list[schemas.Insight]:
    doc = _load_owned(db, user, doc_id)
    return [_to_insight(row) for row in doc.insights]


def get_forecasts(db: Session, user: User, doc_id: str) -> list[schemas.ForecastItem]:
    doc = _load_owned(db, user, doc_id)
    return [
        schemas.ForecastItem(
            category=row.category,
            prediction=row.prediction,
            confidence_score=row.confidence_score,
            timeframe=row.timeframe,
            impact_areas=list(row.impact_areas or []),
        )
        for row in doc.forecasts
    ]


def get_sentiment(db: Session, user: User, doc_id: str, limit: int = 10) -> schemas.SentimentResponse:
    doc = _load_owned(db, user, doc_id)
    rows = sorted(doc.comments, key=lambda c: c.position)
    comments = [
        schemas.PublicComment(
            commenter_name=row.commenter_name,
            comment_text=row.comment_text,
            sentiment_score=row.sentiment_score,
            sentiment_label=row.sentiment_label,  # type: ignore[arg-type]
        )
        for row in rows
    ]
    return schemas.SentimentResponse(
        sentiment_data=analysis_service.sentiment_distribution(comments),
        comments=comments[:limit],
    )


def delete_document_everywhere(db: Session, user: User, doc_id: str) -> None:
    doc = _load_owned(db, user, doc_id)

    stored_path = get_settings().upload_path / str(user.id) / doc.stored_filename
    if stored_path.exists():
        stored_path.unlink()

    db.delete(doc)
    db.commit()
    logger.info("document.deleted", extra={"doc_id": doc_id, "user_id": str(user.id)})


def mark_queued(db: Session, user: User, doc_id: str) -> schemas.DocumentMetadata:
    doc = _load_owned(db, user, doc_id)
    _clear_analysis(db, doc)

    doc.status = "queued"
    doc.processed = False
    doc.processed_at = None
    doc.error_message = None
    db.add(doc)
    db.commit()
    return _to_metadata(doc)
