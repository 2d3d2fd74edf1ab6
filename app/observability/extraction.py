from __future__ import annotations

from time import perf_counter
from typing import Callable

import structlog

from app.models.schemas import ExtractionResult
from app.observability.metrics import get_metrics


def instrument_pdf_extraction(*, filename: str, fn: Callable[[], ExtractionResult]) -> ExtractionResult:
    """Time an extraction, record it in metrics, and emit a structured log event."""

    start = perf_counter()
    result = fn()
    elapsed_ms = (perf_counter() - start) * 1000.0

    get_metrics().observe_pdf_extraction(elapsed_ms=elapsed_ms, success=result.success)
    log = structlog.get_logger("pdf")
    if result.success:
        log.info(
            "pdf_extraction",
            document_name=filename,
            page_count=result.page_count,
            text_chars=len(result.text or ""),
            elapsed_ms=round(elapsed_ms, 2),
        )
    else:
        log.warning(
            "pdf_extraction_failed",
            document_name=filename,
            error=result.error,
            elapsed_ms=round(elapsed_ms, 2),
        )
    return result
