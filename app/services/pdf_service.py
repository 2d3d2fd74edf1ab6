from __future__ import annotations

import logging
import re

from app.models.schemas import ExtractionResult, ValidationResult

logger = logging.getLogger(__name__)

PDF_MAGIC = "%PDF"
MIN_PDF_BYTES = 100
SUSPICIOUS_BUFFER_MAX_BYTES = 1000

NO_TEXT_MESSAGE = (
    "PDF processed successfully but no readable text could be extracted. "
    "This may be a scanned document or contain only images."
)
EXTRACTION_FAILED_MESSAGE = "Failed to extract text from PDF file"

# Whitespace as seen in a Latin-1 view of the buffer. Kept explicit so that
# control bytes 0x1C-0x1F and 0x85 are not treated as whitespace.
_WS = "\t\n\x0b\x0c\r \xa0"

_PAREN_RUN = re.compile(r"\(([^)]*)\)")
_BRACKET_RUN = re.compile(r"\[([^\]]*)\]")
_STREAM_BODY = re.compile(rf"stream[{_WS}]*([\s\S]*?)[{_WS}]*endstream")
_READABLE_RUN = re.compile(rf"[a-zA-Z][a-zA-Z0-9{_WS}.,!?;:'\"()-]{{3,}}")
_ALNUM = re.compile(r"[a-zA-Z0-9]")
_WS_RUN = re.compile(rf"[{_WS}]+")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")
_PAGE_OBJECT = re.compile(rf"/Type[{_WS}]*/Page[^s]")


def validate_pdf_buffer(buffer: bytes | None) -> ValidationResult:
    """
    Cheap structural sniff: non-empty, at least 100 bytes, starts with ``%PDF``.

    Trailer, xref table and version are not inspected; a file that only
    claims to be a PDF passes and is left to the best-effort extractor.
    """
    if not buffer:
        return ValidationResult(is_valid=False, error="Buffer is empty")

    if len(buffer) < MIN_PDF_BYTES:
        return ValidationResult(is_valid=False, error="File too small to be a valid PDF")

    header = bytes(buffer[:4]).decode("ascii", errors="replace")
    if header != PDF_MAGIC:
        return ValidationResult(is_valid=False, error="Invalid PDF header - file may be corrupted")

    return ValidationResult(is_valid=True)


def _delimited_runs(pattern: re.Pattern[str], source: str) -> str | None:
    matches = [m.group(1) for m in pattern.finditer(source)]
    if not matches:
        return None
    kept = [run for run in matches if len(run) > 1 and _ALNUM.search(run)]
    return " ".join(kept)


def _stream_runs(source: str) -> list[str]:
    parts: list[str] = []
    for match in _STREAM_BODY.finditer(source):
        readable = _READABLE_RUN.findall(match.group(1))
        if readable:
            parts.append(" ".join(readable))
    return parts


def _normalize(text: str) -> str:
    text = _WS_RUN.sub(" ", text)
    text = _NON_PRINTABLE.sub(" ", text)
    return text.strip()


def count_pages(source: str) -> int:
    """Count ``/Type /Page`` leaf objects, ignoring the ``/Type /Pages`` tree node."""
    return len(_PAGE_OBJECT.findall(source)) or 1


def _extract(buffer: bytes) -> ExtractionResult:
    # Latin-1 keeps a 1:1 byte/character mapping, so structural tokens stay
    # searchable whatever binary data surrounds them.
    source = bytes(buffer).decode("latin-1")

    extracted = ""

    paren_text = _delimited_runs(_PAREN_RUN, source)
    if paren_text is not None:
        extracted += paren_text + " "

    bracket_text = _delimited_runs(_BRACKET_RUN, source)
    if bracket_text is not None:
        extracted += bracket_text + " "

    for stream_text in _stream_runs(source):
        extracted += stream_text + " "

    extracted = _normalize(extracted)
    page_count = count_pages(source)

    if not extracted:
        extracted = NO_TEXT_MESSAGE

    return ExtractionResult(success=True, text=extracted, page_count=page_count)


def extract_text_from_pdf(buffer: bytes | None) -> ExtractionResult:
    """
    Heuristic text extraction from raw PDF bytes.

    Three additive passes run over a Latin-1 view of the buffer: literal
    string operands in parentheses, kerned text arrays in brackets, then
    natural-language looking runs inside ``stream ... endstream`` bodies.
    Compressed content streams are not inflated, so modern PDFs often
    yield little or nothing; in that case the result still succeeds and
    carries ``NO_TEXT_MESSAGE`` as its text.

    Never raises: validation problems and unexpected errors both come back
    as ``success=False`` results.
    """
    validation = validate_pdf_buffer(buffer)
    if not validation.is_valid:
        return ExtractionResult(success=False, error=validation.error)

    try:
        return _extract(buffer)  # type: ignore[arg-type]
    except Exception:  # noqa: BLE001 - callers always receive a result
        logger.exception("pdf.extract_failed", extra={"buffer_bytes": len(buffer or b"")})
        return ExtractionResult(success=False, error=EXTRACTION_FAILED_MESSAGE)


def detect_suspicious_buffer(buffer: bytes | None) -> bool:
    """
    Flag short uploads whose bytes look like a file path rather than file content.

    Only buffers of at most 1000 bytes are considered. Invalid UTF-8 is not
    suspicious.
    """
    if not buffer or len(buffer) > SUSPICIOUS_BUFFER_MAX_BYTES:
        return False

    try:
        content = bytes(buffer).decode("utf-8")
    except UnicodeDecodeError:
        return False

    return "./test/" in content or ".pdf" in content or content.startswith("/") or "\\" in content
