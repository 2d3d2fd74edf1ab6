import pytest

from app.services import pdf_service
from app.services.pdf_service import (
    EXTRACTION_FAILED_MESSAGE,
    NO_TEXT_MESSAGE,
    detect_suspicious_buffer,
    extract_text_from_pdf,
    validate_pdf_buffer,
)


def _pdf(*objects: bytes) -> bytes:
    body = b"%PDF-1.4\n" + b"\n".join(objects) + b"\n%%EOF\n"
    return body.ljust(128, b"\n")


@pytest.mark.parametrize("buffer", [b"", None])
def test_validate_rejects_empty_buffer(buffer) -> None:
    result = validate_pdf_buffer(buffer)
    assert result.is_valid is False
    assert result.error == "Buffer is empty"


def test_validate_rejects_small_buffer() -> None:
    result = validate_pdf_buffer(b"%PDF" + b"x" * 46)
    assert result.model_dump(by_alias=True) == {"isValid": False, "error": "File too small to be a valid PDF"}


def test_validate_size_floor_is_inclusive() -> None:
    assert validate_pdf_buffer(b"%PDF" + b" " * 95).error == "File too small to be a valid PDF"
    assert validate_pdf_buffer(b"%PDF" + b" " * 96).is_valid is True


def test_validate_rejects_bad_header() -> None:
    result = validate_pdf_buffer(b"Hello, this is plain text. " * 8)
    assert result.is_valid is False
    assert result.error == "Invalid PDF header - file may be corrupted"


def test_validate_rejects_non_ascii_header() -> None:
    result = validate_pdf_buffer(b"\xa5\xd0\xc4\xc6" + b" " * 200)
    assert result.error == "Invalid PDF header - file may be corrupted"


def test_extract_returns_validation_error_verbatim() -> None:
    result = extract_text_from_pdf(b"tiny")
    assert result.success is False
    assert result.error == "File too small to be a valid PDF"
    assert result.text is None
    assert result.page_count is None


def test_extract_finds_parenthesized_text() -> None:
    buffer = _pdf(b"BT /F1 12 Tf 72 712 Td (Hello World) Tj ET")
    result = extract_text_from_pdf(buffer)
    assert result.success is True
    assert "Hello World" in result.text
    assert result.page_count == 1


def test_extract_filters_noise_runs() -> None:
    buffer = _pdf(b"() (.) (a) (--) (ok) (x1)")
    result = extract_text_from_pdf(buffer)
    assert result.text == "ok x1"


def test_extract_passes_run_in_order_parens_brackets_streams() -> None:
    buffer = _pdf(
        b"1 0 obj\n<< /Length 20 >>\nstream\nBT Gamma words ET\nendstream\nendobj",
        b"2 0 obj\n[ (Beta) ]\n(Alpha) Tj\nendobj",
    )
    result = extract_text_from_pdf(buffer)
    assert result.text == "Beta Alpha (Beta) BT Gamma words ET"


def test_extract_reads_kerned_text_arrays() -> None:
    buffer = _pdf(b"[(Zoning) -250 (Board)] TJ")
    result = extract_text_from_pdf(buffer)
    # Paren pass first, then the whole bracket span.
    assert result.text == "Zoning Board (Zoning) -250 (Board)"


def test_extract_scans_stream_bodies_amid_binary() -> None:
    buffer = _pdf(b"stream\n\x00\x01\xffPublic hearing notice\x02\x03ok\x04\nendstream")
    result = extract_text_from_pdf(buffer)
    # "ok" is shorter than four characters and is dropped.
    assert result.text == "Public hearing notice"


def test_extract_parentheses_are_not_nested() -> None:
    buffer = _pdf(b"(outer (inner) tail)")
    result = extract_text_from_pdf(buffer)
    assert result.text == "outer (inner"


def test_extract_replaces_non_printable_after_collapsing_whitespace() -> None:
    buffer = _pdf(b"(Caf\xe9 menu)")
    result = extract_text_from_pdf(buffer)
    assert result.text == "Caf  menu"


def test_extract_collapses_whitespace() -> None:
    buffer = _pdf(b"(Budget\r\n\t  hearing)")
    result = extract_text_from_pdf(buffer)
    assert result.text == "Budget hearing"


def test_extract_without_text_returns_sentinel() -> None:
    buffer = _pdf(b"1 0 obj\n<< /Length 0 >>\nendobj", b"xref\n0 1\n0000000000 65535 f")
    result = extract_text_from_pdf(buffer)
    assert result.success is True
    assert result.text == NO_TEXT_MESSAGE
    assert result.page_count >= 1


def test_page_count_ignores_pages_tree_node() -> None:
    buffer = _pdf(
        b"1 0 obj << /Type /Pages /Kids [3 0 R 4 0 R 5 0 R] /Count 3 >> endobj",
        b"3 0 obj << /Type /Page /Parent 1 0 R >> endobj",
        b"4 0 obj << /Type /Page /Parent 1 0 R >> endobj",
        b"5 0 obj << /Type /Page /Parent 1 0 R >> endobj",
    )
    result = extract_text_from_pdf(buffer)
    assert result.page_count == 3


def test_page_count_allows_missing_space() -> None:
    buffer = _pdf(b"<< /Type/Page\n>> << /Type  /Page>>")
    assert extract_text_from_pdf(buffer).page_count == 2


def test_extract_is_deterministic() -> None:
    buffer = _pdf(b"(Council agenda) [(Item) 12]", b"stream\nMinutes of the meeting\nendstream")
    first = extract_text_from_pdf(buffer)
    second = extract_text_from_pdf(buffer)
    assert first.text == second.text
    assert first.page_count == second.page_count


def test_extract_unexpected_error_becomes_failure(monkeypatch) -> None:
    def _boom(_buffer: bytes):
        raise RuntimeError("decoder exploded")

    monkeypatch.setattr(pdf_service, "_extract", _boom)
    result = extract_text_from_pdf(_pdf(b"(Hello World)"))
    assert result.success is False
    assert result.error == EXTRACTION_FAILED_MESSAGE


def test_extraction_result_serializes_page_count_in_camel_case() -> None:
    result = extract_text_from_pdf(_pdf(b"(Hello World)"))
    assert result.model_dump(by_alias=True, exclude_none=True) == {
        "success": True,
        "text": "Hello World",
        "pageCount": 1,
    }


def test_detect_path_string() -> None:
    assert detect_suspicious_buffer(b"/uploads/file.pdf   ") is True


@pytest.mark.parametrize(
    "buffer",
    [b"./test/data/05-versions-space.pdf", b"C:\\Users\\me\\notice", b"see minutes.pdf please"],
)
def test_detect_other_path_shapes(buffer: bytes) -> None:
    assert detect_suspicious_buffer(buffer) is True


def test_detect_ignores_pdf_header_bytes() -> None:
    buffer = b"%PDF-1.4\n1 0 obj\n<<\n"
    assert len(buffer) == 20
    assert detect_suspicious_buffer(buffer) is False


def test_detect_ignores_large_buffers() -> None:
    buffer = (b"report.pdf " * 200)[:2000]
    assert detect_suspicious_buffer(buffer) is False


def test_detect_size_gate_is_inclusive() -> None:
    assert detect_suspicious_buffer(b"/" + b"a" * 999) is True
    assert detect_suspicious_buffer(b"/" + b"a" * 1000) is False


def test_detect_invalid_utf8_is_not_suspicious() -> None:
    assert detect_suspicious_buffer(b"\xff\xfe minutes.pdf") is False
