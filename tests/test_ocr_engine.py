"""
Tests for document decoding, docTR result flattening and content hashing.

Recognition itself needs docTR model weights and is not exercised here.
"""

import io
from types import SimpleNamespace

import pytest
from PIL import Image

from finvoice.domain.errors import DecodeError
from finvoice.domain.hashing import compute_document_hash, verify_hash
from finvoice.services.ocr import OCREngine


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 32), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


def doctr_result(*lines: list[tuple[str, float]]):
    """Minimal object shaped like a docTR Document with one page and block."""
    block = SimpleNamespace(lines=[
        SimpleNamespace(words=[SimpleNamespace(value=v, confidence=c) for v, c in words])
        for words in lines
    ])
    return SimpleNamespace(pages=[SimpleNamespace(blocks=[block])])


class TestLoadDocument:

    def test_empty_content(self):
        with pytest.raises(DecodeError):
            OCREngine().load_document(b"", "application/pdf")

    def test_unsupported_media_type(self):
        with pytest.raises(DecodeError, match="Unsupported"):
            OCREngine().load_document(b"hello", "text/plain")

    def test_corrupt_image(self):
        with pytest.raises(DecodeError):
            OCREngine().load_document(b"not really a png", "image/png")

    def test_corrupt_pdf(self):
        with pytest.raises(DecodeError):
            OCREngine().load_document(b"not really a pdf", "application/pdf")

    def test_valid_image(self):
        pages = OCREngine().load_document(png_bytes(), "image/PNG")
        assert len(pages) == 1


class TestConvertResult:

    def test_words_joined_into_lines(self):
        result = doctr_result(
            [("Grand", 0.9), ("Total:", 0.8)],
            [("₹1,000.00", 1.0)],
        )
        recognized = OCREngine()._convert_result(result)

        assert recognized.text == "Grand Total:\n₹1,000.00"
        assert recognized.confidence == pytest.approx(90.0)
        assert recognized.word_count == 3
        assert recognized.page_count == 1

    def test_blank_page(self):
        recognized = OCREngine()._convert_result(doctr_result())
        assert recognized.text == ""
        assert recognized.confidence == 0.0


class TestDocumentHash:

    def test_hash_is_stable(self):
        assert compute_document_hash(b"invoice") == compute_document_hash(b"invoice")
        assert compute_document_hash(b"invoice") != compute_document_hash(b"invoice2")

    def test_verify(self):
        digest = compute_document_hash(b"invoice")
        assert verify_hash(b"invoice", digest)
        assert not verify_hash(b"tampered", digest)

    def test_verify_rejects_unprefixed_hash(self):
        with pytest.raises(ValueError):
            verify_hash(b"invoice", "abc123")

    def test_empty_content_rejected(self):
        with pytest.raises(ValueError):
            compute_document_hash(b"")
