"""
docTR OCR engine wrapper for invoice text recognition.

Turns an uploaded PDF or image into plain text in reading order plus an
overall confidence score on a 0-100 scale.

Design Decisions:
- Lazy model loading to avoid startup overhead
- Document decoding (PDF rasterization, image verification) is a separate,
  possibly failing step that raises DecodeError
- Words are re-joined into lines so label/value pairs on one printed line
  stay on one text line for the field extractor
- Inference runs in a worker thread so the event loop stays responsive

Note: docTR requires PyTorch or TensorFlow backend. We use PyTorch.
"""

import asyncio
import io
import logging
import time
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from finvoice.domain.errors import DecodeError

logger = logging.getLogger(__name__)


IMAGE_MEDIA_TYPES = {"image/png", "image/jpeg", "image/jpg"}
PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class RecognizedText:
    """Text recognized from a document, with engine confidence (0-100)."""
    text: str
    confidence: float
    page_count: int = 0
    word_count: int = 0
    processing_time_ms: float = 0


class TextRecognizer(Protocol):
    """Anything that can turn document bytes into text."""

    async def recognize(self, content: bytes, media_type: str) -> RecognizedText:
        ...


class OCREngine:
    """
    Document OCR engine using docTR.

    Example:
        engine = OCREngine()
        with open("invoice.pdf", "rb") as f:
            result = await engine.recognize(f.read(), "application/pdf")
        print(result.text, result.confidence)
    """

    def __init__(self) -> None:
        self._model = None

    def _get_model(self):
        """
        Lazy load the docTR model.

        The pretrained weights are cached by docTR after first download.
        """
        if self._model is None:
            try:
                from doctr.models import ocr_predictor

                logger.info("Loading docTR OCR model...")
                self._model = ocr_predictor(
                    det_arch="db_resnet50",
                    reco_arch="crnn_vgg16_bn",
                    pretrained=True,
                )
                logger.info("docTR model loaded successfully")
            except ImportError as e:
                logger.error(f"docTR not installed: {e}")
                raise RuntimeError(
                    "docTR is required for OCR. Install with: pip install python-doctr[torch]"
                ) from e

        return self._model

    def load_document(self, content: bytes, media_type: str):
        """
        Decode an upload into page images.

        PDFs are rasterized page by page; images are verified with Pillow
        before being handed to docTR.

        Raises:
            DecodeError: If the document is empty, unsupported or corrupt
        """
        from doctr.io import DocumentFile

        if not content:
            raise DecodeError("Document is empty")

        media_type = media_type.lower()

        if media_type == PDF_MEDIA_TYPE:
            try:
                pages = DocumentFile.from_pdf(content)
            except Exception as e:
                logger.warning(f"PDF conversion failed: {e}")
                raise DecodeError("Failed to process PDF") from e
            if not pages:
                raise DecodeError("PDF has no pages")
            logger.debug(f"PDF loaded: {len(pages)} pages")
            return pages

        if media_type in IMAGE_MEDIA_TYPES:
            try:
                with Image.open(io.BytesIO(content)) as image:
                    image.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                logger.warning(f"Image decoding failed: {e}")
                raise DecodeError("Failed to read image") from e
            return DocumentFile.from_images(content)

        raise DecodeError(f"Unsupported media type: {media_type}")

    def recognize_sync(self, content: bytes, media_type: str) -> RecognizedText:
        """
        Blocking recognition.

        Raises:
            DecodeError: If the document cannot be decoded
        """
        start_time = time.time()
        logger.info(f"Processing document: type={media_type}, size={len(content)} bytes")

        pages = self.load_document(content, media_type)

        model = self._get_model()
        logger.info("Running OCR inference...")
        result = model(pages)

        recognized = self._convert_result(result)
        recognized.processing_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"OCR complete: {recognized.word_count} words, "
            f"confidence: {recognized.confidence:.1f}, "
            f"time: {recognized.processing_time_ms:.0f}ms"
        )
        return recognized

    async def recognize(self, content: bytes, media_type: str) -> RecognizedText:
        """Recognize text without blocking the event loop."""
        return await asyncio.to_thread(self.recognize_sync, content, media_type)

    def _convert_result(self, doctr_result) -> RecognizedText:
        """
        Flatten a docTR result into text lines.

        Confidence is the mean word confidence scaled to 0-100.
        """
        lines: list[str] = []
        confidences: list[float] = []

        for page in doctr_result.pages:
            for block in page.blocks:
                for line in block.lines:
                    words = [word.value for word in line.words]
                    confidences.extend(word.confidence for word in line.words)
                    if words:
                        lines.append(" ".join(words))

        confidence = 100 * sum(confidences) / len(confidences) if confidences else 0.0

        return RecognizedText(
            text="\n".join(lines),
            confidence=min(max(confidence, 0.0), 100.0),
            page_count=len(doctr_result.pages),
            word_count=len(confidences),
        )
