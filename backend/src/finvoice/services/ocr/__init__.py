"""
OCR subpackage - Document text recognition and field extraction.
"""

from .engine import OCREngine, RecognizedText, TextRecognizer
from .extractor import extract_fields, suggest_draft_values

__all__ = [
    "OCREngine",
    "RecognizedText",
    "TextRecognizer",
    "extract_fields",
    "suggest_draft_values",
]
