"""
Services package - Business logic and external integrations.

Includes OCR, ledger integration, pricing and the submission pipeline.
"""

from .ocr import OCREngine, extract_fields
from .pricing import PricingContext, price_invoice

__all__ = ["OCREngine", "extract_fields", "PricingContext", "price_invoice"]
