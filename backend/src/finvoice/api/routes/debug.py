"""
Debug endpoints for development and testing.

These endpoints are only available when DEBUG=true.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from finvoice.api.schemas import ExtractedFieldsResponse, ExtractRequest
from finvoice.config import Settings, get_settings
from finvoice.services.ocr import extract_fields, suggest_draft_values

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


@router.post("/extract")
async def debug_extract(
    request: ExtractRequest,
    settings: Settings = Depends(get_settings),
):
    """
    Run field extraction on raw text, skipping OCR.

    Useful for tuning the extraction patterns against real invoice text.
    """
    if not settings.debug:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Debug endpoints are disabled in production",
        )

    fields = extract_fields(request.text)
    logger.debug(f"Debug extraction: {fields}")

    return {
        "fields": ExtractedFieldsResponse.from_domain(fields).model_dump(),
        "suggestions": suggest_draft_values(fields),
        "nothing_detected": fields.is_empty,
    }
