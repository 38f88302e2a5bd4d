"""
Invoice upload endpoints.

Drives one upload through scan, reconciliation, confirmation and submission.
Each upload gets its own pipeline, addressed by the id returned on upload.
Scanning runs in the background; clients poll the upload for its status.
"""

import logging
from typing import Annotated, Callable

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from finvoice.api.deps import get_pipeline_factory, get_upload_registry
from finvoice.api.schemas import (
    ConfirmRequest,
    ConfirmResponse,
    ErrorResponse,
    ExtractedFieldsResponse,
    InvoiceDraftRequest,
    InvoiceResponse,
    ReconciliationResponse,
    SubmitRequest,
    UploadResponse,
)
from finvoice.domain.errors import DecodeError
from finvoice.domain.models import OcrStatus, RawDocument
from finvoice.services.ocr import suggest_draft_values
from finvoice.services.submission import SubmissionPipeline, UploadRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _get_pipeline(registry: UploadRegistry, upload_id: str) -> SubmissionPipeline:
    try:
        return registry.get(upload_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upload not found: {upload_id}",
        )


def _scan_response(upload_id: str, pipeline: SubmissionPipeline) -> UploadResponse:
    extraction = pipeline.extraction
    if extraction is None:
        return UploadResponse(
            upload_id=upload_id,
            ocr_status=pipeline.ocr_status.value,
            document_hash=pipeline.document_hash,
        )
    return UploadResponse(
        upload_id=upload_id,
        ocr_status=pipeline.ocr_status.value,
        confidence=round(extraction.confidence, 2),
        text=extraction.text,
        fields=ExtractedFieldsResponse.from_domain(extraction.fields),
        suggestions=suggest_draft_values(extraction.fields),
        document_hash=pipeline.document_hash,
    )


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_invoice(
    file: Annotated[UploadFile, File(description="Invoice document (PDF/image)")],
    registry: UploadRegistry = Depends(get_upload_registry),
    pipeline_factory: Callable[[], SubmissionPipeline] = Depends(get_pipeline_factory),
) -> UploadResponse:
    """
    Upload an invoice document and start OCR on it.

    **Process:**
    1. Register the upload and return its id with status scanning
    2. Recognize text with docTR in the background
    3. Extract amount, date, invoice number and buyer

    Poll GET /uploads/{upload_id} for the result. The upload can be
    abandoned with DELETE while the scan is still running.
    """
    content = await file.read()
    document = RawDocument(
        content=content,
        media_type=file.content_type or "application/octet-stream",
        filename=file.filename or "invoice",
    )

    pipeline = pipeline_factory()
    upload_id = registry.add(pipeline)
    pipeline.start_scan(document)
    logger.info(f"Upload {upload_id} accepted, scan started")

    return _scan_response(upload_id, pipeline)


@router.get(
    "/{upload_id}",
    response_model=UploadResponse,
    responses={
        404: {"description": "Upload not found"},
        422: {"model": ErrorResponse, "description": "Document could not be decoded or OCR timed out"},
    },
)
async def get_upload(
    upload_id: str,
    registry: UploadRegistry = Depends(get_upload_registry),
) -> UploadResponse:
    """
    Get the scan status of an upload.

    While scanning only the status is returned. Once in review the
    extracted fields and suggested form values are included. A failed
    scan is reported once and the upload is discarded.
    """
    pipeline = _get_pipeline(registry, upload_id)

    if pipeline.ocr_status is OcrStatus.FAILED:
        reason = pipeline.verification.failure_reason or "Document could not be read"
        registry.discard(upload_id)
        raise DecodeError(reason)

    return _scan_response(upload_id, pipeline)


@router.post("/{upload_id}/reconcile", response_model=ReconciliationResponse)
async def reconcile_upload(
    upload_id: str,
    draft: InvoiceDraftRequest,
    registry: UploadRegistry = Depends(get_upload_registry),
) -> ReconciliationResponse:
    """
    Compare the user's entries against the scanned document.

    Only the amount gates verification; date and buyer are advisory.
    """
    pipeline = _get_pipeline(registry, upload_id)
    verdict = pipeline.reconcile(draft.to_domain())
    return ReconciliationResponse.from_domain(verdict)


@router.post(
    "/{upload_id}/confirm",
    response_model=ConfirmResponse,
    responses={
        409: {"description": "Amounts do not match or upload is not in review"},
        422: {"description": "Override reason too short"},
    },
)
async def confirm_upload(
    upload_id: str,
    request: ConfirmRequest,
    registry: UploadRegistry = Depends(get_upload_registry),
) -> ConfirmResponse:
    """
    Confirm the scanned document.

    Without an override reason the amounts must match. With one, the
    document is accepted as a manual override and the reason is kept.
    """
    pipeline = _get_pipeline(registry, upload_id)
    ocr_status = pipeline.confirm(request.draft.to_domain(), request.override_reason)
    return ConfirmResponse(upload_id=upload_id, ocr_status=ocr_status.value)


@router.delete("/{upload_id}", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_upload(
    upload_id: str,
    registry: UploadRegistry = Depends(get_upload_registry),
) -> Response:
    """Discard an upload. Unknown ids are ignored."""
    registry.discard(upload_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{upload_id}/submit",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Document not verified"},
        422: {"description": "Invoice data failed validation"},
    },
)
async def submit_upload(
    upload_id: str,
    request: SubmitRequest,
    registry: UploadRegistry = Depends(get_upload_registry),
) -> InvoiceResponse:
    """
    Price and store a verified invoice.

    The optional account id enables the ledger activity adjustment.
    """
    pipeline = _get_pipeline(registry, upload_id)
    invoice = await pipeline.submit(request.draft.to_domain(), account_id=request.account_id)
    registry.discard(upload_id)
    return InvoiceResponse.from_domain(invoice)
