"""
Dependency providers for the API routes.

Collaborators are created once per process; per-upload state lives in
SubmissionPipeline instances held by the UploadRegistry. Tests replace any
of these through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from finvoice.config import Settings, get_settings
from finvoice.infrastructure.repository import InvoiceRepository, SqlInvoiceRepository
from finvoice.services.ledger import (
    ChainActivitySource,
    LedgerActivitySource,
    TokenizationContext,
    XRPLNetwork,
)
from finvoice.services.ocr import OCREngine, TextRecognizer
from finvoice.services.pricing import PricingContext
from finvoice.services.submission import SubmissionPipeline, UploadRegistry


@lru_cache
def get_recognizer() -> TextRecognizer:
    return OCREngine()


@lru_cache
def get_chain_source() -> ChainActivitySource:
    settings = get_settings()
    return LedgerActivitySource(
        network=XRPLNetwork(settings.xrpl_network),
        custom_url=settings.xrpl_rpc_url,
        limit=settings.chain_activity_limit,
    )


@lru_cache
def get_repository() -> InvoiceRepository:
    return SqlInvoiceRepository()


@lru_cache
def get_upload_registry() -> UploadRegistry:
    return UploadRegistry()


def get_pricing_context(
    chain: ChainActivitySource = Depends(get_chain_source),
) -> PricingContext:
    """Fresh context per request; the pricing date is taken at call time."""
    return PricingContext(chain=chain)


def get_tokenization_context(
    settings: Settings = Depends(get_settings),
) -> TokenizationContext:
    return TokenizationContext(
        network=XRPLNetwork(settings.xrpl_network),
        issuer_account=settings.issuer_account,
    )


def get_pipeline_factory(
    recognizer: TextRecognizer = Depends(get_recognizer),
    repository: InvoiceRepository = Depends(get_repository),
    pricing: PricingContext = Depends(get_pricing_context),
    settings: Settings = Depends(get_settings),
):
    """Factory building one independent pipeline per upload."""
    def factory() -> SubmissionPipeline:
        return SubmissionPipeline(
            recognizer=recognizer,
            repository=repository,
            pricing=pricing,
            ocr_timeout=settings.ocr_timeout_seconds,
            inr_per_token=settings.inr_per_token,
        )
    return factory
