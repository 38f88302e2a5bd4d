"""
XRPL integration: account activity lookups and invoice token payloads.

Handles:
- Recent-transaction counts used as a risk signal
- NFTokenMint payload preparation for client-side signing
- Lifecycle bookkeeping once the client reports a submitted mint

Network and issuer are passed in through TokenizationContext rather than
held in module state, so concurrent sessions cannot see each other's values.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from xrpl.asyncio.clients import AsyncJsonRpcClient
from xrpl.models import AccountTx

from finvoice.domain.models import ChainActivity, Invoice, InvoiceStatus
from finvoice.domain.state import InvoiceLifecycle, can_tokenize
from finvoice.domain.errors import InvalidTransition, VerificationIncomplete

logger = logging.getLogger(__name__)


class XRPLNetwork(Enum):
    """Supported XRPL networks."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


# JSON-RPC endpoints (more reliable than WebSocket for quick operations)
NETWORK_URLS = {
    XRPLNetwork.MAINNET: "https://xrplcluster.com",
    XRPLNetwork.TESTNET: "https://s.altnet.rippletest.net:51234",
    XRPLNetwork.DEVNET: "https://s.devnet.rippletest.net:51234",
}

# Ledger error for an address that was never funded
ACCOUNT_NOT_FOUND = "actNotFound"


class ChainActivitySource(Protocol):
    """Anything that can report recent activity for an account."""

    async def fetch_activity(self, account: str) -> ChainActivity | None:
        ...


class LedgerActivitySource:
    """
    Counts recent transactions of an XRPL account.

    Never raises: an unfunded account reports zero activity, and any
    network or protocol failure reports None so pricing skips the
    activity adjustment.
    """

    def __init__(
        self,
        network: XRPLNetwork = XRPLNetwork.TESTNET,
        custom_url: str | None = None,
        limit: int = 50,
    ) -> None:
        self.network = network
        self.url = custom_url or NETWORK_URLS[network]
        self.limit = limit
        self._client: AsyncJsonRpcClient | None = None

    def _get_client(self) -> AsyncJsonRpcClient:
        """Get or create AsyncJsonRpcClient."""
        if self._client is None:
            self._client = AsyncJsonRpcClient(self.url)
        return self._client

    async def fetch_activity(self, account: str) -> ChainActivity | None:
        try:
            client = self._get_client()
            response = await client.request(AccountTx(account=account, limit=self.limit))
        except Exception:
            logger.exception(f"Activity lookup failed for {account}")
            return None

        if not response.is_successful():
            if response.result.get("error") == ACCOUNT_NOT_FOUND:
                logger.info(f"Account {account} not funded yet, treating as inactive")
                return ChainActivity(recent_transaction_count=0)
            logger.warning(f"Failed to query transactions for {account}: {response.result}")
            return None

        transactions = response.result.get("transactions", [])
        logger.info(f"Account {account}: {len(transactions)} recent transactions")
        return ChainActivity(recent_transaction_count=len(transactions))


# =============================================================================
# Tokenization
# =============================================================================

@dataclass(frozen=True)
class TokenizationContext:
    """Ledger settings for one session's tokenization calls."""
    network: XRPLNetwork
    issuer_account: str | None = None


@dataclass
class InvoiceTokenMetadata:
    """
    Token metadata stored hex-encoded in the NFT URI.

    Holds the document hash rather than the document, so the ledger entry
    is tamper-evident without exposing the invoice itself.
    """
    invoice_number: str
    face_value_inr: str
    token_value: int
    due_date: str
    risk_score: str
    interest_rate: str
    verification: str
    document_hash: str | None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceTokenMetadata":
        return cls(
            invoice_number=invoice.draft.invoice_number,
            face_value_inr=str(invoice.draft.amount_inr),
            token_value=invoice.token_value,
            due_date=invoice.draft.due_date.isoformat(),
            risk_score=invoice.risk.score.value,
            interest_rate=str(invoice.risk.recommended_rate),
            verification=invoice.ocr_status.value,
            document_hash=invoice.document_hash,
        )

    def to_json(self) -> str:
        """Serialize to JSON for NFT URI."""
        return json.dumps({
            "schema": "FINVOICE_v1",
            "name": f"Invoice #{self.invoice_number}",
            "properties": {
                "face_value_inr": self.face_value_inr,
                "token_value": self.token_value,
                "due_date": self.due_date,
                "risk_score": self.risk_score,
                "interest_rate": self.interest_rate,
                "verification": self.verification,
                "document_hash": self.document_hash,
            },
        })

    def to_hex(self) -> str:
        """Convert to hex-encoded URI for XRPL."""
        return self.to_json().encode("utf-8").hex().upper()


# NFT flags
FLAG_TRANSFERABLE = 8  # tfTransferable

# Transfer fee: 0.5% (500 basis points, max 50000 = 50%)
DEFAULT_TRANSFER_FEE = 500

# Taxon grouping invoice tokens
INVOICE_TAXON = 1


def prepare_mint_payload(
    invoice: Invoice,
    context: TokenizationContext,
    account: str | None = None,
) -> dict[str, Any]:
    """
    Prepare an NFTokenMint transaction payload for client-side signing.

    Args:
        invoice: Persisted invoice to tokenize
        context: Network and default issuer for this session
        account: Issuer wallet; falls back to context.issuer_account

    Returns:
        Transaction payload ready for signing

    Raises:
        VerificationIncomplete: If the document was never verified or overridden
        InvalidTransition: If the invoice is already tokenized
        ValueError: If no issuer account is known
    """
    if not can_tokenize(invoice.ocr_status):
        raise VerificationIncomplete(
            f"Invoice {invoice.id} cannot be tokenized while verification is '{invoice.ocr_status.value}'"
        )
    if invoice.status is not InvoiceStatus.UPLOADED:
        raise InvalidTransition("invoice", invoice.status.value, InvoiceStatus.TOKENIZED.value)

    issuer = account or context.issuer_account
    if not issuer:
        raise ValueError("An issuer account is required to prepare a mint payload")

    metadata = InvoiceTokenMetadata.from_invoice(invoice)
    logger.info(f"Prepared mint payload for invoice {invoice.id} on {context.network.value}")

    return {
        "TransactionType": "NFTokenMint",
        "Account": issuer,
        "URI": metadata.to_hex(),
        "Flags": FLAG_TRANSFERABLE,
        "TransferFee": DEFAULT_TRANSFER_FEE,
        "NFTokenTaxon": INVOICE_TAXON,
    }


def mark_tokenized(invoice: Invoice, tx_hash: str) -> Invoice:
    """Record a submitted mint transaction and advance the lifecycle."""
    lifecycle = InvoiceLifecycle(invoice.status)
    lifecycle.tokenize(invoice.ocr_status)
    invoice.status = lifecycle.status
    invoice.ledger_tx_hash = tx_hash
    logger.info(f"Invoice {invoice.id} tokenized: tx={tx_hash}")
    return invoice
