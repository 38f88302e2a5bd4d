"""
Content hashing for uploaded invoice documents.

The document hash travels with the invoice record and into the token
metadata, so the same file can be recognized later without keeping its
content on the ledger.
"""

import hashlib

HASH_PREFIX = "sha256:"


def compute_document_hash(content: bytes) -> str:
    """
    Compute SHA-256 hash of document content.

    Args:
        content: Raw bytes of the uploaded file (PDF or image)

    Returns:
        Hex-encoded SHA-256 hash prefixed with 'sha256:'

    Example:
        >>> compute_document_hash(b"invoice content")
        'sha256:...'
    """
    if not content:
        raise ValueError("Cannot hash empty content")

    return f"{HASH_PREFIX}{hashlib.sha256(content).hexdigest()}"


def verify_hash(content: bytes, expected_hash: str) -> bool:
    """True if content hashes to expected_hash."""
    if not expected_hash.startswith(HASH_PREFIX):
        raise ValueError(f"Invalid hash format, expected '{HASH_PREFIX}' prefix: {expected_hash}")

    return compute_document_hash(content) == expected_hash
