"""
finvoice - invoice financing backend.

OCR verification, risk pricing and ledger tokenization for uploaded invoices.
"""

__version__ = "0.1.0"
