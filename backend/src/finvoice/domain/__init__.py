"""
Domain package - Core business logic with no external dependencies.

Models, reconciliation rules, state machines and the risk engine for
verifying and pricing uploaded invoices.
"""
