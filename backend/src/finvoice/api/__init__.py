"""
HTTP API - request schemas, dependency providers and route modules.
"""
