"""
API route modules, one router per resource.
"""
