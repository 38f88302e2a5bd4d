"""
Infrastructure package - database engine and invoice repository.
"""
