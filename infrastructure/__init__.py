"""
Infrastructure package - shared database access.
"""

from .postgresql import PostgreSQLRepository

__all__ = ["PostgreSQLRepository"]
