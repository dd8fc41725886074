"""Database access for the query runner."""

from .connection import ConnectionManager

__all__ = ["ConnectionManager"]
