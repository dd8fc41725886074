"""Bookstore query runner.

Runs a fixed, ordered sequence of CRUD, aggregation and index operations
against a MongoDB books collection and prints a summary of each result.
"""

from .runner import QueryRunner

__all__ = ["QueryRunner"]

__version__ = "0.1.0"
