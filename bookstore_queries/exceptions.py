"""Exception hierarchy for the bookstore query runner.

All runner exceptions inherit from ``QueryRunnerError`` so a single except
clause separates our errors from third-party ones. Each exception carries
structured metadata:

- error_code: Machine-readable identifier (e.g., "DB_CONNECTION_FAILED")
- message: Human-readable description
- details: Additional context (operation, collection, filter, ...)
- timestamp: When the error occurred
- run_id: Correlation id of the run that produced the error (random when
  raised outside a run)
- original_exception: The driver exception that caused it, if any

Driver exceptions are translated at the operation boundary with
``convert_to_runner_exception``:

```python
try:
    collection.update_one(flt, update)
except Exception as e:
    raise convert_to_runner_exception(e, context={"operation": "update_price"})
```
"""

import traceback
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import pymongo.errors

# =============================================================================
# BASE EXCEPTION CLASS
# =============================================================================


@dataclass(frozen=True)
class QueryRunnerError(Exception):
    """Base exception for all query runner errors.

    Attributes:
    -----------
    message : str
        Human-readable error description for logs
    error_code : str
        Machine-readable error identifier (e.g., "QUERY_EXECUTION_FAILED")
    details : dict
        Additional context about the error (operation name, filter, ...)
    timestamp : str
        ISO 8601 timestamp when error occurred
    run_id : str
        Correlation id of the failing run, the same id stamped on its log
        lines as ``CID:``. A fresh id when no run supplied one
    original_exception : Optional[Exception]
        The underlying exception that caused this error

    Example:
    --------
    >>> raise QueryRunnerError(
    ...     message="Aggregation failed",
    ...     error_code="AGGREGATION_ERROR",
    ...     details={"operation": "books_by_decade"},
    ... )
    """

    message: str
    error_code: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    run_id: str = field(default_factory=lambda: str(uuid4()))
    original_exception: Exception | None = None

    def __str__(self) -> str:
        """Human-readable error representation for logs."""
        error_msg = f"[{self.error_code}] {self.message}"
        if self.details:
            error_msg += f" | Details: {self.details}"
        if self.original_exception:
            error_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: {self.original_exception}"
            )
        return error_msg

    def __repr__(self) -> str:
        """Developer-friendly representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}', "
            f"run_id='{self.run_id}', "
            f"timestamp='{self.timestamp}'"
            f")"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for structured logs.

        Returns:
        --------
        dict with keys: error, error_code, details, timestamp, run_id and,
        when a driver exception is attached, original_error
        """
        error_dict: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp,
            "run_id": self.run_id,
        }

        if self.original_exception:
            error_dict["original_error"] = {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception),
                "traceback": traceback.format_exception(
                    type(self.original_exception),
                    self.original_exception,
                    self.original_exception.__traceback__,
                ),
            }

        return error_dict


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class DatabaseError(QueryRunnerError):
    """Base class for all database-related errors."""

    error_code: str = "DATABASE_ERROR"


@dataclass(frozen=True)
class DatabaseConnectionError(DatabaseError):
    """The server could not be reached or refused the session.

    Example:
    --------
    >>> raise DatabaseConnectionError(
    ...     message="Failed to connect to MongoDB",
    ...     details={"target": "plp_bookstore.books", "timeout_ms": 30000},
    ... )
    """

    error_code: str = "DB_CONNECTION_FAILED"


@dataclass(frozen=True)
class QueryExecutionError(DatabaseError):
    """The server rejected or failed a find, update, delete, aggregate or index call."""

    error_code: str = "QUERY_EXECUTION_FAILED"


@dataclass(frozen=True)
class DatabaseTimeoutError(DatabaseError):
    """An operation exceeded the server-side time limit."""

    error_code: str = "DB_TIMEOUT"


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class ConfigurationError(QueryRunnerError):
    """Configuration could not be loaded or is invalid.

    These stop the process at startup rather than being recorded in a run report.
    """

    error_code: str = "CONFIGURATION_ERROR"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def convert_to_runner_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: dict[str, Any] | None = None,
    run_id: str | None = None,
) -> QueryRunnerError:
    """Convert any exception to the matching runner exception.

    Args:
    -----
    exception : Exception
        The original exception to convert
    default_message : str
        Message used when the exception type is not a known driver error
    context : dict, optional
        Additional context to include in error details
    run_id : str, optional
        Correlation id of the current run; stamped on the returned error

    Returns:
    --------
    QueryRunnerError or subclass
    """
    context = context or {}
    ids = {"run_id": run_id} if run_id else {}

    if isinstance(exception, QueryRunnerError):
        if run_id and exception.run_id != run_id:
            return replace(exception, run_id=run_id)
        return exception

    if isinstance(
        exception, (pymongo.errors.ConnectionFailure, pymongo.errors.ServerSelectionTimeoutError)
    ):
        return DatabaseConnectionError(
            message="Failed to connect to database",
            details={**context, "error": str(exception)},
            original_exception=exception,
            **ids,
        )

    # ExecutionTimeout subclasses OperationFailure, so it must be checked first
    if isinstance(exception, pymongo.errors.ExecutionTimeout):
        return DatabaseTimeoutError(
            message="Database operation timed out",
            details={**context, "error": str(exception)},
            original_exception=exception,
            **ids,
        )

    if isinstance(exception, pymongo.errors.OperationFailure):
        return QueryExecutionError(
            message="Database query failed",
            details={**context, "error": str(exception)},
            original_exception=exception,
            **ids,
        )

    if isinstance(exception, pymongo.errors.PyMongoError):
        return DatabaseError(
            message="Database error occurred",
            details={**context, "error": str(exception)},
            original_exception=exception,
            **ids,
        )

    return QueryRunnerError(
        message=default_message,
        error_code="INTERNAL_ERROR",
        details={**context, "error_type": type(exception).__name__, "error": str(exception)},
        original_exception=exception,
        **ids,
    )
