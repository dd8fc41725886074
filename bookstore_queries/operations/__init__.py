"""Operation table, builders, executors and result models.

The runner only depends on ``build_operations``; the other modules are the
pieces each table entry is assembled from.
"""

from .catalog import OperationSpec, build_operations
from .models import (
    AggregationRows,
    BookRecord,
    DeleteOutcome,
    DocumentListResult,
    ExplainSummary,
    IndexAcknowledgement,
    OperationKind,
    OperationOutcome,
    OperationStatus,
    RunReport,
    UpdateOutcome,
)

__all__ = [
    "AggregationRows",
    "BookRecord",
    "DeleteOutcome",
    "DocumentListResult",
    "ExplainSummary",
    "IndexAcknowledgement",
    "OperationKind",
    "OperationOutcome",
    "OperationSpec",
    "OperationStatus",
    "RunReport",
    "UpdateOutcome",
    "build_operations",
]
