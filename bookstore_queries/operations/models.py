"""Result models, outcomes and the run report.

Key Components:
    - BookRecord: the external document shape (used by seed data only)
    - OperationKind / OperationStatus enums
    - One result model per kind of database response
    - OperationOutcome and RunReport aggregated by the runner
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..exceptions import QueryRunnerError


class BookRecord(BaseModel):
    """A document in the books collection.

    The runner assumes this shape but never validates what it reads back.
    """

    title: str
    author: str
    genre: str
    published_year: int
    price: float = Field(ge=0.0)
    in_stock: bool = True
    pages: int | None = Field(default=None, ge=1)
    publisher: str | None = None


class OperationKind(str, Enum):
    """Kind of request an operation sends to the server."""

    FIND = "find"
    UPDATE_ONE = "update_one"
    DELETE_ONE = "delete_one"
    AGGREGATE = "aggregate"
    CREATE_INDEX = "create_index"
    EXPLAIN = "explain"


class OperationStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# RESULT MODELS
# =============================================================================


class DocumentListResult(BaseModel):
    """Documents returned by a find, in server order."""

    result_type: Literal["documents"] = "documents"
    documents: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.documents)

    @property
    def first(self) -> dict[str, Any] | None:
        return self.documents[0] if self.documents else None


class UpdateOutcome(BaseModel):
    result_type: Literal["update"] = "update"
    matched_count: int = Field(ge=0)
    modified_count: int = Field(ge=0)

    @property
    def modified_one(self) -> bool:
        return self.modified_count == 1


class DeleteOutcome(BaseModel):
    result_type: Literal["delete"] = "delete"
    deleted_count: int = Field(ge=0)

    @property
    def deleted_one(self) -> bool:
        return self.deleted_count == 1


class AggregationRows(BaseModel):
    result_type: Literal["aggregation"] = "aggregation"
    rows: list[dict[str, Any]] = Field(default_factory=list)


class IndexAcknowledgement(BaseModel):
    """The server acknowledged an index; creating an existing one is a no-op."""

    result_type: Literal["index"] = "index"
    name: str
    keys: list[tuple[str, int]]


class ExplainSummary(BaseModel):
    """The parts of an ``executionStats`` explain output worth printing."""

    result_type: Literal["explain"] = "explain"
    winning_plan: dict[str, Any]
    access_path: str
    total_docs_examined: int | None = None
    total_keys_examined: int | None = None
    execution_time_millis: int | None = None


OperationResult = (
    DocumentListResult
    | UpdateOutcome
    | DeleteOutcome
    | AggregationRows
    | IndexAcknowledgement
    | ExplainSummary
)


# =============================================================================
# OUTCOMES
# =============================================================================


@dataclass
class OperationOutcome:
    """What happened to one entry of the operation table."""

    name: str
    kind: OperationKind
    status: OperationStatus
    result: OperationResult | None = None
    error: QueryRunnerError | None = None
    summary: str | None = None
    duration_ms: float | None = None


@dataclass
class RunReport:
    """Everything one ``QueryRunner.run()`` call produced."""

    target: str
    outcomes: list[OperationOutcome] = field(default_factory=list)
    error: QueryRunnerError | None = None
    connection_closed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def executed(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if o.status is not OperationStatus.SKIPPED]

    def outcome(self, name: str) -> OperationOutcome:
        """Look up an outcome by operation name.

        Raises:
            KeyError: If no operation with that name was part of the run
        """
        for candidate in self.outcomes:
            if candidate.name == name:
                return candidate
        raise KeyError(name)
