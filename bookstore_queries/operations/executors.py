"""One function per operation kind.

Each executor issues exactly one request through the driver and wraps the
response in a result model. Errors from the driver propagate unchanged; the
runner converts them.
"""

import logging
from typing import Any

from pymongo.collection import Collection

from .models import (
    AggregationRows,
    DeleteOutcome,
    DocumentListResult,
    ExplainSummary,
    IndexAcknowledgement,
    UpdateOutcome,
)
from .pipelines import Pipeline, stage_names
from .queries import Filter, Projection, SortSpec

logger = logging.getLogger(__name__)


def find_documents(
    collection: Collection,
    flt: Filter,
    projection: Projection | None = None,
    sort: SortSpec | None = None,
    skip: int = 0,
    limit: int = 0,
) -> DocumentListResult:
    """Run a find and drain the cursor.

    Args:
        collection: Target collection
        flt: Query filter (``{}`` scans the whole collection)
        projection: Fields to return, or None for whole documents
        sort: Sort specification applied before skip and limit
        skip: Documents to skip
        limit: Maximum documents to return (0 means no limit)
    """
    logger.debug(
        f"find filter={flt} projection={projection} sort={sort} skip={skip} limit={limit}"
    )
    cursor = collection.find(flt, projection)
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return DocumentListResult(documents=list(cursor))


def set_field(collection: Collection, flt: Filter, field: str, value: Any) -> UpdateOutcome:
    """Set ``field`` to ``value`` on the first document matching ``flt``."""
    logger.debug(f"update_one filter={flt} $set {field}={value!r}")
    result = collection.update_one(flt, {"$set": {field: value}})
    return UpdateOutcome(matched_count=result.matched_count, modified_count=result.modified_count)


def delete_document(collection: Collection, flt: Filter) -> DeleteOutcome:
    logger.debug(f"delete_one filter={flt}")
    result = collection.delete_one(flt)
    return DeleteOutcome(deleted_count=result.deleted_count)


def run_pipeline(collection: Collection, pipeline: Pipeline) -> AggregationRows:
    logger.debug(f"aggregate stages={stage_names(pipeline)}")
    return AggregationRows(rows=list(collection.aggregate(pipeline)))


def create_index(collection: Collection, keys: SortSpec) -> IndexAcknowledgement:
    """Request an index; the server returns the existing name if it is already present."""
    logger.debug(f"create_index keys={keys}")
    name = collection.create_index(keys)
    return IndexAcknowledgement(name=name, keys=keys)


def explain_find(collection: Collection, flt: Filter) -> ExplainSummary:
    """Explain a find with ``executionStats`` verbosity and keep only the summary fields."""
    logger.debug(f"explain find filter={flt}")
    explain_result = collection.database.command(
        {"explain": {"find": collection.name, "filter": flt}, "verbosity": "executionStats"}
    )
    return summarize_explain(explain_result)


def summarize_explain(explain_result: dict[str, Any]) -> ExplainSummary:
    """Extract the winning plan and the three scalar metrics from explain output.

    Raises:
        KeyError: If the output has no queryPlanner.winningPlan
    """
    winning_plan = explain_result["queryPlanner"]["winningPlan"]
    stats = explain_result.get("executionStats", {})
    return ExplainSummary(
        winning_plan=winning_plan,
        access_path=access_path(winning_plan),
        total_docs_examined=stats.get("totalDocsExamined"),
        total_keys_examined=stats.get("totalKeysExamined"),
        execution_time_millis=stats.get("executionTimeMillis"),
    )


def access_path(plan: dict[str, Any]) -> str:
    """Name of the leaf stage of a plan, e.g. ``IXSCAN`` or ``COLLSCAN``.

    Servers using the slot based engine nest the classic plan under ``queryPlan``.
    """
    stage = plan.get("queryPlan", plan)
    while True:
        if "inputStage" in stage:
            stage = stage["inputStage"]
        elif stage.get("inputStages"):
            stage = stage["inputStages"][0]
        else:
            return stage.get("stage", "UNKNOWN")
