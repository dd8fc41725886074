"""The declarative table of operations the runner executes, in order.

Each entry pairs an executor call with a formatter that turns its result into
the lines printed for it. Sections only group the printed output.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pymongo.collection import Collection

from ..config.settings import QueryParameters
from . import executors, pipelines, queries
from .models import (
    AggregationRows,
    DocumentListResult,
    ExplainSummary,
    OperationKind,
    OperationResult,
)

BASIC_CRUD = "Basic CRUD Operations"
ADVANCED_QUERIES = "Advanced Queries"
AGGREGATION_PIPELINES = "Aggregation Pipelines"
INDEXING = "Indexing and Performance"

PROJECTED_FIELDS = ("title", "author", "price")


@dataclass(frozen=True)
class OperationSpec:
    """One row of the operation table.

    Attributes:
        name: Unique identifier used in logs and in the run report
        section: Heading the printed summary is grouped under
        kind: Kind of request sent to the server
        execute: Issues the request against the collection
        describe: Renders the result as human-readable text
    """

    name: str
    section: str
    kind: OperationKind
    execute: Callable[[Collection], OperationResult]
    describe: Callable[[Any], str]


# =============================================================================
# FORMATTERS
# =============================================================================


def _count_line(label: str) -> Callable[[DocumentListResult], str]:
    return lambda result: f"{label}: {result.count}"


def _extremal_line(label: str, field: str) -> Callable[[DocumentListResult], str]:
    def describe(result: DocumentListResult) -> str:
        record = result.first
        if record is None:
            return f"{label}: none"
        return f"{label}: {record.get('title')} {record.get(field)}"

    return describe


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def describe_averages(result: AggregationRows) -> str:
    lines = ["Average price by genre:"]
    for row in sorted(result.rows, key=lambda r: str(r["_id"])):
        lines.append(f"  {row['_id']}: {_format_number(row.get('avg_price'))}")
    return "\n".join(lines)


def describe_top_author(result: AggregationRows) -> str:
    if not result.rows:
        return "Author with most books: none"
    top = result.rows[0]
    return f"Author with most books: {top['_id']} ({top['count']} books)"


def describe_decades(result: AggregationRows) -> str:
    lines = ["Books grouped by decade:"]
    lines.extend(f"  {row['_id']}: {row['count']}" for row in result.rows)
    return "\n".join(lines)


def describe_explain(result: ExplainSummary) -> str:
    return "\n".join(
        [
            "Explain output for title search:",
            f"  access path: {result.access_path}",
            "  winning plan: "
            + json.dumps(result.winning_plan, indent=2, default=str).replace("\n", "\n  "),
            f"  totalDocsExamined: {result.total_docs_examined}",
            f"  totalKeysExamined: {result.total_keys_examined}",
            f"  executionTimeMillis: {result.execution_time_millis}",
        ]
    )


# =============================================================================
# OPERATION TABLE
# =============================================================================


def build_operations(params: QueryParameters) -> list[OperationSpec]:
    """The full ordered operation sequence for the given parameters."""
    skip = queries.page_offset(params.page_size, params.page_number)
    in_stock = queries.equality_filter("in_stock", True)

    return [
        OperationSpec(
            name="books_by_genre",
            section=BASIC_CRUD,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c, queries.equality_filter("genre", params.genre)
            ),
            describe=_count_line(f'Books in genre "{params.genre}"'),
        ),
        OperationSpec(
            name="books_published_after",
            section=BASIC_CRUD,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c, queries.greater_than_filter("published_year", params.published_after)
            ),
            describe=_count_line(f"Books published after {params.published_after}"),
        ),
        OperationSpec(
            name="books_by_author",
            section=BASIC_CRUD,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c, queries.equality_filter("author", params.author)
            ),
            describe=_count_line(f"Books by {params.author}"),
        ),
        OperationSpec(
            name="update_price",
            section=BASIC_CRUD,
            kind=OperationKind.UPDATE_ONE,
            execute=lambda c: executors.set_field(
                c,
                queries.equality_filter("title", params.update_title),
                "price",
                params.update_price,
            ),
            describe=lambda r: f'Updated price of "{params.update_title}": {r.modified_one}',
        ),
        OperationSpec(
            name="delete_by_title",
            section=BASIC_CRUD,
            kind=OperationKind.DELETE_ONE,
            execute=lambda c: executors.delete_document(
                c, queries.equality_filter("title", params.delete_title)
            ),
            describe=lambda r: f'Deleted "{params.delete_title}": {r.deleted_one}',
        ),
        OperationSpec(
            name="recent_in_stock",
            section=ADVANCED_QUERIES,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c,
                queries.all_of(
                    in_stock, queries.greater_than_filter("published_year", params.recent_year)
                ),
            ),
            describe=_count_line(f"Books in stock and published after {params.recent_year}"),
        ),
        OperationSpec(
            name="in_stock_projection",
            section=ADVANCED_QUERIES,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c, in_stock, projection=queries.include_fields(*PROJECTED_FIELDS)
            ),
            describe=_count_line(f"Projection ({', '.join(PROJECTED_FIELDS)}) count"),
        ),
        OperationSpec(
            name="cheapest_book",
            section=ADVANCED_QUERIES,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(c, {}, sort=queries.sort_by("price")),
            describe=_extremal_line("Lowest price book", "price"),
        ),
        OperationSpec(
            name="most_expensive_book",
            section=ADVANCED_QUERIES,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(
                c, {}, sort=queries.sort_by("price", descending=True)
            ),
            describe=_extremal_line("Highest price book", "price"),
        ),
        OperationSpec(
            name="page_of_books",
            section=ADVANCED_QUERIES,
            kind=OperationKind.FIND,
            execute=lambda c: executors.find_documents(c, {}, skip=skip, limit=params.page_size),
            describe=_count_line(f"Books on page {params.page_number}"),
        ),
        OperationSpec(
            name="average_price_by_genre",
            section=AGGREGATION_PIPELINES,
            kind=OperationKind.AGGREGATE,
            execute=lambda c: executors.run_pipeline(
                c, pipelines.average_by_group("genre", "price")
            ),
            describe=describe_averages,
        ),
        OperationSpec(
            name="top_author",
            section=AGGREGATION_PIPELINES,
            kind=OperationKind.AGGREGATE,
            execute=lambda c: executors.run_pipeline(c, pipelines.top_by_count("author")),
            describe=describe_top_author,
        ),
        OperationSpec(
            name="books_by_decade",
            section=AGGREGATION_PIPELINES,
            kind=OperationKind.AGGREGATE,
            execute=lambda c: executors.run_pipeline(c, pipelines.count_by_decade()),
            describe=describe_decades,
        ),
        OperationSpec(
            name="title_index",
            section=INDEXING,
            kind=OperationKind.CREATE_INDEX,
            execute=lambda c: executors.create_index(c, queries.ascending_keys("title")),
            describe=lambda r: f"Index created on title ({r.name})",
        ),
        OperationSpec(
            name="author_year_index",
            section=INDEXING,
            kind=OperationKind.CREATE_INDEX,
            execute=lambda c: executors.create_index(
                c, queries.ascending_keys("author", "published_year")
            ),
            describe=lambda r: f"Compound index created on author and published_year ({r.name})",
        ),
        OperationSpec(
            name="explain_title_search",
            section=INDEXING,
            kind=OperationKind.EXPLAIN,
            execute=lambda c: executors.explain_find(
                c, queries.equality_filter("title", params.explain_title)
            ),
            describe=describe_explain,
        ),
    ]
