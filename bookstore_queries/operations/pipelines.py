"""Aggregation pipelines run against the books collection.

OBSERVABILITY: pipelines are plain lists so the executor can log their
stage names before sending them.
"""

from typing import Any

from pymongo import ASCENDING, DESCENDING

Pipeline = list[dict[str, Any]]


def average_by_group(group_field: str, value_field: str, output: str = "avg_price") -> Pipeline:
    """Mean of ``value_field`` per distinct ``group_field``.

    >>> average_by_group("genre", "price")
    [{'$group': {'_id': '$genre', 'avg_price': {'$avg': '$price'}}}]
    """
    return [{"$group": {"_id": f"${group_field}", output: {"$avg": f"${value_field}"}}}]


def top_by_count(group_field: str, limit: int = 1) -> Pipeline:
    """Groups by ``group_field``, counts members, keeps the ``limit`` largest groups."""
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    return [
        {"$group": {"_id": f"${group_field}", "count": {"$sum": 1}}},
        {"$sort": {"count": DESCENDING}},
        {"$limit": limit},
    ]


def decade_label(year_field: str) -> dict[str, Any]:
    """Expression producing ``"<floor(year / 10) * 10>s"``, e.g. 1951 -> "1950s"."""
    decade_start = {"$multiply": [{"$floor": {"$divide": [f"${year_field}", 10]}}, 10]}
    return {"$concat": [{"$toString": {"$toInt": decade_start}}, "s"]}


def count_by_decade(year_field: str = "published_year") -> Pipeline:
    """Buckets documents by decade label, counts each bucket, sorts labels ascending."""
    return [
        {"$project": {"decade": decade_label(year_field)}},
        {"$group": {"_id": "$decade", "count": {"$sum": 1}}},
        {"$sort": {"_id": ASCENDING}},
    ]


def stage_names(pipeline: Pipeline) -> list[str]:
    return [next(iter(stage)) for stage in pipeline]
