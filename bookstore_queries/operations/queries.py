"""Builders for find filters, projections, sort specs and pagination offsets.

Every function here is pure: it returns the document the driver sends and
never touches a collection.
"""

from typing import Any

from pymongo import ASCENDING, DESCENDING

Filter = dict[str, Any]
Projection = dict[str, int]
SortSpec = list[tuple[str, int]]


def equality_filter(field: str, value: Any) -> Filter:
    """Match documents whose ``field`` equals ``value``.

    >>> equality_filter("genre", "Fiction")
    {'genre': 'Fiction'}
    """
    return {field: value}


def greater_than_filter(field: str, threshold: Any) -> Filter:
    """Match documents whose ``field`` is strictly greater than ``threshold``.

    The threshold itself is excluded.

    >>> greater_than_filter("published_year", 1950)
    {'published_year': {'$gt': 1950}}
    """
    return {field: {"$gt": threshold}}


def all_of(*filters: Filter) -> Filter:
    """Conjunction of filters on distinct fields.

    Raises:
        ValueError: If two filters constrain the same field, since merging
            them into one document would silently drop a condition
    """
    combined: Filter = {}
    for flt in filters:
        overlap = combined.keys() & flt.keys()
        if overlap:
            raise ValueError(f"Filters constrain the same field more than once: {sorted(overlap)}")
        combined.update(flt)
    return combined


def include_fields(*fields: str, include_id: bool = False) -> Projection:
    """Projection that returns only ``fields``; ``_id`` is suppressed unless asked for.

    >>> include_fields("title", "author")
    {'title': 1, 'author': 1, '_id': 0}
    """
    if not fields:
        raise ValueError("A projection needs at least one field")
    projection = {name: 1 for name in fields}
    if not include_id:
        projection["_id"] = 0
    return projection


def sort_by(field: str, descending: bool = False) -> SortSpec:
    return [(field, DESCENDING if descending else ASCENDING)]


def ascending_keys(*fields: str) -> SortSpec:
    """Index key specification, ascending on every field in the given order."""
    if not fields:
        raise ValueError("An index needs at least one field")
    return [(name, ASCENDING) for name in fields]


def page_offset(page_size: int, page_number: int) -> int:
    """Number of documents to skip to reach a 1-based page.

    >>> page_offset(5, 2)
    5

    Raises:
        ValueError: If page_size or page_number is lower than 1
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if page_number < 1:
        raise ValueError(f"page_number must be >= 1, got {page_number}")
    return page_size * (page_number - 1)
