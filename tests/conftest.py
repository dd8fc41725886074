"""Pytest configuration and shared fixtures for the query runner tests.

Testing Strategy:
-----------------
1. **Unit tests** (tests/unit): no server. Database calls go either to a
   ``MagicMock`` client, when a test only asserts which calls were made, or to
   the in-memory ``FakeMongoClient`` below, when a test asserts what a query
   returns for a known set of documents.
2. **Integration tests** (tests/integration): a real MongoDB reachable at
   ``MONGODB_TEST_URI``. Skipped when the variable is unset.

The fake evaluates only the operators the runner sends: equality, ``$gt``,
``$gte``, ``$lt``, ``$lte`` and ``$ne`` in filters; inclusion projections;
sort, skip and limit on cursors; ``$match``, ``$project``, ``$group``
(``$sum``, ``$avg``), ``$sort``, ``$skip`` and ``$limit`` stages; and the
``$concat``, ``$toString``, ``$toInt``, ``$multiply``, ``$floor`` and
``$divide`` expressions.
"""

import math
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from bookstore_queries.config.settings import (
    CollectionRef,
    ConnectionSettings,
    QueryParameters,
    RunnerConfig,
)

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Register custom markers.

    - @pytest.mark.unit: Fast, isolated unit tests
    - @pytest.mark.integration: Tests requiring a running MongoDB
    """
    config.addinivalue_line("markers", "unit: Fast unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests with a running MongoDB")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory."""
    for item in items:
        test_path = Path(item.fspath)
        if "unit" in test_path.parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in test_path.parts:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# IN-MEMORY FAKE CLIENT
# =============================================================================

_MISSING = object()

_COMPARISONS = {
    "$gt": lambda value, operand: value > operand,
    "$gte": lambda value, operand: value >= operand,
    "$lt": lambda value, operand: value < operand,
    "$lte": lambda value, operand: value <= operand,
    "$ne": lambda value, operand: value != operand,
}


def _matches(document: dict, flt: dict) -> bool:
    for field, condition in flt.items():
        value = document.get(field, _MISSING)
        if isinstance(condition, dict) and all(key.startswith("$") for key in condition):
            for operator, operand in condition.items():
                if value is _MISSING:
                    if operator != "$ne":
                        return False
                    continue
                if not _COMPARISONS[operator](value, operand):
                    return False
        elif value is _MISSING or value != condition:
            return False
    return True


def _evaluate(expression: Any, document: dict) -> Any:
    if isinstance(expression, str) and expression.startswith("$"):
        return document.get(expression[1:])
    if isinstance(expression, dict) and len(expression) == 1:
        operator, argument = next(iter(expression.items()))
        if operator == "$concat":
            return "".join(_evaluate(part, document) for part in argument)
        if operator == "$toString":
            return str(_evaluate(argument, document))
        if operator == "$toInt":
            return int(_evaluate(argument, document))
        if operator == "$multiply":
            return math.prod(_evaluate(part, document) for part in argument)
        if operator == "$floor":
            return math.floor(_evaluate(argument, document))
        if operator == "$divide":
            numerator, denominator = (_evaluate(part, document) for part in argument)
            return numerator / denominator
    return expression


def _sorted(documents: list[dict], spec: list[tuple[str, int]]) -> list[dict]:
    ordered = list(documents)
    for field, direction in reversed(spec):
        ordered.sort(key=lambda doc: doc.get(field), reverse=direction == -1)
    return ordered


def _project(document: dict, projection: dict | None) -> dict:
    if not projection:
        return dict(document)
    projected = {}
    if projection.get("_id", 1) and "_id" in document:
        projected["_id"] = document["_id"]
    for field, include in projection.items():
        if field != "_id" and include and field in document:
            projected[field] = document[field]
    return projected


class FakeCursor:
    """Applies sort, then skip, then limit when iterated, like a server cursor."""

    def __init__(self, documents: list[dict]):
        self._documents = documents
        self._sort: list[tuple[str, int]] = []
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list, direction=None):
        if isinstance(key_or_list, str):
            key_or_list = [(key_or_list, direction or 1)]
        self._sort = list(key_or_list)
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def __iter__(self):
        documents = _sorted(self._documents, self._sort)[self._skip :]
        if self._limit:
            documents = documents[: self._limit]
        return iter(documents)


class FakeCollection:
    def __init__(self, name: str, database: "FakeDatabase"):
        self.name = name
        self.database = database
        self.documents: list[dict] = []
        self.indexes: dict[str, list[tuple[str, int]]] = {}

    def insert_many(self, documents):
        inserted_ids = []
        for document in documents:
            stored = {"_id": ObjectId(), **document}
            self.documents.append(stored)
            inserted_ids.append(stored["_id"])
        return SimpleNamespace(inserted_ids=inserted_ids)

    def drop(self):
        self.documents = []
        self.indexes = {}

    def count_documents(self, flt):
        return sum(1 for document in self.documents if _matches(document, flt))

    def find(self, flt=None, projection=None):
        matched = [
            _project(document, projection)
            for document in self.documents
            if _matches(document, flt or {})
        ]
        return FakeCursor(matched)

    def update_one(self, flt, update):
        for document in self.documents:
            if _matches(document, flt):
                modified = 0
                for field, value in update["$set"].items():
                    if document.get(field, _MISSING) != value:
                        document[field] = value
                        modified = 1
                return SimpleNamespace(matched_count=1, modified_count=modified)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, flt):
        for index, document in enumerate(self.documents):
            if _matches(document, flt):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def create_index(self, keys):
        name = "_".join(f"{field}_{direction}" for field, direction in keys)
        self.indexes.setdefault(name, list(keys))
        return name

    def aggregate(self, pipeline):
        documents = [dict(document) for document in self.documents]
        for stage in pipeline:
            operator, spec = next(iter(stage.items()))
            if operator == "$match":
                documents = [doc for doc in documents if _matches(doc, spec)]
            elif operator == "$project":
                documents = [self._project_stage(doc, spec) for doc in documents]
            elif operator == "$group":
                documents = self._group_stage(documents, spec)
            elif operator == "$sort":
                documents = _sorted(documents, list(spec.items()))
            elif operator == "$skip":
                documents = documents[spec:]
            elif operator == "$limit":
                documents = documents[:spec]
            else:
                raise NotImplementedError(f"Fake does not support {operator}")
        return iter(documents)

    @staticmethod
    def _project_stage(document: dict, spec: dict) -> dict:
        projected = {}
        if spec.get("_id", 1) in (1, True):
            projected["_id"] = document.get("_id")
        for field, expression in spec.items():
            if field == "_id":
                continue
            if expression in (1, True) and not isinstance(expression, dict):
                if field in document:
                    projected[field] = document[field]
            else:
                projected[field] = _evaluate(expression, document)
        return projected

    @staticmethod
    def _group_stage(documents: list[dict], spec: dict) -> list[dict]:
        groups: dict[Any, list[dict]] = {}
        for document in documents:
            groups.setdefault(_evaluate(spec["_id"], document), []).append(document)

        rows = []
        for key, members in groups.items():
            row = {"_id": key}
            for field, accumulator in spec.items():
                if field == "_id":
                    continue
                operator, argument = next(iter(accumulator.items()))
                values = [_evaluate(argument, member) for member in members]
                if operator == "$sum":
                    row[field] = sum(values)
                elif operator == "$avg":
                    numbers = [value for value in values if isinstance(value, (int, float))]
                    row[field] = sum(numbers) / len(numbers) if numbers else None
                else:
                    raise NotImplementedError(f"Fake does not support {operator}")
            rows.append(row)
        return rows


class FakeDatabase:
    def __init__(self, name: str):
        self.name = name
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name, self)
        return self._collections[name]

    def command(self, command, *args, **kwargs):
        if command == "ping":
            return {"ok": 1.0}
        if isinstance(command, dict) and "explain" in command:
            return self._explain(command["explain"])
        raise NotImplementedError(f"Fake does not support command {command!r}")

    def _explain(self, find_command: dict) -> dict:
        collection = self[find_command["find"]]
        flt = find_command.get("filter", {})
        matched = collection.count_documents(flt)

        for name, keys in collection.indexes.items():
            if keys[0][0] in flt:
                plan = {
                    "stage": "FETCH",
                    "inputStage": {
                        "stage": "IXSCAN",
                        "keyPattern": dict(keys),
                        "indexName": name,
                    },
                }
                keys_examined, docs_examined = matched, matched
                break
        else:
            plan = {"stage": "COLLSCAN", "filter": flt, "direction": "forward"}
            keys_examined, docs_examined = 0, len(collection.documents)

        return {
            "queryPlanner": {"namespace": f"{self.name}.{collection.name}", "winningPlan": plan},
            "executionStats": {
                "nReturned": matched,
                "executionTimeMillis": 0,
                "totalKeysExamined": keys_examined,
                "totalDocsExamined": docs_examined,
            },
            "ok": 1.0,
        }


class FakeMongoClient:
    """Stands in for ``pymongo.MongoClient``; counts ``close()`` calls."""

    def __init__(self, uri: str | None = None, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.close_calls = 0
        self.admin = FakeDatabase("admin")
        self._databases: dict[str, FakeDatabase] = {}

    def __getitem__(self, name: str) -> FakeDatabase:
        if name not in self._databases:
            self._databases[name] = FakeDatabase(name)
        return self._databases[name]

    def close(self):
        self.close_calls += 1


# =============================================================================
# FIXTURES
# =============================================================================


def make_book(title: str, **overrides) -> dict:
    """A books document with plausible defaults for every schema field."""
    book = {
        "title": title,
        "author": "Anonymous",
        "genre": "Fiction",
        "published_year": 2000,
        "price": 10.0,
        "in_stock": True,
    }
    book.update(overrides)
    return book


@pytest.fixture
def fake_client() -> FakeMongoClient:
    return FakeMongoClient()


@pytest.fixture
def books_collection(fake_client) -> FakeCollection:
    """The empty ``plp_bookstore.books`` collection of ``fake_client``."""
    return fake_client["plp_bookstore"]["books"]


@pytest.fixture
def fixture_books() -> list[dict]:
    """Twelve books with known genres, years, authors and prices."""
    return [
        make_book("Alpha", genre="Fiction", published_year=1945, author="A. Writer", price=9.5),
        make_book("Bravo", genre="Fiction", published_year=1950, author="B. Writer", price=12.0),
        make_book("Charlie", genre="Poetry", published_year=1955, author="A. Writer", price=7.25),
        make_book("Delta", genre="Fiction", published_year=2015, author="C. Writer", price=22.0),
        make_book("Echo", genre="History", published_year=1999, author="D. Writer", price=15.0),
        make_book("Foxtrot", genre="Fiction", published_year=2012, in_stock=False, price=11.0),
        make_book("Golf", genre="Poetry", published_year=1988, author="A. Writer", price=8.0),
        make_book("Hotel", genre="History", published_year=2001, author="E. Writer", price=30.0),
        make_book("India", genre="Science", published_year=2019, author="F. Writer", price=18.5),
        make_book("Juliett", genre="Science", published_year=1972, author="G. Writer", price=5.0),
        make_book("Kilo", genre="Fiction", published_year=2011, author="H. Writer", price=13.0),
        make_book("Lima", genre="Drama", published_year=1933, author="I. Writer", price=6.75),
    ]


@pytest.fixture
def seeded_collection(books_collection, fixture_books) -> FakeCollection:
    books_collection.insert_many(fixture_books)
    return books_collection


@pytest.fixture
def runner_config() -> RunnerConfig:
    return RunnerConfig(
        connection=ConnectionSettings(
            uri="mongodb://localhost:27017",
            target=CollectionRef(database="plp_bookstore", collection="books"),
            timeout_ms=2000,
        ),
        queries=QueryParameters(),
    )


@pytest.fixture
def client_factory(fake_client) -> MagicMock:
    """A ``MongoClient`` replacement that always hands out ``fake_client``."""
    return MagicMock(return_value=fake_client)


@pytest.fixture
def mock_client() -> MagicMock:
    """A fully mocked client for tests that only assert which calls were made."""
    client = MagicMock()
    client.admin.command.return_value = {"ok": 1.0}
    return client
