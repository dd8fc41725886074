"""Sample books and a loader for an empty (or disposable) collection.

The query sequence expects a populated ``books`` collection; ``seed_books``
provides one. Titles and authors are chosen so every predefined operation has
something to match.
"""

import logging
from collections.abc import Iterable

from pymongo.collection import Collection

from .operations.models import BookRecord

logger = logging.getLogger(__name__)

SAMPLE_BOOKS: tuple[BookRecord, ...] = (
    BookRecord(
        title="To Kill a Mockingbird",
        author="Harper Lee",
        genre="Fiction",
        published_year=1960,
        price=12.99,
        in_stock=True,
        pages=336,
        publisher="J. B. Lippincott & Co.",
    ),
    BookRecord(
        title="1984",
        author="George Orwell",
        genre="Dystopian",
        published_year=1949,
        price=10.99,
        in_stock=True,
        pages=328,
        publisher="Secker & Warburg",
    ),
    BookRecord(
        title="The Great Gatsby",
        author="F. Scott Fitzgerald",
        genre="Fiction",
        published_year=1925,
        price=9.99,
        in_stock=True,
        pages=180,
        publisher="Charles Scribner's Sons",
    ),
    BookRecord(
        title="Brave New World",
        author="Aldous Huxley",
        genre="Dystopian",
        published_year=1932,
        price=11.50,
        in_stock=False,
        pages=311,
        publisher="Chatto & Windus",
    ),
    BookRecord(
        title="Dune",
        author="Frank Herbert",
        genre="Science Fiction",
        published_year=1965,
        price=14.99,
        in_stock=True,
        pages=412,
        publisher="Chilton Books",
    ),
    BookRecord(
        title="The Catcher in the Rye",
        author="J.D. Salinger",
        genre="Fiction",
        published_year=1951,
        price=8.99,
        in_stock=True,
        pages=224,
        publisher="Little, Brown and Company",
    ),
    BookRecord(
        title="Pride and Prejudice",
        author="Jane Austen",
        genre="Romance",
        published_year=1813,
        price=7.99,
        in_stock=True,
        pages=432,
        publisher="T. Egerton",
    ),
    BookRecord(
        title="The Lord of the Rings",
        author="J.R.R. Tolkien",
        genre="Fantasy",
        published_year=1954,
        price=19.99,
        in_stock=True,
        pages=1178,
        publisher="Allen & Unwin",
    ),
    BookRecord(
        title="Animal Farm",
        author="George Orwell",
        genre="Political Satire",
        published_year=1945,
        price=8.50,
        in_stock=False,
        pages=112,
        publisher="Secker & Warburg",
    ),
    BookRecord(
        title="The Alchemist",
        author="Paulo Coelho",
        genre="Fiction",
        published_year=1988,
        price=10.99,
        in_stock=True,
        pages=197,
        publisher="HarperOne",
    ),
    BookRecord(
        title="Moby Dick",
        author="Herman Melville",
        genre="Adventure",
        published_year=1851,
        price=12.50,
        in_stock=False,
        pages=635,
        publisher="Harper & Brothers",
    ),
    BookRecord(
        title="The Midnight Library",
        author="Matt Haig",
        genre="Fiction",
        published_year=2020,
        price=13.99,
        in_stock=True,
        pages=304,
        publisher="Canongate Books",
    ),
)


def seed_books(
    collection: Collection,
    books: Iterable[BookRecord] = SAMPLE_BOOKS,
    drop: bool = True,
) -> int:
    """Insert ``books`` into ``collection``.

    Args:
        collection: Target collection
        books: Records to insert
        drop: Drop the collection first, including its indexes

    Returns:
        Number of inserted documents
    """
    documents = [book.model_dump(exclude_none=True) for book in books]
    if drop:
        logger.info(f"Dropping collection {collection.name}")
        collection.drop()
    if not documents:
        return 0

    result = collection.insert_many(documents)
    inserted = len(result.inserted_ids)
    logger.info(f"Inserted {inserted} books into {collection.name}")
    return inserted
