"""MongoDB connection manager with scoped acquisition and exactly-once release.

One ``ConnectionManager`` owns one ``MongoClient`` for the duration of a run.
It is used as a context manager: entering opens the client, pings the server
and yields the target collection; leaving closes the client. The client is
closed exactly once on every exit path, including a failed ping during entry.

Example:
    >>> from bookstore_queries.config import get_settings
    >>> from bookstore_queries.database.connection import ConnectionManager
    >>> config = get_settings().to_runner_config()
    >>> with ConnectionManager(config.connection) as books:
    ...     print(books.count_documents({}))
"""

import logging
from collections.abc import Callable
from typing import Any

from pymongo import MongoClient
from pymongo.collection import Collection

from ..config.settings import ConnectionSettings
from ..exceptions import DatabaseConnectionError, convert_to_runner_exception

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


class ConnectionManager:
    """Owns a single MongoDB client for one run.

    Attributes:
        settings: URI, target collection and timeout for the client
        close_count: Number of times the client was released (0 or 1)
    """

    def __init__(
        self,
        settings: ConnectionSettings,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self.settings = settings
        self._client_factory = client_factory
        self._client: Any | None = None
        self.close_count = 0

        logger.debug(f"ConnectionManager initialized for {settings.target}")

    def connect(self) -> Collection:
        """Open the client, verify the server answers, and resolve the collection.

        Returns:
            The collection named by ``settings.target``

        Raises:
            DatabaseConnectionError: If a client is already open, the client
                cannot be created, or the server does not answer the ping
        """
        if self._client is not None:
            raise DatabaseConnectionError(
                message="A connection is already open for this run",
                details={"target": str(self.settings.target)},
            )

        logger.info("Connecting to MongoDB...")

        try:
            self._client = self._client_factory(
                self.settings.uri,
                serverSelectionTimeoutMS=self.settings.timeout_ms,
                connectTimeoutMS=self.settings.timeout_ms,
            )
            self._client.admin.command("ping")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            # A client that was created but never answered still holds sockets
            self.disconnect()
            error = convert_to_runner_exception(
                e,
                default_message="Unexpected error connecting to MongoDB",
                context={"operation": "connect", "target": str(self.settings.target)},
            )
            if not isinstance(error, DatabaseConnectionError):
                error = DatabaseConnectionError(
                    message=f"Failed to connect to MongoDB: {error.message}",
                    details=error.details,
                    original_exception=e,
                )
            raise error from e

        target = self.settings.target
        logger.info(f"Connected to MongoDB (target: {target})")
        return self._client[target.database][target.collection]

    def disconnect(self) -> None:
        """Close the client if one is open. Safe to call repeatedly."""
        if self._client is None:
            logger.debug("No open MongoDB client, nothing to disconnect")
            return

        client, self._client = self._client, None
        try:
            client.close()
            logger.info("MongoDB connection closed")
        except Exception as e:
            logger.warning(f"Error closing MongoDB connection: {e}")
        finally:
            self.close_count += 1

    def is_connected(self) -> bool:
        return self._client is not None

    def __enter__(self) -> Collection:
        return self.connect()

    def __exit__(self, exc_type, exc_value, exc_tb) -> None:
        self.disconnect()
