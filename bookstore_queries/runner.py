"""QueryRunner: executes the operation table against one collection.

The runner opens one connection, executes every operation in order, prints a
summary of each result and releases the connection. The first failure stops
the sequence; it is logged, recorded in the report, and the remaining
operations are marked as skipped. ``run()`` does not raise for database
errors.

Example:
    >>> from bookstore_queries.config import get_settings
    >>> from bookstore_queries.runner import QueryRunner
    >>> report = QueryRunner(get_settings().to_runner_config()).run()
    >>> report.succeeded
    True
"""

import logging
import sys
import time
import uuid
from typing import TextIO

from pymongo import MongoClient
from pymongo.collection import Collection

from .config.settings import RunnerConfig
from .database.connection import ClientFactory, ConnectionManager
from .exceptions import QueryRunnerError, convert_to_runner_exception
from .operations.catalog import OperationSpec, build_operations
from .operations.models import OperationOutcome, OperationStatus, RunReport

logger = logging.getLogger(__name__)


class QueryRunner:
    """Runs a fixed, ordered list of operations over a single connection.

    Attributes:
        config: Connection target and query parameters for the run
        operations: The operation table, built from ``config.queries`` by default
        run_id: Correlation id stamped on every error in the report
    """

    def __init__(
        self,
        config: RunnerConfig,
        operations: list[OperationSpec] | None = None,
        client_factory: ClientFactory = MongoClient,
        out: TextIO | None = None,
        run_id: str | None = None,
    ) -> None:
        self.config = config
        self.run_id = run_id or str(uuid.uuid4())
        self.operations = operations if operations is not None else build_operations(
            config.queries
        )
        self._client_factory = client_factory
        self._out = out

        names = [spec.name for spec in self.operations]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Operation names must be unique, duplicated: {duplicates}")

    def run(self) -> RunReport:
        """Execute every operation and release the connection.

        Returns:
            RunReport with one outcome per operation; ``report.error`` holds the
            failure that stopped the run, if any
        """
        target = self.config.connection.target
        report = RunReport(target=str(target))
        manager = ConnectionManager(self.config.connection, client_factory=self._client_factory)

        logger.info(
            f"Running {len(self.operations)} operations",
            extra={"collection_name": str(target)},
        )

        try:
            with manager as collection:
                self._execute_all(collection, report)
        except QueryRunnerError as error:
            # Only connect() raises here; operation failures are recorded as outcomes
            report.error = convert_to_runner_exception(error, run_id=self.run_id)
            report.outcomes = [self._skipped(spec) for spec in self.operations]
            logger.error(f"Error running queries: {error}")

        report.connection_closed = not manager.is_connected()
        self._emit("Connection closed")

        executed = len(report.executed)
        if report.succeeded:
            logger.info(f"Run complete: {executed}/{len(self.operations)} operations succeeded")
        else:
            logger.warning(
                f"Run aborted after {executed}/{len(self.operations)} operations "
                f"[{report.error.error_code}]"
            )
        return report

    def _execute_all(self, collection: Collection, report: RunReport) -> None:
        current_section = None

        for spec in self.operations:
            if report.error is not None:
                report.outcomes.append(self._skipped(spec))
                continue

            if spec.section != current_section:
                current_section = spec.section
                self._emit(f"\n--- {current_section} ---")

            outcome = self._execute(spec, collection)
            report.outcomes.append(outcome)

            if outcome.status is OperationStatus.FAILED:
                report.error = outcome.error
                logger.error(
                    f"Error running queries: {outcome.error}",
                    extra={"operation": spec.name},
                )
            else:
                self._emit(outcome.summary)

    def _execute(self, spec: OperationSpec, collection: Collection) -> OperationOutcome:
        """Run one operation and format its result; never raises."""
        started = time.perf_counter()
        try:
            result = spec.execute(collection)
            summary = spec.describe(result)
        except Exception as e:
            error = convert_to_runner_exception(
                e,
                default_message=f"Operation {spec.name} failed",
                context={"operation": spec.name, "kind": spec.kind.value},
                run_id=self.run_id,
            )
            return OperationOutcome(
                name=spec.name,
                kind=spec.kind,
                status=OperationStatus.FAILED,
                error=error,
                duration_ms=self._elapsed_ms(started),
            )

        duration_ms = self._elapsed_ms(started)
        logger.debug(
            f"{spec.kind.value} finished",
            extra={"operation": spec.name, "duration_ms": duration_ms},
        )
        return OperationOutcome(
            name=spec.name,
            kind=spec.kind,
            status=OperationStatus.SUCCEEDED,
            result=result,
            summary=summary,
            duration_ms=duration_ms,
        )

    @staticmethod
    def _skipped(spec: OperationSpec) -> OperationOutcome:
        return OperationOutcome(name=spec.name, kind=spec.kind, status=OperationStatus.SKIPPED)

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    def _emit(self, text: str) -> None:
        print(text, file=self._out or sys.stdout)
