"""Drift detection passes.

``DriftDetector`` ties the pieces together: it asks the expected-schema
source for a table, materializes the live table, compares them, and
collects the results in a ``DriftReport``.  It reports only; applying
changes is someone else's job.

A catalog failure aborts the pass and propagates -- a failed pass is never
reported as "no drift".

Usage:
    detector = DriftDetector(reader, materializer, source)
    report = await detector.check_type("Order")
    if not report.valid:
        print(report.format_report())
"""

import logging
from collections.abc import Hashable, Iterable

from db_drift.schema.comparator import compare, compare_function, extra_functions, extra_tables
from db_drift.schema.expected import ExpectedSchemaSource
from db_drift.schema.introspector import CatalogReader
from db_drift.schema.materializer import TableMaterializer
from db_drift.schema.models import DifferenceKind, DriftReport, ExpectedFunction

logger = logging.getLogger(__name__)


class DriftDetector:
    """Runs comparison passes against the live catalog."""

    def __init__(
        self,
        reader: CatalogReader,
        materializer: TableMaterializer,
        source: ExpectedSchemaSource,
    ) -> None:
        self._reader = reader
        self._materializer = materializer
        self._source = source

    async def check_type(self, type_identifier: Hashable) -> DriftReport:
        """Compare one document type's expected table with the database."""
        expected, actual = await self._materializer.existing_table_for(
            type_identifier, self._source
        )
        differences = compare(expected, actual, index_prefix=self._reader.settings.index_prefix)
        report = DriftReport(differences=differences)
        _log_report(f"type {type_identifier!r}", report)
        return report

    async def check_types(self, type_identifiers: Iterable[Hashable]) -> DriftReport:
        """Compare several document types, plus unexpected document tables."""
        differences = []
        expected_tables = []
        for type_identifier in type_identifiers:
            expected, actual = await self._materializer.existing_table_for(
                type_identifier, self._source
            )
            expected_tables.append(expected.name)
            differences.extend(
                compare(expected, actual, index_prefix=self._reader.settings.index_prefix)
            )

        live = await self._reader.list_document_tables()
        differences.extend(extra_tables(expected_tables, [t.name for t in live]))

        report = DriftReport(differences=differences)
        _log_report(f"{len(expected_tables)} types", report)
        return report

    async def check_functions(self, expected: Iterable[ExpectedFunction]) -> DriftReport:
        """Compare expected functions, plus unexpected managed functions."""
        expected = list(expected)
        differences = []
        for function in expected:
            actual = await self._reader.get_function_definition(
                function.name, arguments=function.arguments
            )
            differences.append(compare_function(function, actual))

        live = await self._reader.list_managed_functions()
        differences.extend(extra_functions([f.name for f in expected], live))

        report = DriftReport(differences=differences)
        _log_report(f"{len(expected)} functions", report)
        return report


def _log_report(scope: str, report: DriftReport) -> None:
    for diff in report.by_kind(DifferenceKind.EXTRA):
        logger.warning("Unexpected managed %s: %s", diff.entity_type, diff.entity)
    if not report.valid:
        logger.info("Drift found for %s: %d error(s)", scope, report.error_count)
    else:
        logger.debug("No drift for %s", scope)
