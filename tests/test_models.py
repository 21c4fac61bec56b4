"""Tests for schema models.

Covers:
- ObjectName parsing, quoting, equality and hashing
- ExpectedTable validation
- DriftReport aggregation and formatting
"""

import pytest
from pydantic import ValidationError

from db_drift.schema.models import (
    ColumnChange,
    DifferenceKind,
    DriftReport,
    ExpectedTable,
    ObjectName,
    StructuralDifference,
    quote_identifier,
    split_identifier,
)


class TestObjectName:
    """ObjectName identity semantics."""

    def test_parse_qualified(self) -> None:
        name = ObjectName.parse("app.mt_doc_order")
        assert name.schema_name == "app"
        assert name.name == "mt_doc_order"

    def test_parse_unqualified_uses_default_schema(self) -> None:
        assert ObjectName.parse("mt_doc_order") == ObjectName(schema="public", name="mt_doc_order")
        assert ObjectName.parse("mt_doc_order", default_schema="app").schema_name == "app"

    def test_unquoted_parts_fold_to_lower_case(self) -> None:
        assert ObjectName.parse("APP.Orders") == ObjectName(schema="app", name="orders")

    def test_quoted_parts_keep_case_and_dots(self) -> None:
        name = ObjectName.parse('"My Schema"."Order.Items"')
        assert name.schema_name == "My Schema"
        assert name.name == "Order.Items"

    def test_escaped_quote(self) -> None:
        assert split_identifier('"a""b"') == ['a"b']

    @pytest.mark.parametrize("text", ["", "a.b.c", 'app."unterminated', "app."])
    def test_invalid_text(self, text: str) -> None:
        with pytest.raises(ValueError):
            ObjectName.parse(text)

    def test_case_sensitive_equality(self) -> None:
        assert ObjectName(schema="app", name="Orders") != ObjectName(schema="app", name="orders")

    def test_hashable(self) -> None:
        names = {
            ObjectName(schema="app", name="t"),
            ObjectName(schema="app", name="t"),
            ObjectName(schema="public", name="t"),
        }
        assert len(names) == 2

    def test_str_quotes_when_needed(self) -> None:
        assert str(ObjectName(schema="app", name="mt_doc_order")) == "app.mt_doc_order"
        assert str(ObjectName(schema="app", name="Orders")) == 'app."Orders"'

    def test_string_accepted_as_field_value(self) -> None:
        table = ExpectedTable(name="app.orders")
        assert table.name == ObjectName(schema="app", name="orders")

    def test_empty_parts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ObjectName(schema="", name="t")

    def test_quote_identifier(self) -> None:
        assert quote_identifier("mt_doc_user") == "mt_doc_user"
        assert quote_identifier('we"ird') == '"we""ird"'


class TestExpectedTable:
    """ExpectedTable consistency validation."""

    def test_duplicate_columns_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate columns"):
            ExpectedTable(
                name="app.orders",
                columns=[{"name": "id", "data_type": "uuid"}, {"name": "id", "data_type": "int"}],
            )

    def test_primary_key_must_be_declared(self) -> None:
        with pytest.raises(ValidationError, match="Primary key columns not declared"):
            ExpectedTable(
                name="app.orders",
                columns=[{"name": "id", "data_type": "uuid"}],
                primary_key=["tenant_id", "id"],
            )

    def test_duplicate_index_names_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate index names"):
            ExpectedTable(
                name="app.orders",
                indexes=[{"name": "ix", "ddl": "a"}, {"name": "ix", "ddl": "b"}],
            )

    def test_column_lookup(self) -> None:
        table = ExpectedTable(name="app.orders", columns=[{"name": "id", "data_type": "uuid"}])
        assert table.column("id").data_type == "uuid"
        assert table.column("missing") is None


class TestDriftReport:
    """DriftReport aggregation."""

    def _diff(self, kind: DifferenceKind, entity: str = "app.orders", **kwargs) -> StructuralDifference:
        return StructuralDifference(kind=kind, entity_type="table", entity=entity, **kwargs)

    def test_empty_report_valid(self) -> None:
        report = DriftReport()
        assert report.valid
        assert not report.has_drift
        assert report.format_report() == "Schema in sync"

    def test_extras_do_not_invalidate(self) -> None:
        report = DriftReport(
            differences=[self._diff(DifferenceKind.IN_SYNC), self._diff(DifferenceKind.EXTRA, "app.mt_doc_old")]
        )

        assert report.valid
        assert report.has_drift
        assert report.format_report().startswith("Schema in sync with extras:")
        assert "table app.mt_doc_old" in report.format_report()

    def test_error_count(self) -> None:
        report = DriftReport(
            differences=[
                self._diff(DifferenceKind.MISSING, "app.a"),
                self._diff(DifferenceKind.ALTERED, "app.b"),
                self._diff(DifferenceKind.EXTRA, "app.c"),
                self._diff(DifferenceKind.IN_SYNC, "app.d"),
            ]
        )

        assert report.error_count == 2
        assert report.count(DifferenceKind.EXTRA) == 1
        assert not report.valid

    def test_format_lists_changes(self) -> None:
        report = DriftReport(
            differences=[
                self._diff(
                    DifferenceKind.ALTERED,
                    changes=[
                        ColumnChange(
                            column="amount",
                            change="type_changed",
                            actual_type="integer",
                            expected_type="numeric",
                        )
                    ],
                    actual_primary_key=["b", "a"],
                    expected_primary_key=["a", "b"],
                )
            ]
        )

        text = report.format_report()

        assert text.startswith("Schema drift detected:")
        assert "amount: integer -> numeric" in text
        assert "primary key: (b, a) -> (a, b)" in text

    def test_serializes_kind_values(self) -> None:
        report = DriftReport(differences=[self._diff(DifferenceKind.MISSING)])
        assert report.model_dump(mode="json")["differences"][0]["kind"] == "missing"
