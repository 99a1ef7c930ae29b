"""
Unit tests for models.py
"""

import pytest

from partial_dump.errors import ConfigurationError
from partial_dump.models import (
    DumpDecl,
    DumpOptions,
    DumpResult,
    DumpType,
    LiteralValue,
    ManifestStats,
    TableStats,
    TransactionMode,
    Transform,
    as_substitution,
)


class TestDumpType:
    """Tests for DumpType enum."""

    def test_from_string(self):
        assert DumpType("copy") == DumpType.COPY
        assert DumpType("insert") == DumpType.INSERT
        assert DumpType("inserts") == DumpType.INSERTS
        assert DumpType("updates") == DumpType.UPDATES

    def test_invalid_type_raises(self):
        with pytest.raises(ValueError):
            DumpType("csv")


class TestSubstitutions:
    """Tests for LiteralValue, Transform and as_substitution."""

    def test_literal_ignores_original(self):
        assert LiteralValue("x").apply("original") == "x"

    def test_transform_receives_original(self):
        assert Transform(str.upper).apply("abc") == "ABC"

    def test_wraps_plain_value(self):
        assert as_substitution(5) == LiteralValue(5)

    def test_wraps_callable(self):
        substitution = as_substitution(len)
        assert isinstance(substitution, Transform)
        assert substitution.apply("four") == 4

    def test_none_is_a_literal(self):
        assert as_substitution(None) == LiteralValue(None)

    def test_passes_through_substitution(self):
        literal = LiteralValue(1)
        assert as_substitution(literal) is literal


class TestDumpOptions:
    """Tests for DumpOptions validation."""

    def test_defaults(self):
        options = DumpOptions()
        assert options.type == DumpType.COPY
        assert options.omit_ids is False
        assert options.columns is None
        assert options.omit_columns is None
        assert options.substitutions == {}
        assert options.delete_first is False
        assert options.transaction is None

    def test_type_from_string(self):
        assert DumpOptions(type="inserts").type == DumpType.INSERTS

    def test_none_type_means_copy(self):
        assert DumpOptions(type=None).type == DumpType.COPY

    def test_invalid_type(self):
        with pytest.raises(ConfigurationError, match="Invalid dump type"):
            DumpOptions(type="csv")

    def test_omit_ids_with_updates(self):
        with pytest.raises(ConfigurationError, match="omit_ids"):
            DumpOptions(omit_ids=True, type=DumpType.UPDATES)

    def test_delete_first_with_updates(self):
        with pytest.raises(ConfigurationError, match="delete_first"):
            DumpOptions(delete_first=True, type="updates")

    def test_omit_id_column_with_updates(self):
        with pytest.raises(ConfigurationError, match="cannot drop id"):
            DumpOptions(omit_columns=["id"], type="updates")

    @pytest.mark.parametrize("columns", [[], ["id"]])
    def test_updates_need_a_column_to_set(self, columns):
        with pytest.raises(ConfigurationError, match="nothing to update"):
            DumpOptions(columns=columns, type="updates")

    def test_omit_id_column_allowed_for_inserts(self):
        assert DumpOptions(omit_columns=["id"], type="inserts").omit_columns == {"id"}

    def test_columns_must_be_a_list(self):
        with pytest.raises(ConfigurationError, match="list of columns"):
            DumpOptions(columns="name")

    def test_columns_tuple_accepted(self):
        assert DumpOptions(columns=("name",)).columns == ["name"]

    def test_columns_not_mutated(self):
        columns = ["name"]
        DumpOptions(columns=columns)
        assert columns == ["name"]

    def test_omit_columns_becomes_frozenset(self):
        options = DumpOptions(omit_columns=["a", "b"])
        assert options.omit_columns == frozenset({"a", "b"})

    def test_omit_columns_string_rejected(self):
        with pytest.raises(ConfigurationError):
            DumpOptions(omit_columns="secret")

    def test_substitutions_must_be_a_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            DumpOptions(substitutions=[("a", 1)])

    def test_substitutions_normalised(self):
        options = DumpOptions(substitutions={"a": 1, "b": str.upper})
        assert options.substitutions["a"] == LiteralValue(1)
        assert isinstance(options.substitutions["b"], Transform)

    def test_transaction_modes(self):
        assert DumpOptions(transaction="begin").transaction == TransactionMode.BEGIN
        assert DumpOptions(transaction="full").transaction == TransactionMode.FULL
        assert DumpOptions(transaction=False).transaction is None

    def test_invalid_transaction(self):
        with pytest.raises(ConfigurationError, match="transaction"):
            DumpOptions(transaction="partial")

    def test_true_is_not_a_transaction_mode(self):
        with pytest.raises(ConfigurationError):
            DumpOptions(transaction=True)

    def test_from_mapping(self):
        options = DumpOptions.from_mapping({"type": "insert", "omit_ids": True})
        assert options.type == DumpType.INSERT
        assert options.omit_ids is True

    def test_from_mapping_rejects_unknown_option(self):
        with pytest.raises(ConfigurationError, match="Unknown dump option"):
            DumpOptions.from_mapping({"as": "other"})

    def test_coerce(self):
        options = DumpOptions(type="insert")
        assert DumpOptions.coerce(options) is options
        assert DumpOptions.coerce(None) == DumpOptions()
        assert DumpOptions.coerce({"type": "updates"}).type == DumpType.UPDATES

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            DumpOptions(type="nope")


class TestDumpResult:
    """Tests for DumpResult."""

    def test_unpacks(self):
        dump, ids = DumpResult("COPY ...", [1, 2])
        assert dump == "COPY ..."
        assert ids == [1, 2]

    def test_empty_is_distinct_from_empty_string(self):
        assert DumpResult(None, []).empty is True
        assert DumpResult("", []).empty is False


class TestDumpDecl:
    """Tests for DumpDecl."""

    def test_file_name_defaults_to_table(self):
        assert DumpDecl("vehicle").file_name == "vehicle.sql"

    def test_file_name_uses_alias(self):
        assert DumpDecl("vehicle", as_name="old_vehicles").file_name == "old_vehicles.sql"

    def test_default_condition(self):
        assert DumpDecl("vehicle").condition == "true"


class TestStats:
    """Tests for TableStats and ManifestStats."""

    def test_total_rows(self):
        stats = ManifestStats(tables=[
            TableStats("a", rows_dumped=2),
            TableStats("b", rows_dumped=3),
        ])
        assert stats.total_rows == 5

    def test_defaults(self):
        stats = ManifestStats()
        assert stats.tables == []
        assert stats.empty == []
        assert stats.elapsed == 0.0
