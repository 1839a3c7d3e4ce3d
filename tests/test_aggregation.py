"""Role configuration, per-table partial aggregates and the cross-table merge."""
from __future__ import annotations

import sqlite3

import pytest
from pydantic import ValidationError

from tablescope.engine import aggregation
from tablescope.engine.aggregation import (
    RecordAmount,
    TableAggregate,
    aggregate_all_tables,
    aggregate_table,
    merge_aggregates,
)
from tablescope.engine.errors import MetadataError, QueryError, TableNotFoundError
from tablescope.engine.roles import RoleConfig, load_roles, pick_first_column
from tablescope.engine.schema import SchemaIntrospector
from tablescope.repositories import DatasetRepository


@pytest.fixture
def awardee_repo(tmp_path):
    path = tmp_path / "awardees.db"
    conn = sqlite3.connect(path)
    conn.executescript("""
        CREATE TABLE A (Adjudicatario TEXT);
        CREATE TABLE B (Adjudicatario TEXT);
        INSERT INTO A VALUES ('Acme'), ('Acme'), ('Acme');
        INSERT INTO B VALUES ('Acme'), ('Acme'), ('Beta');
    """)
    conn.commit()
    conn.close()
    r = DatasetRepository.open(path)
    yield r
    r.close()


@pytest.fixture
def shadowing_repo(tmp_path):
    path = tmp_path / "shadowing.db"
    conn = sqlite3.connect(path)
    conn.executescript("""
        CREATE TABLE Org_licitacions (k TEXT, y TEXT, m TEXT, Tipo TEXT, Importe TEXT, Fechas TEXT);
        INSERT INTO Org_licitacions VALUES
            ('a', 'x', 'p', 'Obras', '1.000,00', '01/03/2023'),
            ('b', 'z', 'q', 'Obras', '2.000,00', '05/03/2023'),
            ('c', 'w', 'r', '', '500,00', '09/04/2023');
    """)
    conn.commit()
    conn.close()
    r = DatasetRepository.open(path)
    yield r
    r.close()


# ============================================================================
# Roles
# ============================================================================

class TestRoles:
    def test_pick_first_column_is_case_insensitive(self):
        assert pick_first_column(["importe", "Tipo"], ["Importe", "Tipo"]) == "importe"
        assert pick_first_column(["a", "b"], ["Importe"]) is None

    def test_first_candidate_wins(self):
        assert pick_first_column(["Empresa", "Proveedor"], ["Proveedor", "Empresa"]) == "Proveedor"

    def test_bundled_roles(self):
        roles = load_roles()
        assert roles.amount[0] == "Importe"
        assert roles.record_id == ["Expediente"]
        assert roles.labels.missing_type == "(Sen tipo)"
        assert roles.attachment_suffixes == ["_files", "_file"]

    def test_date_column_by_suffix(self):
        roles = load_roles()
        assert roles.date_column_for("Alcaldia_Contratos_Menores") == "Estado"
        assert roles.date_column_for("Deputacion_licitacions") == "Fechas"
        assert roles.date_column_for("notes") is None

    def test_custom_roles_file(self, tmp_path):
        path = tmp_path / "roles.yaml"
        path.write_text("type: [Kind]\ndate_columns:\n  _LOG: When\n", encoding="utf-8")
        roles = load_roles(path)
        assert roles.type == ["Kind"]
        assert roles.date_column_for("app_log") == "When"

    def test_empty_suffixes_rejected(self):
        with pytest.raises(ValidationError):
            RoleConfig(attachment_suffixes=[])

    def test_missing_roles_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_roles(tmp_path / "absent.yaml")


# ============================================================================
# Merge
# ============================================================================

class TestMergeAggregates:
    def test_awardee_stacks_align_to_global_order(self, awardee_repo):
        result = aggregate_all_tables(awardee_repo)
        assert list(zip(result.awardees.labels, result.awardees.values)) == [("Acme", 5), ("Beta", 1)]
        assert [(s.table, s.values) for s in result.awardees.series] == [("A", [3, 0]), ("B", [2, 1])]

    def test_pure_merge(self):
        a = TableAggregate(
            table="A",
            type_counts={"x": 2, "y": 1},
            monthly_counts={"2023-02": 1},
            top_records=(RecordAmount("a1", 10.0, table="A"),),
            with_attachment=1,
            total_rows=3,
        )
        b = TableAggregate(
            table="B",
            type_counts={"y": 4},
            monthly_counts={"2023-01": 2},
            monthly_amounts={"2023-01": 7.5},
            top_records=(RecordAmount("b1", 20.0, table="B"), RecordAmount("b2", 5.0, table="B")),
            total_rows=4,
        )
        c = TableAggregate(table="C", total_rows=1)
        merged = merge_aggregates([a, b, c], record_limit=2)

        assert merged.tables == ["A", "B", "C"]
        assert merged.type_counts.labels == ["y", "x"]
        assert merged.type_counts.values == [5, 2]
        assert [(s.table, s.values) for s in merged.type_counts.series] == [("A", [1, 2]), ("B", [4, 0])]
        assert merged.type_amounts.labels == []
        assert merged.monthly.labels == ["2023-01", "2023-02"]
        assert merged.monthly.counts == [2, 1]
        assert merged.monthly.amounts == [7.5, 0.0]
        assert [s.table for s in merged.monthly.count_series] == ["A", "B"]
        assert [s.table for s in merged.monthly.amount_series] == ["B"]
        assert merged.top_records.labels == ["b1", "a1"]
        assert merged.attachments.with_attachment == 1
        assert merged.attachments.without_attachment == 7

    def test_ties_sorted_by_label(self):
        merged = merge_aggregates([TableAggregate(table="T", type_counts={"b": 1, "a": 1, "c": 3})])
        assert merged.type_counts.labels == ["c", "a", "b"]

    def test_empty(self):
        merged = merge_aggregates([])
        assert merged.tables == []
        assert merged.awardees.labels == []


# ============================================================================
# Cross-table summary over the sample dataset
# ============================================================================

class TestAggregateAllTables:
    def test_tables(self, repo):
        result = aggregate_all_tables(repo)
        assert result.tables == ["Alcaldia_contratos_menores", "Deputacion_licitacions", "mixed", "notes"]

    def test_type_counts(self, repo):
        metric = aggregate_all_tables(repo).type_counts
        assert metric.labels == ["Obras", "(Sen tipo)", "Servizos", "Suministros"]
        assert metric.values == [3, 1, 1, 1]
        assert [(s.table, s.values) for s in metric.series] == [
            ("Alcaldia_contratos_menores", [2, 1, 1, 0]),
            ("Deputacion_licitacions", [1, 0, 0, 1]),
        ]

    def test_type_amounts_use_locale_parsing(self, repo):
        metric = aggregate_all_tables(repo).type_amounts
        assert metric.labels == ["Obras", "Servizos", "Suministros", "(Sen tipo)"]
        assert metric.values == pytest.approx([13234.5, 999.0, 500.0, 50.0])

    def test_awardees_fold_case(self, repo):
        metric = aggregate_all_tables(repo).awardees
        assert metric.labels == ["Acme S.L.", "(sen nome)", "Beta", "Gamma"]
        assert metric.values == [3, 1, 1, 1]

    def test_monthly(self, repo):
        monthly = aggregate_all_tables(repo).monthly
        assert monthly.labels == ["2023-03", "2023-04", "2023-05"]
        assert monthly.counts == [3, 1, 1]
        assert monthly.amounts == pytest.approx([13234.5, 999.0, 500.0])
        assert [(s.table, s.values) for s in monthly.count_series] == [
            ("Alcaldia_contratos_menores", [2, 1, 0]),
            ("Deputacion_licitacions", [1, 0, 1]),
        ]

    def test_top_records(self, repo):
        top = aggregate_all_tables(repo).top_records
        assert top.labels == ["Pavimentación", "L1", "Reparación de la plaza", "Café para eventos", "L2", "E4"]
        assert top.amounts == pytest.approx([10000.0, 2000.0, 1234.5, 999.0, 500.0, 50.0])
        assert top.tables[1] == "Deputacion_licitacions"
        assert top.record_ids[0] == "E3"

    def test_attachments(self, repo):
        coverage = aggregate_all_tables(repo).attachments
        assert coverage.with_attachment == 2
        assert coverage.without_attachment == 12

    def test_query_filters_every_table(self, repo):
        result = aggregate_all_tables(repo, "acme")
        assert result.query == "acme"
        assert result.type_counts.labels == ["Obras"]
        assert result.type_counts.values == [3]
        assert result.attachments.with_attachment == 2
        assert result.attachments.without_attachment == 1

    def test_table_with_unreadable_metadata_is_skipped(self, repo, monkeypatch):
        real_column_names = SchemaIntrospector.column_names

        def flaky(self, table):
            if table == "notes":
                raise MetadataError("gone")
            return real_column_names(self, table)

        monkeypatch.setattr(SchemaIntrospector, "column_names", flaky)
        assert "notes" not in aggregate_all_tables(repo).tables

    def test_failing_metric_is_skipped(self, repo, monkeypatch):
        def boom(self):
            raise QueryError("boom")

        monkeypatch.setattr(aggregation._TableCollector, "type_counts", boom)
        result = aggregate_all_tables(repo)
        assert result.type_counts.labels == []
        assert result.type_amounts.labels[0] == "Obras"


# ============================================================================
# Single-table summary
# ============================================================================

class TestAggregateTable:
    def test_single_table(self, repo):
        result = aggregate_table(repo, "Alcaldia_contratos_menores")
        assert result.tables == ["Alcaldia_contratos_menores"]
        assert result.type_counts.labels == ["Obras", "(Sen tipo)", "Servizos"]
        assert result.attachments.with_attachment == 2
        assert result.attachments.without_attachment == 2

    def test_unknown_table(self, repo):
        with pytest.raises(TableNotFoundError):
            aggregate_table(repo, "missing")

    def test_failing_metric_propagates(self, repo, monkeypatch):
        def boom(self):
            raise QueryError("boom")

        monkeypatch.setattr(aggregation._TableCollector, "type_counts", boom)
        with pytest.raises(QueryError):
            aggregate_table(repo, "Alcaldia_contratos_menores")

    def test_table_without_roles(self, repo):
        result = aggregate_table(repo, "notes")
        assert result.type_counts.labels == []
        assert result.top_records.labels == []
        assert result.attachments.without_attachment == 3

    def test_columns_named_like_result_aliases(self, shadowing_repo):
        result = aggregate_table(shadowing_repo, "Org_licitacions")
        assert list(zip(result.type_counts.labels, result.type_counts.values)) == [("Obras", 2), ("(Sen tipo)", 1)]
        assert result.type_amounts.values == pytest.approx([3000.0, 500.0])
        assert result.monthly.labels == ["2023-03", "2023-04"]
        assert result.monthly.counts == [2, 1]

    def test_missing_type_label_with_search(self, shadowing_repo):
        result = aggregate_table(shadowing_repo, "Org_licitacions", "500")
        assert result.type_counts.labels == ["(Sen tipo)"]
        assert result.type_counts.values == [1]
        assert result.type_amounts.values == pytest.approx([500.0])

    def test_attachment_labels(self, repo):
        coverage = aggregate_table(repo, "Alcaldia_contratos_menores").attachments
        assert (coverage.with_label, coverage.without_label) == ("Con PDF", "Sen PDF")
