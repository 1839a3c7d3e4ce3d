"""HTTP routes over the sample dataset."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tablescope.app import app
from tablescope.config import reset_settings, update_settings


@pytest.fixture
def client(dataset_path):
    update_settings({"db_path": str(dataset_path), "per_page": 2})
    with TestClient(app) as c:
        yield c
    reset_settings()


@pytest.fixture
def client_without_dataset(tmp_path):
    update_settings({"db_path": str(tmp_path / "absent.db")})
    with TestClient(app) as c:
        yield c
    reset_settings()


# ============================================================================
# Service endpoints
# ============================================================================

class TestServiceRoutes:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "tablescope"
        assert body["status"] == "ok"

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["tables"] == 5

    def test_health_without_dataset(self, client_without_dataset):
        assert client_without_dataset.get("/api/health").json()["status"] == "unavailable"
        r = client_without_dataset.get("/api/tables")
        assert r.status_code == 503
        assert r.json()["detail"]["code"] == "DATASET_UNAVAILABLE"

    def test_tables(self, client):
        body = client.get("/api/tables").json()
        assert "Alcaldia_contratos_menores_files" in body["tables"]
        assert "Alcaldia_contratos_menores_files" not in body["base_tables"]


# ============================================================================
# Table view
# ============================================================================

class TestTableRoute:
    def test_paginates(self, client):
        body = client.get("/api/table/notes", params={"page": 2}).json()
        assert body["columns"] == ["id", "title", "price"]
        assert (body["page"], body["pages"], body["total"], body["per_page"]) == (2, 2, 3, 2)
        assert len(body["rows"]) == 1

    def test_search_and_euro_sort(self, client):
        body = client.get(
            "/api/table/Alcaldia_contratos_menores",
            params={"order": "Importe", "dir": "desc"},
        ).json()
        assert [r["Importe"] for r in body["rows"]] == ["10.000,00", "1.234,50"]
        assert body["desc"] is True

    def test_accent_insensitive_search(self, client):
        assert client.get("/api/table/notes", params={"q": "café"}).json()["total"] == 2

    def test_chart(self, client):
        body = client.get("/api/table/Alcaldia_contratos_menores", params={"chartBy": "Tipo"}).json()
        assert body["chart_available"] is True
        assert body["chart_labels"][0] == "Obras"
        assert body["chart_counts"][0] == 2
        assert body["chart_totals"][0] is None

    def test_unknown_chart_column(self, client):
        body = client.get("/api/table/notes", params={"chartBy": "nope"}).json()
        assert body["chart_available"] is False
        assert body["chart_labels"] == []

    def test_unknown_table(self, client):
        r = client.get("/api/table/missing")
        assert r.status_code == 404
        assert r.json()["detail"]["code"] == "TABLE_NOT_FOUND"

    def test_unknown_sort_column(self, client):
        r = client.get("/api/table/notes", params={"order": "nope"})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "QUERY_ERROR"


# ============================================================================
# Summaries
# ============================================================================

class TestSummaryRoutes:
    def test_summary_all(self, client):
        body = client.get("/api/summary_all").json()
        assert body["awardees"]["labels"][0] == "Acme S.L."
        assert body["type_counts"]["series"][0]["table"] == "Alcaldia_contratos_menores"
        assert body["attachments"] == {
            "with_attachment": 2, "without_attachment": 12, "with_label": "Con PDF", "without_label": "Sen PDF",
        }

    def test_summary_single_table(self, client):
        body = client.get("/api/summary", params={"table": "Deputacion_licitacions", "q": "gamma"}).json()
        assert body["tables"] == ["Deputacion_licitacions"]
        assert body["type_counts"]["labels"] == ["Suministros"]
        assert body["query"] == "gamma"

    def test_summary_unknown_table(self, client):
        assert client.get("/api/summary", params={"table": "missing"}).status_code == 404


# ============================================================================
# Exports
# ============================================================================

class TestExportRoutes:
    def test_csv(self, client):
        r = client.get("/export/csv", params={"table": "Alcaldia_contratos_menores", "order": "Importe", "dir": "DESC"})
        assert r.status_code == 200
        assert "_Alcaldia_contratos_menores_export.csv" in r.headers["content-disposition"]
        lines = r.text.splitlines()
        assert lines[0].startswith("Expediente,Tipo,Importe")
        assert lines[1].startswith("E3,Obras,10000.00,")

    def test_xlsx(self, client):
        r = client.get("/export/xlsx", params={"table": "notes"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/vnd.openxmlformats")
        assert r.content[:2] == b"PK"

    def test_export_unknown_table(self, client):
        assert client.get("/export/csv", params={"table": "missing"}).status_code == 404
