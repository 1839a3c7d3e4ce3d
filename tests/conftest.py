from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tablescope.repositories import DatasetRepository


CONTRATOS = [
    ("E1", "Obras", "1.234,50", "Acme S.L.", "Reparación de la plaza", "Adjudicado 15/03/2023"),
    ("E2", "Servizos", "999,00", "Beta", "Café para eventos", "Adjudicado 02/04/2023"),
    ("E3", "Obras", "10.000,00", "ACME S.L.", "Pavimentación", "Adjudicado 20/03/2023"),
    ("E4", "", "50,00", None, "", "sin fecha"),
]

LICITACIONS = [
    ("L1", "Obras", "2.000,00", "acme s.l.", "01/03/2023"),
    ("L2", "Suministros", "500,00", "Gamma", "10/05/2023"),
]

MIXED = [
    ("alpha", "1.234,56"),
    ("alpha", "2.500,00"),
    ("beta", "12.5"),
    ("beta", "3.25"),
    ("beta", "7.75"),
]

NOTES = [
    (1, "CAFE", "12.5"),
    (2, "Café", "3.75"),
    (3, "tea", "100"),
]


def build_dataset(path: Path) -> Path:
    conn = sqlite3.connect(path)
    conn.executescript("""
        CREATE TABLE Alcaldia_contratos_menores (
            Expediente TEXT, Tipo TEXT, Importe TEXT, Adxudicatario TEXT,
            Objeto_del_contrato TEXT, Estado TEXT
        );
        CREATE TABLE Alcaldia_contratos_menores_files (Expediente TEXT, Nome TEXT);
        CREATE TABLE Deputacion_licitacions (
            Expediente TEXT, Tipo_licitacion TEXT, Importe_con_iva TEXT,
            Adjudicatario TEXT, Fechas TEXT
        );
        CREATE TABLE mixed (name TEXT, val TEXT);
        CREATE TABLE notes (id INTEGER, title TEXT, price TEXT);
    """)
    conn.executemany("INSERT INTO Alcaldia_contratos_menores VALUES (?, ?, ?, ?, ?, ?)", CONTRATOS)
    conn.executemany(
        "INSERT INTO Alcaldia_contratos_menores_files VALUES (?, ?)",
        [("E1", "a.pdf"), ("E1", "b.pdf"), ("E3", "c.pdf")],
    )
    conn.executemany("INSERT INTO Deputacion_licitacions VALUES (?, ?, ?, ?, ?)", LICITACIONS)
    conn.executemany("INSERT INTO mixed VALUES (?, ?)", MIXED)
    conn.executemany("INSERT INTO notes VALUES (?, ?, ?)", NOTES)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def dataset_path(tmp_path: Path) -> Path:
    return build_dataset(tmp_path / "dataset.db")


@pytest.fixture
def repo(dataset_path: Path):
    r = DatasetRepository.open(dataset_path)
    yield r
    r.close()
