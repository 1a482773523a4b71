"""
Shared test helpers — field / schema builders and the canned banking datasets.

Import these directly in tests that need a dataset outside of a fixture:

    from helpers import LOAN_ROWS, add_source, make_field
"""
from __future__ import annotations

from datetime import datetime

from bankquery.models import DataType, RoleGuess, Schema, SchemaField, SourceMeta
from bankquery.store.memory_store import MemoryStore

FIXED_NOW = datetime(2025, 1, 15)


# ── Builders ─────────────────────────────────────────────────────────────────


def make_field(name: str, data_type: DataType | str = DataType.string, candidate_id: bool = False) -> SchemaField:
    return SchemaField(
        id=name,
        name=name,
        data_type=DataType(data_type),
        role_guess=RoleGuess.candidate_id if candidate_id else RoleGuess.field,
    )


def make_schema(source_id: str, fields: list[SchemaField]) -> Schema:
    return Schema(source_id=source_id, fields=fields)


def add_source(
    store: MemoryStore,
    source_id: str,
    name: str,
    fields: list[SchemaField],
    rows: list[dict],
) -> SourceMeta:
    meta = SourceMeta(source_id=source_id, name=name, original_file_name=f"{name}.csv")
    store.put_source(meta, make_schema(source_id, fields), rows)
    return meta


# ── Canned datasets ──────────────────────────────────────────────────────────
# Values are strings, as they arrive from a CSV import.

LOAN_FIELDS = [
    make_field("Portfolio", DataType.string, candidate_id=True),
    make_field("Principal", DataType.currency),
    make_field("Rate", DataType.percentage),
    make_field("Maturity", DataType.date),
    make_field("Branch", DataType.integer),
]

LOAN_ROWS = [
    {"Portfolio": "P100", "Principal": "12,500.00", "Rate": "4.5",  "Maturity": "2027-06-30", "Branch": "4"},
    {"Portfolio": "P101", "Principal": "3,000.00",  "Rate": "6.0",  "Maturity": "2026-01-31", "Branch": "4"},
    {"Portfolio": "P102", "Principal": "8,000.00",  "Rate": "5.25", "Maturity": "2025-12-31", "Branch": "2"},
    {"Portfolio": "P103", "Principal": "25,000.00", "Rate": "3.75", "Maturity": "2030-03-15", "Branch": "4"},
    {"Portfolio": "P104", "Principal": "n/a",       "Rate": "5.0",  "Maturity": "",           "Branch": "4"},
]

CHECKING_FIELDS = [
    make_field("Portfolio", DataType.string, candidate_id=True),
    make_field("Balance", DataType.currency),
    make_field("Branch", DataType.integer),
    make_field("Open_Date", DataType.date),
]

CHECKING_ROWS = [
    {"Portfolio": "P100", "Balance": "500",      "Branch": "4", "Open_Date": "2019-03-01"},
    {"Portfolio": "P101", "Balance": "5000",     "Branch": "2", "Open_Date": "2021-07-15"},
    {"Portfolio": "P105", "Balance": "499.99",   "Branch": "4", "Open_Date": "2022-02-10"},
    {"Portfolio": "P106", "Balance": "5000.01",  "Branch": "4", "Open_Date": "2024-11-20"},
    {"Portfolio": "P107", "Balance": "2,750.50", "Branch": "4", "Open_Date": "2020-05-05"},
]

BRANCH_FIELDS = [
    make_field("Branch", DataType.integer),
    make_field("Branch_Name", DataType.string),
]

BRANCH_ROWS = [
    {"Branch": "1", "Branch_Name": "Downtown"},
    {"Branch": "2", "Branch_Name": "Northgate"},
    {"Branch": "4", "Branch_Name": "Lakeside"},
]

BRANCH_CODES = {"Downtown": 1, "Northgate": 2, "Lakeside": 4}

# Malformed amounts, dangling keywords, oversized numbers and control characters.
MALFORMED_PROMPTS = [
    "between and",
    "between , and .",
    "show loans between $5 and",
    "$$$ ,,, ...",
    "show loans over $1,2,3.4.5",
    "show loans under $.",
    "opened after and before",
    "show loans after",
    "find checking accounts opened before 99/99/9999",
    "loans of type 99999999999999999999",
    "loans in branch 99999999999999999999",
    "find checking accounts opened in the last 3000 years",
    "find checking accounts opened in the last 99999999999 days",
    "show loans opened in the last 999999999999999999999999999999 months",
    "\x00\x00 loans \x00",
    "?!" * 200,
]


def portfolios(rows: list[dict]) -> list[str]:
    return sorted(r["Portfolio"] for r in rows)
