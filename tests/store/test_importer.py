"""Unit tests for file parsing, type inference, schema building and DataImporter."""
import pytest

from bankquery.errors import ImportFailedError, SourceNotFoundError
from bankquery.models import DataType, RoleGuess
from bankquery.store.importer import (
    DataImporter,
    build_schema,
    load_file,
    make_source_id,
    parse_csv_text,
    parse_json_text,
)
from bankquery.store.memory_store import MemoryStore
from bankquery.store.type_inference import HeuristicTypeInference
from bankquery.translators.registry import TranslatorRegistry

LOANS_CSV = (
    "Portfolio,Principal,Rate,Maturity,Branch\n"
    'P100,"12,500.50",4.5,2027-06-30,4\n'
    'P101,"3,000.25",6.0,2026-01-31,4\n'
    'P102,"8,000.75",5.25,2025-12-31,2\n'
)

BRANCHES_CSV = "Branch,Branch_Name\n1,Downtown\n2,Northgate\n4,Lakeside\n"


@pytest.mark.unit
class TestTypeInference:

    @pytest.mark.parametrize("values,expected", [
        (["2020-01-01", "03/15/2021", "Jan 5, 2022"], DataType.date),
        (["4.5%", "5%", "6.25%"], DataType.percentage),
        (["0.05", "0.045", "0.06"], DataType.percentage),
        (["1", "2", "3"], DataType.integer),
        (["12,500.50", "3,000.00", "$8.10"], DataType.currency),
        (["abc", "def"], DataType.string),
        # Letters are stripped before the numeric check
        (["P100", "P101"], DataType.integer),
        (["1", "x", "y"], DataType.string),
        ([], DataType.string),
        (["", None], DataType.string),
    ])
    def test_detect_type(self, values, expected):
        assert HeuristicTypeInference().detect_type(values) == expected

    def test_blank_values_do_not_count(self):
        assert HeuristicTypeInference().detect_type(["1", "", "2", None]) == DataType.integer

    @pytest.mark.parametrize("name,role", [
        ("Portfolio", RoleGuess.candidate_id),
        ("Customer_ID", RoleGuess.candidate_id),
        ("accountid", RoleGuess.candidate_id),
        ("ID", RoleGuess.candidate_id),
        ("Branch", RoleGuess.field),
        ("Paid", RoleGuess.field),
    ])
    def test_guess_role(self, name, role):
        assert HeuristicTypeInference().guess_role(name) == role


@pytest.mark.unit
class TestParsing:

    def test_csv_values_stay_strings(self):
        headers, rows = parse_csv_text('Portfolio, Code ,Principal\nP1, 00123, "1,000"\n\nP2,,\n')
        assert headers == ["Portfolio", "Code", "Principal"]
        assert rows == [
            {"Portfolio": "P1", "Code": "00123", "Principal": "1,000"},
            {"Portfolio": "P2", "Code": "", "Principal": ""},
        ]

    def test_empty_csv(self):
        assert parse_csv_text("  \n") == ([], [])

    def test_json_array(self):
        assert parse_json_text('[{"a": 1, "b": "x"}]') == (["a", "b"], [{"a": 1, "b": "x"}])
        assert parse_json_text("[]") == ([], [])

    @pytest.mark.parametrize("text", ['{"a": 1}', "[1, 2]", "not json"])
    def test_bad_json(self, text):
        with pytest.raises(ImportFailedError):
            parse_json_text(text, "bad.json")

    def test_load_file_rejects_unsupported_and_missing(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        with pytest.raises(ImportFailedError, match="unsupported"):
            load_file(notes)
        with pytest.raises(ImportFailedError, match="not found"):
            load_file(tmp_path / "missing.csv")

    def test_load_file_latin1(self, tmp_path):
        path = tmp_path / "branches.csv"
        path.write_bytes("Branch,Branch_Name\n1,Caf\xe9\n".encode("latin-1"))
        _, rows = load_file(path)
        assert rows == [{"Branch": "1", "Branch_Name": "Caf\xe9"}]


@pytest.mark.unit
class TestSchemaAndIds:

    def test_build_schema(self, settings):
        headers, rows = parse_csv_text(LOANS_CSV)
        schema = build_schema("loans_1", headers, rows, settings=settings)
        types = {f.id: f.data_type for f in schema.fields}
        assert types == {
            "Portfolio": DataType.integer,
            "Principal": DataType.currency,
            "Rate": DataType.currency,
            "Maturity": DataType.date,
            "Branch": DataType.integer,
        }
        assert schema.field_by_id("Portfolio").role_guess == RoleGuess.candidate_id
        assert schema.field_by_id("Branch").sample == ["4", "4", "2"]

    def test_make_source_id(self):
        assert make_source_id("loans 2024.csv", now_ms=1700000000000) == "loans_2024_csv_1700000000000"

    def test_make_source_id_collisions(self):
        existing = {"loans_csv_1", "loans_csv_1_1"}
        assert make_source_id("loans.csv", existing, now_ms=1) == "loans_csv_1_2"


@pytest.mark.unit
class TestDataImporter:

    @pytest.fixture()
    def files(self, tmp_path):
        loans = tmp_path / "loans.csv"
        loans.write_text(LOANS_CSV)
        branches = tmp_path / "branches.csv"
        branches.write_text(BRANCHES_CSV)
        notes = tmp_path / "notes.txt"
        notes.write_text("skip me")
        return loans, branches, notes

    def test_import_files(self, files, settings):
        store, translators = MemoryStore(), TranslatorRegistry()
        imported = DataImporter(store, translators, settings=settings).import_files(list(files))
        assert [i.name for i in imported] == ["loans.csv", "branches.csv"]
        assert imported[0].row_count == 3
        assert imported[0].translator is None
        assert imported[1].translator == "branches"
        assert translators.lookup("branches", "Lakeside") == 4

        loans_meta = store.get_source(imported[0].source_id)
        assert loans_meta.name == "loans"
        assert loans_meta.original_file_name == "loans.csv"
        assert imported[0].source_id.startswith("loans_csv_")

    def test_import_without_translators(self, files, settings):
        store = MemoryStore()
        imported = DataImporter(store, settings=settings).import_files([files[1]])
        assert imported[0].translator is None

    def test_no_files(self, settings):
        with pytest.raises(ImportFailedError):
            DataImporter(MemoryStore(), settings=settings).import_files([])

    def test_update_and_delete(self, files, tmp_path, settings):
        store = MemoryStore()
        importer = DataImporter(store, settings=settings)
        source_id = importer.import_files([files[0]])[0].source_id

        replacement = tmp_path / "loans_v2.csv"
        replacement.write_text("Portfolio,Principal\nP900,\"1,000.50\"\n")
        updated = importer.update_source(source_id, replacement)
        assert updated.source_id == source_id
        assert store.get_all_rows(source_id) == [{"Portfolio": "P900", "Principal": "1,000.50"}]
        assert store.get_source(source_id).original_file_name == "loans_v2.csv"

        importer.delete_source(source_id)
        assert store.list_sources() == []
        with pytest.raises(SourceNotFoundError):
            importer.update_source(source_id, replacement)
