"""
Source storage and file import.

Usage:
    from bankquery.store import DataImporter, MemoryStore
    store = MemoryStore()
    DataImporter(store, translators).import_files(["loans.csv"])
"""

from bankquery.store.importer import DataImporter, ImportedSource, build_schema, load_file, parse_csv_text
from bankquery.store.memory_store import MemoryStore, SourceStore
from bankquery.store.type_inference import HeuristicTypeInference, TypeInference

__all__ = [
    "DataImporter",
    "HeuristicTypeInference",
    "ImportedSource",
    "MemoryStore",
    "SourceStore",
    "TypeInference",
    "build_schema",
    "load_file",
    "parse_csv_text",
]
