"""bankquery — plain-English queries over imported banking datasets."""

from __future__ import annotations

_EXPORTS = {
    "QueryPipeline":       ("bankquery.pipeline", "QueryPipeline"),
    "PromptParser":        ("bankquery.nlp.prompt_parser", "PromptParser"),
    "parse_prompt":        ("bankquery.nlp.prompt_parser", "parse_prompt"),
    "QueryEngine":         ("bankquery.query.engine", "QueryEngine"),
    "validate_query_plan": ("bankquery.query.validator", "validate_query_plan"),
    "ConceptMapper":       ("bankquery.mapping.concept_mapper", "ConceptMapper"),
    "MemoryStore":         ("bankquery.store.memory_store", "MemoryStore"),
    "DataImporter":        ("bankquery.store.importer", "DataImporter"),
}


def __getattr__(name: str):
    """Lazy imports — pandas and numpy load only when the pieces needing them are used."""
    if name in _EXPORTS:
        from importlib import import_module

        module, attr = _EXPORTS[name]
        return getattr(import_module(module), attr)
    raise AttributeError(f"module 'bankquery' has no attribute {name!r}")


__all__ = list(_EXPORTS)
