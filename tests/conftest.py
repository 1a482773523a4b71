"""Shared fixtures for the bankquery test suite."""
from __future__ import annotations

import pytest

from bankquery.config import Settings, get_settings
from bankquery.functions.financial import FINANCIAL_FUNCTIONS
from bankquery.functions.registry import FunctionRegistry
from bankquery.mapping.concept_mapper import ConceptMapper
from bankquery.nlp.prompt_parser import PromptParser
from bankquery.pipeline import QueryPipeline
from bankquery.query.engine import QueryEngine
from bankquery.store.memory_store import MemoryStore
from bankquery.translators.registry import TranslatorRegistry

from helpers import (  # type: ignore[import]
    BRANCH_CODES,
    BRANCH_FIELDS,
    BRANCH_ROWS,
    CHECKING_FIELDS,
    CHECKING_ROWS,
    FIXED_NOW,
    LOAN_FIELDS,
    LOAN_ROWS,
    add_source,
)

__all__ = ["FIXED_NOW"]


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Keep cached settings from leaking between tests that patch the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings() -> Settings:
    return Settings()


# ── Registries ───────────────────────────────────────────────────────────────


@pytest.fixture()
def translators() -> TranslatorRegistry:
    registry = TranslatorRegistry()
    registry.register("branches", BRANCH_CODES)
    return registry


@pytest.fixture()
def empty_translators() -> TranslatorRegistry:
    return TranslatorRegistry()


@pytest.fixture()
def functions() -> FunctionRegistry:
    registry = FunctionRegistry()
    registry.register_library("financial", FINANCIAL_FUNCTIONS)
    return registry


# ── Store ────────────────────────────────────────────────────────────────────


@pytest.fixture()
def store() -> MemoryStore:
    """Loans, checking and branches sources sharing Portfolio ids."""
    s = MemoryStore()
    add_source(s, "loans_1", "loans", LOAN_FIELDS, LOAN_ROWS)
    add_source(s, "checking_1", "checking", CHECKING_FIELDS, CHECKING_ROWS)
    add_source(s, "branches_1", "branches", BRANCH_FIELDS, BRANCH_ROWS)
    return s


@pytest.fixture()
def sources(store):
    return store.list_sources()


# ── Components ───────────────────────────────────────────────────────────────


@pytest.fixture()
def mapper(store, translators) -> ConceptMapper:
    return ConceptMapper(store, translators)


@pytest.fixture()
def engine(store, mapper) -> QueryEngine:
    return QueryEngine(store, mapper, now=FIXED_NOW)


@pytest.fixture()
def parser(translators, functions, settings) -> PromptParser:
    return PromptParser(translators, functions, settings=settings)


@pytest.fixture()
def pipeline(store, translators, functions, settings) -> QueryPipeline:
    return QueryPipeline(store, translators, functions, settings, now=FIXED_NOW)
