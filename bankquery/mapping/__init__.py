"""Concept mapping: resolve prompt concepts to concrete schema fields per source."""

from bankquery.mapping.concept_mapper import ConceptMapper, is_type_compatible

__all__ = ["ConceptMapper", "is_type_compatible"]
