"""Natural-language prompt parsing: conditions, entities, intent and function calls."""

from bankquery.nlp.concept_resolver import ConceptResolver, Resolution
from bankquery.nlp.prompt_parser import PromptParser, parse_prompt

__all__ = ["ConceptResolver", "PromptParser", "Resolution", "parse_prompt"]
