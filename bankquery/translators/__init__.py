"""
Translator registry: human names for coded values ("Lakeside" -> branch 3).

Usage:
    from bankquery.translators import TranslatorRegistry
    reg = TranslatorRegistry()
    reg.register("branches", {"Lakeside": 3})
    reg.lookup("branches", "lakeside")        # 3
    reg.find_name_in_text("loans at lakeside") # TranslatorHit("branches", "lakeside", 3)
"""

from bankquery.translators.detector import TranslatorInfo, build_translator_map, detect_translator
from bankquery.translators.registry import (
    TranslatorHit,
    TranslatorMeta,
    TranslatorRegistry,
    default_registry,
)

__all__ = [
    "TranslatorHit",
    "TranslatorInfo",
    "TranslatorMeta",
    "TranslatorRegistry",
    "build_translator_map",
    "default_registry",
    "detect_translator",
]
