"""
TranslatorRegistry: named lookup tables mapping display names to codes.

Registration is additive: registering the same type twice merges the maps.
Every key is stored both as given and lowercased so lookups are
case-insensitive. Writes are serialised with a lock; readers get copies.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, NamedTuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Shorter names ("a", "of") would match inside ordinary prompt words
MIN_NAME_LENGTH = 3


class TranslatorMeta(BaseModel):
    synonyms: list[str] = Field(default_factory=list)


class TranslatorHit(NamedTuple):
    type: str
    name: str
    code: Any


class TranslatorRegistry:
    """In-memory translator tables keyed by translator type."""

    def __init__(self) -> None:
        self._maps: dict[str, dict[str, Any]] = {}
        self._meta: dict[str, TranslatorMeta] = {}
        self._lock = threading.Lock()

    # ── Writes ────────────────────────────────────────────────────────────────

    def register(
        self,
        type_: str,
        name_to_code: dict[str, Any],
        synonyms: list[str] | None = None,
    ) -> None:
        """Merge *name_to_code* into the table for *type_*.

        Synonyms replace the stored list only when given; otherwise the
        previous list is kept.
        """
        if not type_ or not name_to_code:
            return
        normalized: dict[str, Any] = {}
        for key, code in name_to_code.items():
            if key is None:
                continue
            text = str(key)
            normalized[text] = code
            normalized[text.lower()] = code

        with self._lock:
            self._maps.setdefault(type_, {}).update(normalized)
            previous = self._meta.get(type_)
            if synonyms is not None:
                self._meta[type_] = TranslatorMeta(synonyms=list(synonyms))
            elif previous is None:
                self._meta[type_] = TranslatorMeta()
        logger.info("Translator registered [%s]: %d names", type_, len(normalized))

    def clear(self) -> None:
        with self._lock:
            self._maps.clear()
            self._meta.clear()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def types(self) -> list[str]:
        with self._lock:
            return list(self._maps)

    def meta(self, type_: str) -> TranslatorMeta | None:
        with self._lock:
            return self._meta.get(type_)

    def lookup(self, type_: str, name: str) -> Any | None:
        with self._lock:
            table = self._maps.get(type_)
            if not table:
                return None
            if name in table:
                return table[name]
            return table.get(str(name).lower())

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {t: dict(m) for t, m in self._maps.items()}

    def find_all_names_in_text(self, text: str) -> list[TranslatorHit]:
        """Every registered name found in *text* as a whole phrase.

        Longer names are matched first and claim their span, so "north lakeside"
        wins over "lakeside" and a span is never reported twice.
        """
        if not text:
            return []
        lower = text.lower()
        candidates: list[tuple[str, str, Any]] = []
        for type_, table in self.snapshot().items():
            for name, code in table.items():
                if name == name.lower() and len(name) >= MIN_NAME_LENGTH:
                    candidates.append((type_, name, code))
        candidates.sort(key=lambda c: len(c[1]), reverse=True)

        taken: list[tuple[int, int]] = []
        hits: list[tuple[int, TranslatorHit]] = []
        for type_, name, code in candidates:
            pattern = re.compile(r"(?<![a-z0-9])" + re.escape(name) + r"(?![a-z0-9])")
            for m in pattern.finditer(lower):
                start, end = m.span()
                if any(start < t_end and t_start < end for t_start, t_end in taken):
                    continue
                taken.append((start, end))
                hits.append((start, TranslatorHit(type_, name, code)))
        hits.sort(key=lambda h: h[0])
        return [hit for _, hit in hits]

    def find_name_in_text(self, text: str) -> TranslatorHit | None:
        """Longest registered name occurring in *text*, or None."""
        hits = self.find_all_names_in_text(text)
        if not hits:
            return None
        return max(hits, key=lambda h: len(h.name))


_default: TranslatorRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> TranslatorRegistry:
    """Process-wide registry used when a component is not given one."""
    global _default
    with _default_lock:
        if _default is None:
            _default = TranslatorRegistry()
        return _default
