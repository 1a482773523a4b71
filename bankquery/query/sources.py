"""Entity detection for sources and entity -> source selection."""

from __future__ import annotations

from bankquery.models import SourceMeta

# Entities a plan may target; anything else is rejected by the validator
VALID_ENTITIES: tuple[str, ...] = (
    "loans", "checking", "customers", "deposits", "branches",
    "certificates", "savings", "credit cards", "mortgages", "indirect",
)

# (substrings of name / file name, entity). DDA = demand deposit account.
_ENTITY_MARKERS: list[tuple[tuple[str, ...], str]] = [
    (("loan",),            "loans"),
    (("checking", "dda"),  "checking"),
    (("deposit",),         "deposits"),
    (("customer",),        "customers"),
    (("branch",),          "branches"),
]


def detect_entity_types(source: SourceMeta) -> list[str]:
    """Entities a source holds, judged from its name and original file name."""
    name = (source.name or "").lower()
    file_name = (source.original_file_name or "").lower()
    entities = [
        entity for markers, entity in _ENTITY_MARKERS
        if any(m in name or m in file_name for m in markers)
    ]
    return entities or ["data"]


def pick_source_for_entity(entity: str, sources: list[SourceMeta] | None) -> SourceMeta | None:
    """First source whose detected entities include *entity*; never an arbitrary fallback."""
    if not sources:
        return None
    wanted = (entity or "").lower()
    for source in sources:
        if wanted in (e.lower() for e in detect_entity_types(source)):
            return source
    return None
