"""
Runtime settings, read once per process from BANKQUERY_* environment variables.

Usage:
    from bankquery.config import get_settings
    settings = get_settings()
    settings.fuzzy_similarity   # 0.8 unless BANKQUERY_FUZZY_SIMILARITY is set

Call get_settings.cache_clear() to pick up changed environment variables.
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field

ENV_PREFIX = "BANKQUERY_"


class Settings(BaseModel):
    schema_sample_rows: int   = Field(100, ge=1, description="Rows scanned when inferring column types")
    type_threshold:     float = Field(0.8, gt=0, le=1, description="Share of values that must agree on a type")
    fuzzy_similarity:   float = Field(0.8, gt=0, le=1, description="Minimum similarity for fuzzy entity matches")
    fuzzy_max_distance: int   = Field(2, ge=0, description="Maximum edit distance for fuzzy entity matches")
    sample_values:      int   = Field(5, ge=0, description="Sample values kept per schema field")
    confidence_warning: float = Field(0.8, ge=0, le=1, description="Plan confidence below this is reported as a warning")
    log_level:          str   = "INFO"


def _from_env() -> dict[str, str]:
    values: dict[str, str] = {}
    for name in Settings.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return values


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process settings (cached). Invalid env values raise pydantic.ValidationError."""
    return Settings(**_from_env())
