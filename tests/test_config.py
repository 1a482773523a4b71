"""Unit tests for environment-driven settings."""
import pytest
from pydantic import ValidationError

from bankquery.config import Settings, get_settings


@pytest.mark.unit
class TestSettings:

    def test_defaults(self):
        s = Settings()
        assert s.schema_sample_rows == 100
        assert s.type_threshold == 0.8
        assert s.fuzzy_similarity == 0.8
        assert s.fuzzy_max_distance == 2
        assert s.sample_values == 5
        assert s.log_level == "INFO"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BANKQUERY_FUZZY_SIMILARITY", "0.9")
        monkeypatch.setenv("BANKQUERY_SCHEMA_SAMPLE_ROWS", "25")
        s = get_settings()
        assert s.fuzzy_similarity == 0.9
        assert s.schema_sample_rows == 25

    def test_cached_until_cleared(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("BANKQUERY_LOG_LEVEL", "DEBUG")
        assert get_settings() is first
        get_settings.cache_clear()
        assert get_settings().log_level == "DEBUG"

    def test_blank_env_value_ignored(self, monkeypatch):
        monkeypatch.setenv("BANKQUERY_SAMPLE_VALUES", "  ")
        assert get_settings().sample_values == 5

    def test_invalid_env_value_raises(self, monkeypatch):
        monkeypatch.setenv("BANKQUERY_TYPE_THRESHOLD", "2.5")
        with pytest.raises(ValidationError):
            get_settings()
