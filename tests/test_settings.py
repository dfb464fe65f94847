"""Tests for Settings loading and validation."""

import pytest
from pydantic import ValidationError

from repokit import Settings, get_settings, settings


class TestSettings:
    """Test configuration defaults, environment overrides and validators."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REPOKIT_DATABASE_URL", raising=False)
        config = Settings(_env_file=None)

        assert config.database_url == "sqlite:///./data/repokit.db"
        assert config.default_per_page == 15
        assert config.max_per_page == 1000
        assert config.default_chunk_size == 100
        assert config.commit_on_write is False
        assert config.log_level == "INFO"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("REPOKIT_DEFAULT_PER_PAGE", "25")
        monkeypatch.setenv("REPOKIT_COMMIT_ON_WRITE", "true")

        config = Settings(_env_file=None)
        assert config.default_per_page == 25
        assert config.commit_on_write is True

    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_default_page_must_fit_under_max(self):
        with pytest.raises(ValidationError):
            Settings(max_per_page=10, default_per_page=20)

    def test_sizes_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(default_chunk_size=0)

    def test_global_instance(self):
        assert get_settings() is settings
