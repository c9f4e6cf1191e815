"""
Settings Tests.

This module tests configuration loading from THINGS_SYNC_* environment
variables and the validation rules on each field.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from things_sync.constants import ConflictPolicy
from things_sync.settings import Settings, get_settings


pytestmark = [pytest.mark.unit]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop any THINGS_SYNC_* variables from the outer environment."""
    for key in list(os.environ):
        if key.startswith("THINGS_SYNC_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.sync_tag == "#things"
        assert settings.sync_interval_seconds == 30
        assert settings.conflict_resolution == ConflictPolicy.REMOTE_WINS
        assert settings.auto_create is True
        assert settings.default_project == "Inbox"
        assert settings.default_tag_list == []
        assert settings.dry_run is False

    def test_state_path_defaults_inside_vault(self, tmp_path: Path):
        settings = Settings(vault_path=tmp_path, _env_file=None)

        assert settings.resolved_state_path == tmp_path / ".things-sync" / "state.json"

    def test_explicit_state_path(self, tmp_path: Path):
        settings = Settings(vault_path=tmp_path, state_path=tmp_path / "s.json", _env_file=None)

        assert settings.resolved_state_path == tmp_path / "s.json"


class TestEnvironment:
    """Tests for environment variable loading."""

    def test_reads_prefixed_variables(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("THINGS_SYNC_VAULT_PATH", str(tmp_path))
        monkeypatch.setenv("THINGS_SYNC_SYNC_TAG", "@sync")
        monkeypatch.setenv("THINGS_SYNC_CONFLICT_RESOLUTION", "local")
        monkeypatch.setenv("THINGS_SYNC_DEFAULT_TAGS", "work, ,home")
        monkeypatch.setenv("THINGS_SYNC_DRY_RUN", "true")

        settings = Settings(_env_file=None)

        assert settings.vault_path == tmp_path
        assert settings.sync_tag == "@sync"
        assert settings.conflict_resolution == ConflictPolicy.LOCAL_WINS
        assert settings.default_tag_list == ["work", "home"]
        assert settings.dry_run is True

    def test_expands_home(self):
        settings = Settings(vault_path="~/Notes", _env_file=None)

        assert settings.vault_path == Path.home() / "Notes"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("tag", ["", "   ", "two words"])
    def test_invalid_sync_tag(self, tag: str):
        with pytest.raises(ValidationError):
            Settings(sync_tag=tag, _env_file=None)

    def test_sync_tag_is_stripped(self):
        assert Settings(sync_tag="  #todo ", _env_file=None).sync_tag == "#todo"

    @pytest.mark.parametrize("interval", [0, 10, 300])
    def test_valid_interval(self, interval: int):
        assert Settings(sync_interval_seconds=interval, _env_file=None).sync_interval_seconds == interval

    @pytest.mark.parametrize("interval", [5, 301, -1])
    def test_invalid_interval(self, interval: int):
        with pytest.raises(ValidationError):
            Settings(sync_interval_seconds=interval, _env_file=None)

    def test_invalid_policy(self):
        with pytest.raises(ValidationError):
            Settings(conflict_resolution="whoever", _env_file=None)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(script_timeout=0, _env_file=None)
