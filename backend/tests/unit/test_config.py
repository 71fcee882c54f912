"""
Unit tests for settings loading.
"""

import pytest

from redline.config import Settings, get_database_url, load_settings


@pytest.mark.unit
class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "config.yaml")

        assert settings == Settings()
        assert settings.lockout_threshold == 5
        assert settings.lockout_minutes == 15
        assert settings.starting_credits == 1000

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("starting_credits: 250\nenable_random_events: false\n")

        settings = load_settings(path)

        assert settings.starting_credits == 250
        assert settings.enable_random_events is False
        assert settings.heat_decay_per_minute == 1

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_settings(path) == Settings()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("starting_credits: [1, 2\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            load_settings(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("god_mode: true\n")

        with pytest.raises(ValueError, match="Invalid settings"):
            load_settings(path)

    def test_out_of_range_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("min_password_length: 4\n")

        with pytest.raises(ValueError):
            load_settings(path)


@pytest.mark.unit
class TestDatabaseUrl:
    def test_url_in_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("REDLINE_DATABASE_URL", raising=False)

        url = get_database_url(tmp_path)

        assert url == f"sqlite+aiosqlite:///{tmp_path / 'redline.db'}"

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REDLINE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

        assert get_database_url(tmp_path) == "sqlite+aiosqlite:///:memory:"
