"""Tests for woodlot.core.config."""

from pathlib import Path

import pytest

from woodlot.core.config import (
    DEFAULT_TIME_ZONE,
    ImportConfig,
    is_valid_time_zone,
    load_config,
    local_time_zone,
)
from woodlot.core.errors import ConfigError


def _write(tmp_path: Path, text: str, name: str = "woodlot_config.yaml") -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TZ", raising=False)
        cfg = ImportConfig()
        assert cfg.active_user is None
        assert cfg.tracks_target == "trails"
        assert cfg.use_heuristics is True
        assert cfg.only_points is False
        assert cfg.effective_time_zone == DEFAULT_TIME_ZONE
        assert cfg.get_config_summary()["source"] is None

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        cfg = ImportConfig(tmp_path / "nope.yaml")
        assert cfg.source is None

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        cfg = ImportConfig(_write(tmp_path, ""))
        assert cfg.tracks_target == "trails"


class TestTimeZones:
    @pytest.mark.parametrize("name", ["America/New_York", "Europe/Berlin", "UTC"])
    def test_known_zones(self, name):
        assert is_valid_time_zone(name)

    @pytest.mark.parametrize("name", ["", "Mars/Olympus", "America", "../etc/passwd"])
    def test_unknown_zones(self, name):
        assert not is_valid_time_zone(name)

    def test_local_time_zone_honors_tz(self, monkeypatch):
        monkeypatch.setenv("TZ", ":Europe/Berlin")
        assert local_time_zone() == "Europe/Berlin"

    def test_local_time_zone_ignores_posix_strings(self, monkeypatch):
        monkeypatch.setenv("TZ", "EST5EDT,M3.2.0,M11.1.0")
        assert local_time_zone() == DEFAULT_TIME_ZONE


class TestUserConfig:
    def test_load_values(self, tmp_path: Path):
        cfg = ImportConfig(
            _write(
                tmp_path,
                "active_user: ' Sam '\n"
                "tracks_target: animal_paths\n"
                "time_zone: America/Chicago\n"
                "use_heuristics: false\n"
                "only_points: true\n",
            )
        )
        assert cfg.active_user == "Sam"
        assert cfg.tracks_target == "animal_paths"
        assert cfg.effective_time_zone == "America/Chicago"
        assert cfg.use_heuristics is False
        assert cfg.only_points is True
        assert cfg.source == tmp_path / "woodlot_config.yaml"

    @pytest.mark.parametrize(
        "text, message",
        [
            ("active_user: [unclosed\n", "Invalid YAML"),
            ("- a\n- b\n", "mapping"),
            ("colour: red\n", "Unknown config keys: colour"),
            ("tracks_target: roads\n", "Invalid tracks_target"),
            ("time_zone: Mars/Olympus\n", "Unknown time_zone"),
        ],
    )
    def test_invalid(self, tmp_path: Path, text, message):
        with pytest.raises(ConfigError, match=message):
            ImportConfig(_write(tmp_path, text))

    def test_exported_template_loads(self, tmp_path: Path):
        out = tmp_path / "template.yaml"
        ImportConfig().export_template(out)
        cfg = ImportConfig(out)
        assert cfg.active_user is None
        assert cfg.tracks_target == "trails"
        assert cfg.time_zone == "America/New_York"
        assert cfg.use_heuristics is True


class TestLoadConfig:
    def test_discovers_config_in_cwd(self, tmp_path: Path, monkeypatch):
        _write(tmp_path, "active_user: Pat\n", name="woodlot_config.yml")
        monkeypatch.chdir(tmp_path)
        assert load_config().active_user == "Pat"

    def test_no_config_in_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config().source is None

    def test_explicit_missing_file_is_an_error(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")
