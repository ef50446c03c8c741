"""
Configuration for woodlot imports.

Import defaults (who is importing, where tracks go, which time zone hunt times
are shown in) can live in a `woodlot_config.yaml` next to where the CLI runs,
so they don't need to be passed on every invocation. Command-line flags
override anything set here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import yaml

from woodlot.core.errors import ConfigError
from woodlot.model import TRACKS_TARGETS


DEFAULT_TIME_ZONE = "America/New_York"

CONFIG_FILENAMES = ("woodlot_config.yaml", "woodlot_config.yml")

_KNOWN_KEYS = frozenset(
    ("active_user", "tracks_target", "time_zone", "use_heuristics", "only_points")
)


def is_valid_time_zone(name: str) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (KeyError, ValueError, OSError):
        return False
    return True


def local_time_zone() -> str:
    """
    Best-effort IANA name of the machine's zone.

    Honors $TZ when it names a known zone; otherwise the import default.
    """
    tz = (os.environ.get("TZ") or "").strip().lstrip(":")
    if is_valid_time_zone(tz):
        return tz
    return DEFAULT_TIME_ZONE


class ImportConfig:
    """Import defaults with optional user overrides from YAML."""

    def __init__(self, config_file: Optional[Path] = None):
        self.active_user: Optional[str] = None
        self.tracks_target = "trails"
        self.time_zone: Optional[str] = None
        self.use_heuristics = True
        self.only_points = False
        self.source: Optional[Path] = None

        if config_file and config_file.exists():
            self.load_user_config(config_file)

    def load_user_config(self, config_file: Path) -> None:
        """
        Load user configuration from a YAML file.

        Raises:
          ConfigError: invalid YAML, unknown keys or invalid values
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e

        # Handle empty config file
        if user_config is None:
            user_config = {}
        if not isinstance(user_config, dict):
            raise ConfigError("Config file must contain a mapping")

        unknown = sorted(str(k) for k in user_config if k not in _KNOWN_KEYS)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        if user_config.get("active_user"):
            self.active_user = str(user_config["active_user"]).strip()

        if "tracks_target" in user_config:
            target = str(user_config["tracks_target"] or "").strip()
            if target not in TRACKS_TARGETS:
                raise ConfigError(
                    f"Invalid tracks_target '{target}' (expected one of: {', '.join(TRACKS_TARGETS)})"
                )
            self.tracks_target = target

        if user_config.get("time_zone"):
            tz = str(user_config["time_zone"]).strip()
            if not is_valid_time_zone(tz):
                raise ConfigError(f"Unknown time_zone '{tz}'")
            self.time_zone = tz

        if "use_heuristics" in user_config:
            self.use_heuristics = bool(user_config["use_heuristics"])
        if "only_points" in user_config:
            self.only_points = bool(user_config["only_points"])

        self.source = config_file

    @property
    def effective_time_zone(self) -> str:
        return self.time_zone or local_time_zone()

    def export_template(self, output_path: Path) -> None:
        """Write a commented configuration template."""
        yaml_content = """# =============================================================================
# Woodlot Import Configuration
# =============================================================================
# Defaults for `woodlot import`. Command-line flags override these values.
# =============================================================================

# Name recorded as imported_by / created_by on every imported feature.
# Required for imports (here or via --user).
active_user: ""

# Where unclassified LineStrings (tracks) go: trails | animal_paths
tracks_target: trails

# IANA zone used to turn GPX waypoint times into hunt date / start_time.
# Leave empty to use $TZ, falling back to America/New_York.
time_zone: America/New_York

# If false, only names with an explicit prefix ("Scrape: fresh") are imported;
# everything else is reported as unknown.
use_heuristics: true

# Import only Point features (skip tracks and areas).
only_points: false
"""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(yaml_content)

    def get_config_summary(self) -> Dict[str, Any]:
        return {
            "source": str(self.source) if self.source else None,
            "active_user": self.active_user,
            "tracks_target": self.tracks_target,
            "time_zone": self.effective_time_zone,
            "use_heuristics": self.use_heuristics,
            "only_points": self.only_points,
        }


def load_config(config_file: Optional[Path] = None) -> ImportConfig:
    """
    Load import configuration.

    Args:
      config_file: Optional path to a config file. If None, looks for
                   'woodlot_config.yaml' / '.yml' in the current directory.

    Raises:
      ConfigError: an explicitly named file does not exist, or the file is invalid
    """
    if config_file is None:
        for candidate in CONFIG_FILENAMES:
            p = Path(candidate)
            if p.exists():
                config_file = p
                break
    elif not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    return ImportConfig(config_file)
