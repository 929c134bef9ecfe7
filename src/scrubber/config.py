"""Global configuration: XDG paths, env vars and persisted scanner settings."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from scrubber.errors import ConfigurationMissing, ValidationFailed
from scrubber.scanner.patterns import DEFAULT_SCANNED_EXTENSIONS

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "scanner"

SCANNED_FILE_TYPES = "scannedFileTypes"
ENABLE_FILE_PATH_SCANNING = "enableFilePathScanning"
ENABLE_SECRET_SCANNING = "enableSecretScanning"
ENABLE_STRICT_SECRET_SCANNING = "enableStrictSecretScanning"
ENABLE_COMMENT_SCANNING = "enableCommentScanning"

# Settings key → ScanConfiguration attribute
TOGGLE_FIELDS = {
    ENABLE_FILE_PATH_SCANNING: "enable_file_path_scanning",
    ENABLE_SECRET_SCANNING: "enable_secret_scanning",
    ENABLE_STRICT_SECRET_SCANNING: "enable_strict_secret_scanning",
    ENABLE_COMMENT_SCANNING: "enable_comment_scanning",
}

_EXTENSION_RE = re.compile(r"^[a-zA-Z0-9]+$")


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "scrubber"
    return Path.home() / ".config" / "scrubber"


@dataclass
class ScrubberConfig:
    """Application-wide configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    poll_interval: float = 0.5
    git_timeout: float = 5.0

    @property
    def settings_path(self) -> Path:
        return self.config_dir / "settings.yaml"

    @classmethod
    def load(cls) -> ScrubberConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_interval = os.environ.get("SCRUBBER_POLL_INTERVAL")
        if env_interval:
            config.poll_interval = float(env_interval)

        env_timeout = os.environ.get("SCRUBBER_GIT_TIMEOUT")
        if env_timeout:
            config.git_timeout = float(env_timeout)

        return config


@dataclass
class ScanConfiguration:
    """Which files are scanned and which classifiers run."""

    scanned_extensions: frozenset[str] = frozenset(DEFAULT_SCANNED_EXTENSIONS)
    enable_file_path_scanning: bool = True
    enable_secret_scanning: bool = True
    enable_strict_secret_scanning: bool = True
    enable_comment_scanning: bool = True

    @classmethod
    def from_settings(cls, section: dict[str, Any]) -> ScanConfiguration:
        """Build a configuration from a settings section, defaulting absent keys."""
        config = cls()
        if SCANNED_FILE_TYPES in section:
            config.apply(SCANNED_FILE_TYPES, section[SCANNED_FILE_TYPES])
        for key in TOGGLE_FIELDS:
            if key in section:
                config.apply(key, section[key])
        return config

    def apply(self, key: str, value: Any) -> None:
        """Replace the single field a settings key controls."""
        if key == SCANNED_FILE_TYPES:
            if not isinstance(value, list):
                raise ConfigurationMissing(
                    f"Setting '{SETTINGS_SECTION}.{SCANNED_FILE_TYPES}' is missing or not a list"
                )
            self.scanned_extensions = frozenset(str(ext) for ext in value)
        elif key in TOGGLE_FIELDS:
            setattr(self, TOGGLE_FIELDS[key], bool(value))
        else:
            logger.debug("Ignoring unknown setting %r", key)

    def to_settings(self) -> dict[str, Any]:
        data: dict[str, Any] = {SCANNED_FILE_TYPES: sorted(self.scanned_extensions)}
        for key, attr in TOGGLE_FIELDS.items():
            data[key] = getattr(self, attr)
        return data


SettingsListener = Callable[[str, Any], None]


class SettingsStore:
    """YAML-backed store for the scanner settings section.

    Listeners registered with subscribe() are called with (key, value)
    after every update(), and by refresh() for each key whose value
    changed on disk since the store last saw it.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else ScrubberConfig.load().settings_path
        self._listeners: list[SettingsListener] = []
        self._known = self.section()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        """Return the whole settings document; raises on unreadable files."""
        if not self._path.is_file():
            return {}
        data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationMissing(f"Settings file {self._path} is not a mapping")
        return data

    def section(self) -> dict[str, Any]:
        """Return the scanner section, or an empty mapping if unset."""
        try:
            data = self._read()
        except (yaml.YAMLError, OSError, ConfigurationMissing):
            logger.warning("Failed to load settings from %s", self._path)
            return {}
        section = data.get(SETTINGS_SECTION)
        return section if isinstance(section, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.section().get(key, default)

    def configuration(self) -> ScanConfiguration:
        return ScanConfiguration.from_settings(self.section())

    def update(self, key: str, value: Any) -> None:
        """Persist one setting and notify listeners.

        Raises ConfigurationMissing when the existing file cannot be parsed,
        leaving it untouched.
        """
        try:
            data = self._read()
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationMissing(
                f"Cannot update {self._path}: the settings file is unreadable ({e})"
            ) from e

        section = data.get(SETTINGS_SECTION)
        if not isinstance(section, dict):
            section = {}
        section[key] = value
        data[SETTINGS_SECTION] = section

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            yaml.dump(data, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
        logger.debug("Saved setting %s=%r to %s", key, value, self._path)
        self._known = dict(section)

        self._notify(key, value)

    def refresh(self) -> list[str]:
        """Re-read the file and notify listeners of every changed key.

        A key removed from the file is reported with the value None.
        Returns the changed keys in sorted order.
        """
        section = self.section()
        changed = sorted(
            key
            for key in section.keys() | self._known.keys()
            if section.get(key) != self._known.get(key)
        )
        self._known = dict(section)
        for key in changed:
            self._notify(key, section.get(key))
        return changed

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            listener(key, value)


def parse_extensions(text: str) -> list[str]:
    """Parse a comma-separated extension list.

    Empty input means the built-in defaults. Every token must be
    alphanumeric, without dots or spaces.
    """
    if not text.strip():
        return list(DEFAULT_SCANNED_EXTENSIONS)

    extensions = [ext.strip() for ext in text.split(",")]
    invalid = [ext for ext in extensions if not _EXTENSION_RE.match(ext)]
    if invalid:
        raise ValidationFailed(
            "File extensions must be alphanumeric and cannot contain dots or spaces: "
            + ", ".join(repr(ext) for ext in invalid)
        )
    return extensions


def set_scanned_extensions(store: SettingsStore, text: str) -> list[str]:
    """Validate and persist the scanned extension list."""
    extensions = parse_extensions(text)
    store.update(SCANNED_FILE_TYPES, extensions)
    return extensions


def toggle_setting(store: SettingsStore, key: str) -> bool:
    """Flip a boolean scanner setting and return its new value."""
    if key not in TOGGLE_FIELDS:
        raise KeyError(key)
    current = store.get(key, getattr(ScanConfiguration(), TOGGLE_FIELDS[key]))
    new_value = not bool(current)
    store.update(key, new_value)
    return new_value
