# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Configuration for the hotplug engine.

Configuration is read from (highest to lowest priority):
  1. a path given explicitly (``--config``)
  2. /etc/usb-app-hotplug/hotplug.conf       (system)
  3. /usr/lib/usb-app-hotplug/hotplug.conf   (package defaults)

Each file is an INI file with a single ``[hotplug]`` section.  Keys that
are missing everywhere fall back to the dataclass defaults.
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field, fields

from .errors import ConfigError

logger = logging.getLogger(__name__)

SECTION = "hotplug"

SYSTEM_CONFIG_PATH = "/etc/usb-app-hotplug/hotplug.conf"
PACKAGE_CONFIG_PATH = "/usr/lib/usb-app-hotplug/hotplug.conf"

SLOT_SINGLE = "single"
SLOT_PER_DEVICE = "per-device"


@dataclass
class HotplugConfig:
    poll_interval: float = 1.0
    poll_attempts: int = 10
    bundle_extension: str = ".AppImage"
    search_depth: int = 2
    entry_name: str = "usb-app"
    entry_slot: str = SLOT_SINGLE
    display_name: str = "USB App"
    comment: str = "Portable application on removable storage"
    icon: str = "application-x-executable"
    target_user: str = ""
    primary_display: str = ":0"
    transports: tuple[str, ...] = field(default_factory=lambda: ("usb",))
    refresh_database: bool = False

    def validate(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.poll_attempts < 1:
            raise ConfigError(f"poll_attempts must be at least 1, got {self.poll_attempts}")
        if self.search_depth < 1:
            raise ConfigError(f"search_depth must be at least 1, got {self.search_depth}")
        if not self.bundle_extension:
            raise ConfigError("bundle_extension must not be empty")
        if not self.entry_name or "/" in self.entry_name:
            raise ConfigError(f"Invalid entry_name: {self.entry_name!r}")
        if self.entry_slot not in (SLOT_SINGLE, SLOT_PER_DEVICE):
            raise ConfigError(
                f"entry_slot must be '{SLOT_SINGLE}' or '{SLOT_PER_DEVICE}', "
                f"got {self.entry_slot!r}"
            )
        if not self.transports:
            raise ConfigError("transports must list at least one bus")


def _coerce(name: str, raw: str, default: object) -> object:
    """Convert a raw INI string to the type of the field's default."""
    try:
        if isinstance(default, bool):
            parsed = configparser.ConfigParser.BOOLEAN_STATES.get(raw.strip().lower())
            if parsed is None:
                raise ValueError(raw)
            return parsed
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, tuple):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from None
    return raw.strip()


def default_search_paths(explicit: str | None = None) -> list[str]:
    paths = [PACKAGE_CONFIG_PATH, SYSTEM_CONFIG_PATH]
    if explicit:
        paths.append(explicit)
    return paths


def load_config(path: str | None = None) -> HotplugConfig:
    """Load configuration, later files overriding earlier ones.

    Args:
        path: Optional explicit config file.  Unlike the system paths it
            must exist.

    Raises:
        ConfigError: On a missing explicit file, unparsable INI, an
            unknown key, or an invalid value.
    """
    if path and not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")

    parser = configparser.ConfigParser(interpolation=None)
    try:
        read = parser.read(default_search_paths(path), encoding="utf-8")
    except configparser.Error as e:
        raise ConfigError(f"Could not parse configuration: {e}") from e
    logger.debug("config files=%s", ",".join(read) or "(defaults)")

    config = HotplugConfig()
    if not parser.has_section(SECTION):
        config.validate()
        return config

    known = {f.name for f in fields(HotplugConfig)}
    for key, raw in parser.items(SECTION):
        if key not in known:
            raise ConfigError(f"Unknown config key: {key}")
        setattr(config, key, _coerce(key, raw, getattr(config, key)))

    config.validate()
    return config
